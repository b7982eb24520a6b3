"""
Block clock and call journal.

`Chain` stands in for the host ledger: it provides the current block timestamp and
makes every public entrypoint all-or-nothing. Stateful components register
themselves and expose `snapshot()` / `restore(snap)`; the outermost `atomic()`
scope snapshots all of them and rolls everything back if an exception escapes.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol


class Journaled(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...


class Chain:
    def __init__(self, timestamp: int = 1) -> None:
        if not isinstance(timestamp, int) or isinstance(timestamp, bool) or timestamp < 0:
            raise ValueError(f"timestamp must be a non-negative int: {timestamp}")
        self._timestamp = timestamp
        self._components: List[Journaled] = []
        self._depth = 0

    @property
    def timestamp(self) -> int:
        return self._timestamp

    def advance(self, seconds: int) -> int:
        """Move to a later block `seconds` after the current one."""
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards: {seconds}")
        self._timestamp += seconds
        return self._timestamp

    def register(self, component: Journaled) -> None:
        if not any(c is component for c in self._components):
            self._components.append(component)

    @property
    def in_call(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run the enclosed block as one transaction; nested scopes join the outer one."""
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snaps = [(c, c.snapshot()) for c in self._components]
        self._depth = 1
        try:
            yield
        except BaseException:
            for component, snap in snaps:
                component.restore(snap)
            raise
        finally:
            self._depth = 0
