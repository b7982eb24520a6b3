"""
Re-entrancy guard.

One guard per component. Entering a held guard raises `ReentrantCall` instead of
silently nesting; the guard is always released on the way out, including when
the body raises.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from .errors import ReentrantCall


class LockState(Enum):
    IDLE = "IDLE"
    IN_CALL = "IN_CALL"


class ReentrancyGuard:
    def __init__(self, owner: str) -> None:
        self.owner = owner
        self.state = LockState.IDLE

    @property
    def locked(self) -> bool:
        return self.state is LockState.IN_CALL

    @contextmanager
    def hold(self, action: str = "call") -> Iterator[None]:
        if self.state is LockState.IN_CALL:
            raise ReentrantCall(f"{self.owner}: re-entrant {action}")
        self.state = LockState.IN_CALL
        try:
            yield
        finally:
            self.state = LockState.IDLE

    def __repr__(self) -> str:
        return f"ReentrancyGuard({self.owner}, {self.state.value})"
