"""
Oracle observation ring buffer.

Accumulators are signed 88-bit values that wrap on overflow. An absolute
accumulator value carries no meaning on its own: consumers must only ever take
the (wrapping) difference between two observations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

ACC_BITS = 88
TIMESTAMP_MODULUS = 2**31
DEFAULT_CAPACITY = 65_536

_ACC_MODULUS = 2**ACC_BITS
_ACC_HALF = 2 ** (ACC_BITS - 1)


def wrap_acc(value: int) -> int:
    """Reduce `value` into the signed 88-bit range with two's-complement wrapping."""
    return (value + _ACC_HALF) % _ACC_MODULUS - _ACC_HALF


def acc_delta(newer: int, older: int) -> int:
    """Wrapping difference `newer - older` of two accumulator values."""
    return wrap_acc(newer - older)


def to_block_timestamp(timestamp: int) -> int:
    return timestamp % TIMESTAMP_MODULUS


def elapsed(now: int, earlier: int) -> int:
    """Seconds between two 31-bit block timestamps (wrapping)."""
    return (now - earlier) % TIMESTAMP_MODULUS


@dataclass(frozen=True)
class Observation:
    log_instant_raw_price: int = 0
    log_instant_clamped_price: int = 0
    log_acc_raw_price: int = 0
    log_acc_clamped_price: int = 0
    timestamp: int = 0

    def __post_init__(self) -> None:
        for name in ("log_acc_raw_price", "log_acc_clamped_price"):
            v = getattr(self, name)
            if not (-_ACC_HALF <= v < _ACC_HALF):
                raise ValueError(f"{name} outside the signed {ACC_BITS}-bit range: {v}")


class ObservationBuffer:
    """
    Fixed-capacity circular array of observations.

    Slots are stored sparsely; an unwritten slot reads as an all-zero Observation.
    `index` points at the most recently written slot.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity < 2:
            raise ValueError(f"capacity must be an int >= 2: {capacity}")
        self.capacity = capacity
        self.index = 0
        self.writes = 0
        self._slots: Dict[int, Observation] = {}

    @property
    def empty(self) -> bool:
        return self.writes == 0

    def get(self, index: int) -> Observation:
        if not (0 <= index < self.capacity):
            raise IndexError(f"observation index out of range: {index}")
        return self._slots.get(index, Observation())

    def latest(self) -> Optional[Observation]:
        if self.empty:
            return None
        return self._slots[self.index]

    def previous(self) -> Optional[Observation]:
        """The slot written before the latest one, if any."""
        if self.writes < 2:
            return None
        return self._slots[(self.index - 1) % self.capacity]

    def append(self, observation: Observation) -> int:
        """Write a new slot (the very first write lands on slot 0); overwrites the oldest on wraparound."""
        if not self.empty:
            self.index = (self.index + 1) % self.capacity
        self._slots[self.index] = observation
        self.writes += 1
        return self.index

    def replace_latest(self, observation: Observation) -> int:
        if self.empty:
            raise IndexError("no observation to replace")
        self._slots[self.index] = observation
        return self.index

    def snapshot(self) -> tuple:
        return self.index, self.writes, dict(self._slots)

    def restore(self, snap: tuple) -> None:
        self.index, self.writes, slots = snap
        self._slots = dict(slots)

    def __len__(self) -> int:
        return min(self.writes, self.capacity)

    def __repr__(self) -> str:
        return f"ObservationBuffer(index={self.index}, filled={len(self)}/{self.capacity})"
