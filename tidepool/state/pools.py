"""
Pool state record for two-asset pools.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional, Tuple

from .balances import Address, Amount


CURVE_TAG_CONSTANT_PRODUCT = "CONSTANT_PRODUCT"
CURVE_TAG_STABLE = "STABLE"
CURVE_TAGS = (CURVE_TAG_CONSTANT_PRODUCT, CURVE_TAG_STABLE)

# Deliberate reserve ceiling, enforced on every update.
MAX_RESERVE = 2**104 - 1


def normalize_curve_tag(curve_tag: Optional[object]) -> str:
    """Canonicalize a curve tag to upper-case; unknown curves are rejected."""
    tag_raw = CURVE_TAG_CONSTANT_PRODUCT if curve_tag is None else curve_tag
    if not isinstance(tag_raw, str) or not tag_raw.strip():
        raise ValueError("curve_tag must be a non-empty string")
    tag = tag_raw.strip().upper()
    if tag not in CURVE_TAGS:
        raise ValueError(f"unsupported curve_tag: {tag!r}")
    return tag


def sort_tokens(token_a: Address, token_b: Address) -> Tuple[Address, Address]:
    if token_a == token_b:
        raise ValueError(f"identical token addresses: {token_a}")
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


def compute_pool_id(token0: Address, token1: Address, *, curve_tag: str = CURVE_TAG_CONSTANT_PRODUCT) -> str:
    """
    Deterministically compute a pool address for the given pair parameters.

        pool_id = H("TidepoolPair" || token0 || token1 || curve_tag)
    """
    if token0 >= token1:
        raise ValueError(f"Tokens must be in canonical order: {token0} < {token1}")
    tag = normalize_curve_tag(curve_tag)
    pool_id_data = (
        b"TidepoolPair"
        + token0.encode("utf-8")
        + token1.encode("utf-8")
        + tag.encode("utf-8")
    )
    return "0x" + hashlib.sha256(pool_id_data).hexdigest()[:40]


@dataclass(frozen=True)
class AmplificationRamp:
    """
    Linear amplification schedule. All A values carry A_PRECISION.

    Before `future_time` the current A is interpolated between (initial_time, initial_a)
    and (future_time, future_a); afterwards it is `future_a`.
    """

    initial_a: int
    future_a: int
    initial_time: int
    future_time: int

    def __post_init__(self) -> None:
        if self.initial_a <= 0 or self.future_a <= 0:
            raise ValueError(f"amplification must be positive: ({self.initial_a}, {self.future_a})")
        if self.future_time < self.initial_time:
            raise ValueError("future_time must not precede initial_time")

    def current(self, timestamp: int) -> int:
        if timestamp >= self.future_time:
            return self.future_a
        elapsed = timestamp - self.initial_time
        duration = self.future_time - self.initial_time
        if self.future_a > self.initial_a:
            return self.initial_a + (self.future_a - self.initial_a) * elapsed // duration
        return self.initial_a - (self.initial_a - self.future_a) * elapsed // duration

    @classmethod
    def constant(cls, a_precise: int, timestamp: int) -> "AmplificationRamp":
        return cls(initial_a=a_precise, future_a=a_precise, initial_time=timestamp, future_time=timestamp)


@dataclass
class PoolState:
    """
    Ledger view of a pool.

    Attributes:
        pool_id: pool address (hex string)
        token0, token1: asset addresses, token0 < token1
        curve_tag: curve family ("CONSTANT_PRODUCT" or "STABLE")
        reserve0, reserve1: last-synced reserves, including managed amounts
        block_timestamp_last: 31-bit timestamp of the last reserve update
        token0_managed, token1_managed: portion of each reserve held by the asset manager
        swap_fee, platform_fee: effective fees (ppm)
        custom_swap_fee, custom_platform_fee: per-pool overrides, None = inherit default
        max_change_rate, max_change_per_trade: oracle clamp parameters (wad)
        k_last: reserve0 * reserve1 after the last liquidity event (constant product)
        ramp: amplification schedule (stable)
        last_invariant, last_invariant_amp: D and A_precise after the last liquidity event (stable)
    """

    pool_id: str
    token0: Address
    token1: Address
    curve_tag: str
    swap_fee: int
    platform_fee: int
    max_change_rate: int
    max_change_per_trade: int
    reserve0: Amount = 0
    reserve1: Amount = 0
    block_timestamp_last: int = 0
    token0_managed: Amount = 0
    token1_managed: Amount = 0
    custom_swap_fee: Optional[int] = None
    custom_platform_fee: Optional[int] = None
    k_last: int = 0
    ramp: Optional[AmplificationRamp] = None
    last_invariant: int = 0
    last_invariant_amp: int = 0

    def __post_init__(self) -> None:
        if self.token0 >= self.token1:
            raise ValueError(f"Tokens must be in canonical order: {self.token0} < {self.token1}")
        self.curve_tag = normalize_curve_tag(self.curve_tag)
        if self.curve_tag == CURVE_TAG_STABLE and self.ramp is None:
            raise ValueError("stable pools require an amplification ramp")
        self.verify()

    def get_reserve(self, token: Address) -> Amount:
        if token == self.token0:
            return self.reserve0
        if token == self.token1:
            return self.reserve1
        raise ValueError(f"Token {token} not in pool {self.pool_id}")

    def verify(self) -> None:
        """Check the ledger invariants; raises ValueError describing the first violation."""
        for name, value in (("reserve0", self.reserve0), ("reserve1", self.reserve1)):
            if not (0 <= value <= MAX_RESERVE):
                raise ValueError(f"{name} out of range [0, 2^104): {value}")
        if not (0 <= self.token0_managed <= self.reserve0):
            raise ValueError(f"token0_managed ({self.token0_managed}) exceeds reserve0 ({self.reserve0})")
        if not (0 <= self.token1_managed <= self.reserve1):
            raise ValueError(f"token1_managed ({self.token1_managed}) exceeds reserve1 ({self.reserve1})")

    def __repr__(self) -> str:
        return (
            f"PoolState(pool_id={self.pool_id[:12]}..., curve={self.curve_tag}, "
            f"reserves=({self.reserve0}, {self.reserve1}), "
            f"managed=({self.token0_managed}, {self.token1_managed}))"
        )
