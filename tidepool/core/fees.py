"""
Fee kernels (deterministic, integer-only).

- Swap and platform fees are parts-per-million of the relevant amount.
- Platform fees are taken by *minting* LP shares sized to a fraction of the
  invariant growth since the last liquidity event, never by moving tokens.
- Stable pools charge a non-optimal mint fee so that an imbalanced deposit
  followed by a burn cannot be used as a fee-free swap.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple


FEE_ACCURACY = 1_000_000
MAX_SWAP_FEE = 20_000
MAX_PLATFORM_FEE = 500_000

ACCURACY = 10**18
SQUARED_ACCURACY = 10**36


def _require_fee(name: str, value: int, maximum: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (0 <= value <= maximum):
        raise ValueError(f"{name} must be in [0, {maximum}]: {value}")


def validate_swap_fee(fee: int) -> int:
    _require_fee("swap_fee", fee, MAX_SWAP_FEE)
    return fee


def validate_platform_fee(fee: int) -> int:
    _require_fee("platform_fee", fee, MAX_PLATFORM_FEE)
    return fee


@dataclass(frozen=True)
class FeeParams:
    """Effective fees of a pool: a custom override wins over the factory default."""

    default_swap_fee: int
    default_platform_fee: int
    custom_swap_fee: Optional[int] = None
    custom_platform_fee: Optional[int] = None

    def __post_init__(self) -> None:
        validate_swap_fee(self.default_swap_fee)
        validate_platform_fee(self.default_platform_fee)
        if self.custom_swap_fee is not None:
            validate_swap_fee(self.custom_swap_fee)
        if self.custom_platform_fee is not None:
            validate_platform_fee(self.custom_platform_fee)

    @property
    def swap_fee(self) -> int:
        return self.default_swap_fee if self.custom_swap_fee is None else self.custom_swap_fee

    @property
    def platform_fee(self) -> int:
        return self.default_platform_fee if self.custom_platform_fee is None else self.custom_platform_fee


def constant_product_platform_shares(
    *,
    sqrt_new_k: int,
    sqrt_old_k: int,
    platform_fee: int,
    circulating_shares: int,
) -> int:
    """
    Shares to mint so the platform owns `platform_fee` of the growth in sqrt(k).

        growth     = sqrt_new_k / sqrt_old_k
        multiplier = 1 - 1/growth
        ownership  = multiplier * platform_fee / F
        shares     = ownership * circulating / (1 - ownership)

    All ratios are carried with 18 decimals.
    """
    if sqrt_old_k <= 0 or sqrt_new_k <= sqrt_old_k:
        return 0
    validate_platform_fee(platform_fee)
    if circulating_shares < 0:
        raise ValueError(f"circulating_shares must be non-negative: {circulating_shares}")

    scaled_growth = sqrt_new_k * ACCURACY // sqrt_old_k
    scaled_multiplier = ACCURACY - SQUARED_ACCURACY // scaled_growth
    scaled_target_ownership = scaled_multiplier * platform_fee // FEE_ACCURACY
    return scaled_target_ownership * circulating_shares // (ACCURACY - scaled_target_ownership)


def constant_product_fee_shares(
    *, reserve0: int, reserve1: int, k_last: int, platform_fee: int, total_supply: int
) -> int:
    """Platform shares owed by a constant-product pool since `k_last` (0 when nothing is owed)."""
    if platform_fee == 0 or k_last == 0:
        return 0
    return constant_product_platform_shares(
        sqrt_new_k=math.isqrt(reserve0 * reserve1),
        sqrt_old_k=math.isqrt(k_last),
        platform_fee=platform_fee,
        circulating_shares=total_supply,
    )


def stable_platform_shares(*, total_supply: int, invariant: int, last_invariant: int, platform_fee: int) -> int:
    """
    Shares to mint so the platform owns `platform_fee` of the invariant growth:

        supply * (D - D_last) * fee / ((F - fee) * D + fee * D_last)
    """
    validate_platform_fee(platform_fee)
    if platform_fee == 0 or last_invariant == 0 or invariant <= last_invariant:
        return 0
    numerator = total_supply * (invariant - last_invariant) * platform_fee
    denominator = (FEE_ACCURACY - platform_fee) * invariant + platform_fee * last_invariant
    return numerator // denominator


def non_optimal_mint_fee(
    *, amount0: int, amount1: int, reserve0: int, reserve1: int, swap_fee: int
) -> Tuple[int, int]:
    """
    Fee charged on the excess side of an imbalanced deposit: half the swap fee on the
    part of the deposit that does not match the current reserve ratio.
    """
    if reserve0 == 0 or reserve1 == 0:
        return 0, 0
    amount1_optimal = amount0 * reserve1 // reserve0
    if amount1_optimal <= amount1:
        return 0, swap_fee * (amount1 - amount1_optimal) // (2 * FEE_ACCURACY)
    amount0_optimal = amount1 * reserve0 // reserve1
    return swap_fee * (amount0 - amount0_optimal) // (2 * FEE_ACCURACY), 0
