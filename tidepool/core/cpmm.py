"""
Constant Product Market Maker (CPMM) operations.

This module implements the core CPMM mathematical operations with
deterministic rounding rules:
- Swaps round the output down and the required input up, so k never decreases.
- LP mint takes the smaller of the two pro-rata ratios; the first mint locks
  MINIMUM_LIQUIDITY shares forever.
- LP burn pays out floor(liquidity * reserve / supply) of each token.
"""

import math
from typing import Tuple

from ..state.balances import Amount
from ..kernels.python.constant_product_v1 import get_amount_in as _kernel_get_amount_in
from ..kernels.python.constant_product_v1 import get_amount_out as _kernel_get_amount_out
from .log_compression import WAD

# Minimum LP lock to prevent division by zero and donation attacks
MINIMUM_LIQUIDITY = 1000


def swap_exact_in(reserve_in: Amount, reserve_out: Amount, amount_in: Amount, swap_fee: int) -> Amount:
    """
    Compute output amount for an exact-in swap.

        amount_out = floor(in*(F-fee)*reserve_out / (reserve_in*F + in*(F-fee)))

    Raises:
        ValueError: If inputs are invalid
    """
    res = _kernel_get_amount_out(
        amount_in=amount_in, reserve_in=reserve_in, reserve_out=reserve_out, swap_fee=swap_fee
    )
    return res.amount_out


def swap_exact_out(reserve_in: Amount, reserve_out: Amount, amount_out: Amount, swap_fee: int) -> Amount:
    """
    Compute the input required for an exact-out swap.

        amount_in = floor(reserve_in*amount_out*F / ((reserve_out-amount_out)*(F-fee))) + 1

    Raises:
        ValueError: If inputs are invalid or amount_out would drain the reserve
    """
    res = _kernel_get_amount_in(
        amount_out=amount_out, reserve_in=reserve_in, reserve_out=reserve_out, swap_fee=swap_fee
    )
    return res.amount_in


def compute_lp_mint(
    reserve0: Amount,
    reserve1: Amount,
    amount0: Amount,
    amount1: Amount,
    lp_supply: Amount,
) -> Amount:
    """
    Compute LP shares to mint for a deposit of (amount0, amount1).

    For first deposit (lp_supply == 0):
        lp = floor(sqrt(amount0 * amount1)) - MINIMUM_LIQUIDITY

    For subsequent deposits:
        lp = min(floor(amount0 * lp_supply / reserve0), floor(amount1 * lp_supply / reserve1))

    Returns 0 (rather than raising) when the deposit is too small; the pool
    rejects zero mints.
    """
    if reserve0 < 0 or reserve1 < 0:
        raise ValueError(f"Reserves must be non-negative: ({reserve0}, {reserve1})")
    if amount0 < 0 or amount1 < 0:
        raise ValueError(f"Deposit amounts must be non-negative: ({amount0}, {amount1})")
    if lp_supply < 0:
        raise ValueError(f"LP supply must be non-negative: {lp_supply}")

    if lp_supply == 0:
        # Integer sqrt: float sqrt loses precision above 2**53.
        return max(math.isqrt(amount0 * amount1) - MINIMUM_LIQUIDITY, 0)

    if reserve0 == 0 or reserve1 == 0:
        raise ValueError("Cannot add liquidity to empty pool")
    return min(amount0 * lp_supply // reserve0, amount1 * lp_supply // reserve1)


def compute_lp_burn(
    lp_amount: Amount,
    reserve0: Amount,
    reserve1: Amount,
    lp_supply: Amount,
) -> Tuple[Amount, Amount]:
    """
    Compute asset amounts returned for burning `lp_amount` shares.

        amount0 = floor(lp_amount * reserve0 / lp_supply)
        amount1 = floor(lp_amount * reserve1 / lp_supply)
    """
    if lp_amount < 0:
        raise ValueError(f"LP amount must be non-negative: {lp_amount}")
    if lp_supply <= 0:
        raise ValueError(f"LP supply must be positive: {lp_supply}")
    if lp_amount > lp_supply:
        raise ValueError(f"Cannot burn more LP than supply: {lp_amount} > {lp_supply}")
    if reserve0 < 0 or reserve1 < 0:
        raise ValueError(f"Reserves must be non-negative: ({reserve0}, {reserve1})")

    return lp_amount * reserve0 // lp_supply, lp_amount * reserve1 // lp_supply


def spot_price(reserve0: Amount, reserve1: Amount, multiplier0: int = 1, multiplier1: int = 1) -> int:
    """Price of token0 in token1 (wad), on 18-decimal normalised reserves."""
    if reserve0 <= 0 or reserve1 <= 0:
        raise ValueError(f"Reserves must be positive: ({reserve0}, {reserve1})")
    return reserve1 * multiplier1 * WAD // (reserve0 * multiplier0)
