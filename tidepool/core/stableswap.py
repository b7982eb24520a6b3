"""
StableSwap (amplified invariant) operations for two-asset pools.

Native token amounts are normalised to 18 decimals with per-pool precision
multipliers before touching the invariant, and results are returned in the
token's native precision.

Amplification values handled here are *precise* values (raw A * A_PRECISION);
the kernels take `n_a = 2 * A_precise`.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..kernels.python import stable_math_v1 as kernel
from ..kernels.python.stable_math_v1 import A_PRECISION, StableMathError, precision_multiplier
from ..state.balances import Amount
from ..state.pools import AmplificationRamp

MIN_A = 1
MAX_A = 10_000
MIN_RAMP_TIME = 86_400
MAX_AMP_UPDATE_DAILY_RATE = 2

__all__ = [
    "A_PRECISION",
    "MAX_A",
    "MIN_A",
    "MIN_RAMP_TIME",
    "MAX_AMP_UPDATE_DAILY_RATE",
    "StableMathError",
    "StableCurve",
    "precision_multiplier",
    "plan_ramp",
]


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def validate_raw_a(a: int) -> int:
    if not isinstance(a, int) or isinstance(a, bool) or not (MIN_A <= a <= MAX_A):
        raise ValueError(f"amplification must be an int in [{MIN_A}, {MAX_A}]: {a}")
    return a


def plan_ramp(current_a_precise: int, future_a_raw: int, now: int, future_time: int) -> AmplificationRamp:
    """
    Build a new amplification ramp from the currently interpolated A.

    The ramp must last at least MIN_RAMP_TIME and change A by at most a factor of
    MAX_AMP_UPDATE_DAILY_RATE per day.
    """
    validate_raw_a(future_a_raw)
    future_a = future_a_raw * A_PRECISION
    duration = future_time - now
    if duration < MIN_RAMP_TIME:
        raise ValueError(f"ramp duration must be at least {MIN_RAMP_TIME}s: {duration}")

    if future_a > current_a_precise:
        daily_rate = _ceil_div(future_a * 86_400, current_a_precise * duration)
    else:
        daily_rate = _ceil_div(current_a_precise * 86_400, future_a * duration)
    if daily_rate > MAX_AMP_UPDATE_DAILY_RATE:
        raise ValueError(f"amplification daily rate too high: {daily_rate} > {MAX_AMP_UPDATE_DAILY_RATE}")

    return AmplificationRamp(initial_a=current_a_precise, future_a=future_a, initial_time=now, future_time=future_time)


@dataclass(frozen=True)
class StableCurve:
    """Curve parameters bound to a pool: its precision multipliers."""

    multiplier0: int
    multiplier1: int

    @classmethod
    def for_decimals(cls, decimals0: int, decimals1: int) -> "StableCurve":
        return cls(precision_multiplier(decimals0), precision_multiplier(decimals1))

    def compute_liquidity(self, balance0: Amount, balance1: Amount, a_precise: int) -> int:
        """Invariant D of native balances, in 18-decimal units."""
        return kernel.compute_liquidity(balance0 * self.multiplier0, balance1 * self.multiplier1, 2 * a_precise)

    def spot_price(self, reserve0: Amount, reserve1: Amount, a_precise: int) -> int:
        return kernel.spot_price(reserve0 * self.multiplier0, reserve1 * self.multiplier1, 2 * a_precise)
