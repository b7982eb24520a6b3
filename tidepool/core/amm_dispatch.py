"""
Curve dispatch for swap quoting.

Both curve families share one surface:

    quote_out(curve_tag, amount_in, reserve_in, reserve_out, swap_fee, extra) -> amount_out
    quote_in(curve_tag, amount_out, reserve_in, reserve_out, swap_fee, extra) -> amount_in

`extra` carries curve-specific parameters: nothing for constant product, a
`StableParams` for stable pools. The stable invariant is symmetric in its two
balances, so the "in" side is always fed to the kernel as slot 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..kernels.python import stable_math_v1
from ..state.balances import Amount
from ..state.pools import CURVE_TAG_CONSTANT_PRODUCT, CURVE_TAG_STABLE
from . import cpmm


@dataclass(frozen=True)
class StableParams:
    a_precise: int
    multiplier_in: int = 1
    multiplier_out: int = 1


def _stable_params(curve_tag: str, extra: Optional[StableParams]) -> StableParams:
    if not isinstance(extra, StableParams):
        raise ValueError(f"{curve_tag} quotes require StableParams")
    return extra


def quote_out(
    curve_tag: str,
    amount_in: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    swap_fee: int,
    extra: Optional[StableParams] = None,
) -> Amount:
    if curve_tag == CURVE_TAG_CONSTANT_PRODUCT:
        return cpmm.swap_exact_in(reserve_in, reserve_out, amount_in, swap_fee)
    if curve_tag == CURVE_TAG_STABLE:
        params = _stable_params(curve_tag, extra)
        return stable_math_v1.get_amount_out(
            amount_in=amount_in,
            reserve0=reserve_in,
            reserve1=reserve_out,
            multiplier0=params.multiplier_in,
            multiplier1=params.multiplier_out,
            token0_in=True,
            swap_fee=swap_fee,
            n_a=2 * params.a_precise,
        ).amount_out
    raise ValueError(f"unsupported pool curve_tag: {curve_tag!r}")


def quote_in(
    curve_tag: str,
    amount_out: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    swap_fee: int,
    extra: Optional[StableParams] = None,
) -> Amount:
    if curve_tag == CURVE_TAG_CONSTANT_PRODUCT:
        return cpmm.swap_exact_out(reserve_in, reserve_out, amount_out, swap_fee)
    if curve_tag == CURVE_TAG_STABLE:
        params = _stable_params(curve_tag, extra)
        return stable_math_v1.get_amount_in(
            amount_out=amount_out,
            reserve0=reserve_out,
            reserve1=reserve_in,
            multiplier0=params.multiplier_out,
            multiplier1=params.multiplier_in,
            token0_out=True,
            swap_fee=swap_fee,
            n_a=2 * params.a_precise,
        ).amount_in
    raise ValueError(f"unsupported pool curve_tag: {curve_tag!r}")
