"""
Constant-product swap kernel (v1 semantics).

- Fees are expressed in parts-per-million of the gross input (`FEE_ACCURACY`).
- Pricing uses `in * (F - fee)` against `reserve_in * F` (Uniswap-v2 style, scaled by F).
- Exact-out quotes always round the required input up by one unit.

Everything here is integer-only and side-effect free; the pool ledger owns
reserves, transfers and the 104-bit reserve ceiling.
"""

from __future__ import annotations

from dataclasses import dataclass


FEE_ACCURACY = 1_000_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_fee(swap_fee: int) -> None:
    _require_int("swap_fee", swap_fee)
    if not (0 <= swap_fee < FEE_ACCURACY):
        raise ValueError(f"swap_fee must be in [0, {FEE_ACCURACY})")


@dataclass(frozen=True)
class AmountOutResult:
    amount_in: int
    amount_out: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


@dataclass(frozen=True)
class AmountInResult:
    amount_in: int
    amount_out: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


def get_amount_out(*, amount_in: int, reserve_in: int, reserve_out: int, swap_fee: int) -> AmountOutResult:
    """
    Exact-in quote + post-state.

        in_with_fee = amount_in * (F - swap_fee)
        amount_out  = floor(in_with_fee * reserve_out / (reserve_in * F + in_with_fee))

    A zero `amount_out` is returned as-is (trade too small); the caller decides
    whether that is acceptable.
    """
    for name, v in (("amount_in", amount_in), ("reserve_in", reserve_in), ("reserve_out", reserve_out)):
        _require_int(name, v)
    _require_fee(swap_fee)

    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError("cannot swap against an empty reserve")
    if amount_in <= 0:
        raise ValueError("amount_in must be positive")

    in_with_fee = amount_in * (FEE_ACCURACY - swap_fee)
    numerator = in_with_fee * reserve_out
    denominator = reserve_in * FEE_ACCURACY + in_with_fee
    amount_out = numerator // denominator

    if amount_out >= reserve_out:
        raise AssertionError("amount_out must stay below reserve_out")

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    k_before = reserve_in * reserve_out
    k_after = new_reserve_in * new_reserve_out
    if k_after < k_before:
        raise AssertionError(f"invariant violation: k_after ({k_after}) < k_before ({k_before})")

    return AmountOutResult(
        amount_in=amount_in,
        amount_out=amount_out,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=k_after,
    )


def get_amount_in(*, amount_out: int, reserve_in: int, reserve_out: int, swap_fee: int) -> AmountInResult:
    """
    Exact-out quote + post-state.

        amount_in = floor(reserve_in * amount_out * F / ((reserve_out - amount_out) * (F - swap_fee))) + 1

    Raises ValueError if `amount_out` would drain the output reserve.
    """
    for name, v in (("amount_out", amount_out), ("reserve_in", reserve_in), ("reserve_out", reserve_out)):
        _require_int(name, v)
    _require_fee(swap_fee)

    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError("cannot swap against an empty reserve")
    if amount_out <= 0:
        raise ValueError("amount_out must be positive")
    if amount_out >= reserve_out:
        raise ValueError(f"cannot drain full reserve: amount_out ({amount_out}) >= reserve_out ({reserve_out})")

    numerator = reserve_in * amount_out * FEE_ACCURACY
    denominator = (reserve_out - amount_out) * (FEE_ACCURACY - swap_fee)
    amount_in = numerator // denominator + 1

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    k_before = reserve_in * reserve_out
    k_after = new_reserve_in * new_reserve_out
    if k_after < k_before:
        raise AssertionError(f"invariant violation: k_after ({k_after}) < k_before ({k_before})")

    return AmountInResult(
        amount_in=amount_in,
        amount_out=amount_out,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=k_after,
    )
