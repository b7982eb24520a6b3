# [TESTER] v1

from __future__ import annotations

import pytest

from tidepool.kernels.python.stable_math_v1 import (
    A_PRECISION,
    StableMathError,
    StableMathOverflow,
    compute_liquidity,
    get_amount_in,
    get_amount_out,
    get_y,
    precision_multiplier,
    spot_price,
)

WAD = 10**18
# A = 200, two assets: n_a = 2 * A * A_PRECISION.
N_A_200 = 2 * 200 * A_PRECISION


def test_balanced_invariant_is_the_sum() -> None:
    assert compute_liquidity(1_000_000, 1_000_000, N_A_200) == 2_000_000


def test_empty_balances_have_zero_invariant() -> None:
    assert compute_liquidity(0, 0, N_A_200) == 0


def test_regression_fixture_a200_exact_in_70k() -> None:
    # Pinned to the unit: any drift in the Newton iterations shows up here.
    quote = get_amount_out(
        amount_in=70_000,
        reserve0=1_000_000,
        reserve1=1_000_000,
        multiplier0=1,
        multiplier1=1,
        token0_in=True,
        swap_fee=0,
        n_a=N_A_200,
    )
    assert quote.amount_out == 69_975
    assert quote.invariant == 2_000_000
    assert get_y(1_070_000, 2_000_000, N_A_200) == 930_024
    assert compute_liquidity(1_070_000, 1_000_000 - 69_975, N_A_200) == 2_000_000


def test_exact_out_inverts_the_fixture() -> None:
    quote = get_amount_in(
        amount_out=69_975,
        reserve0=1_000_000,
        reserve1=1_000_000,
        multiplier0=1,
        multiplier1=1,
        token0_out=False,
        swap_fee=0,
        n_a=N_A_200,
    )
    assert quote.amount_in == 70_000


def test_direction_is_symmetric() -> None:
    common = dict(amount_in=12_345, multiplier0=1, multiplier1=1, swap_fee=30, n_a=N_A_200)
    a = get_amount_out(reserve0=800_000, reserve1=1_300_000, token0_in=True, **common)
    b = get_amount_out(reserve0=1_300_000, reserve1=800_000, token0_in=False, **common)
    assert a.amount_out == b.amount_out


def test_mixed_decimals_are_normalised() -> None:
    # token0 has 6 decimals, token1 has 18: 1e6 units each side.
    m0 = precision_multiplier(6)
    assert m0 == 10**12
    quote = get_amount_out(
        amount_in=70_000 * 10**6,
        reserve0=1_000_000 * 10**6,
        reserve1=1_000_000 * 10**18,
        multiplier0=m0,
        multiplier1=1,
        token0_in=True,
        swap_fee=0,
        n_a=N_A_200,
    )
    # Same curve position as the unit fixture, scaled to 18 decimals.
    assert 69_974 * 10**18 < quote.amount_out < 69_976 * 10**18


def test_precision_multiplier_rejects_more_than_18_decimals() -> None:
    with pytest.raises(ValueError):
        precision_multiplier(19)


def test_amplification_must_exceed_precision() -> None:
    with pytest.raises(ValueError):
        compute_liquidity(10, 10, A_PRECISION)


def test_overflowing_intermediates_raise_typed_error() -> None:
    with pytest.raises(StableMathOverflow):
        compute_liquidity(2**200, 2**200, N_A_200)
    assert issubclass(StableMathOverflow, StableMathError)
    assert issubclass(StableMathError, ArithmeticError)


def test_exact_out_rejects_draining_the_reserve() -> None:
    with pytest.raises(ValueError):
        get_amount_in(
            amount_out=1_000_000,
            reserve0=1_000_000,
            reserve1=1_000_000,
            multiplier0=1,
            multiplier1=1,
            token0_out=True,
            swap_fee=0,
            n_a=N_A_200,
        )


def test_spot_price_is_one_when_balanced() -> None:
    assert spot_price(10**24, 10**24, N_A_200) == WAD


def test_spot_price_tracks_the_scarce_side() -> None:
    # More token0 in the pool makes token0 cheaper in token1 terms.
    assert spot_price(2 * 10**24, 10**24, N_A_200) < WAD
    assert spot_price(10**24, 2 * 10**24, N_A_200) > WAD
