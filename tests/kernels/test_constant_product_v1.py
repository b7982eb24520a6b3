# [TESTER] v1

from __future__ import annotations

import pytest

from tidepool.kernels.python.constant_product_v1 import get_amount_in, get_amount_out


def test_amount_out_matches_fee_formula() -> None:
    res = get_amount_out(amount_in=10_000, reserve_in=1_000_000, reserve_out=1_000_000, swap_fee=3_000)
    assert res.amount_out == 9_871
    assert res.new_reserve_in == 1_010_000
    assert res.new_reserve_out == 1_000_000 - 9_871
    assert res.k_after >= res.k_before


def test_amount_in_rounds_up_to_cover_output() -> None:
    res = get_amount_in(amount_out=9_871, reserve_in=1_000_000, reserve_out=1_000_000, swap_fee=3_000)
    assert res.amount_in == 10_000
    # Paying the quoted input buys at least the requested output.
    check = get_amount_out(amount_in=res.amount_in, reserve_in=1_000_000, reserve_out=1_000_000, swap_fee=3_000)
    assert check.amount_out >= 9_871


def test_zero_fee_round_trip_numbers() -> None:
    assert get_amount_out(amount_in=1_000, reserve_in=1_000_000, reserve_out=1_000_000, swap_fee=0).amount_out == 999
    assert get_amount_in(amount_out=1_000, reserve_in=1_000_000, reserve_out=1_000_000, swap_fee=0).amount_in == 1_002


def test_dust_input_yields_zero_output() -> None:
    res = get_amount_out(amount_in=1, reserve_in=1_000_000, reserve_out=1_000_000, swap_fee=3_000)
    assert res.amount_out == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(amount_in=0, reserve_in=10, reserve_out=10, swap_fee=0),
        dict(amount_in=1, reserve_in=0, reserve_out=10, swap_fee=0),
        dict(amount_in=1, reserve_in=10, reserve_out=10, swap_fee=1_000_000),
    ],
)
def test_amount_out_rejects_bad_inputs(kwargs) -> None:
    with pytest.raises(ValueError):
        get_amount_out(**kwargs)


def test_amount_in_rejects_draining_the_reserve() -> None:
    with pytest.raises(ValueError):
        get_amount_in(amount_out=10, reserve_in=10, reserve_out=10, swap_fee=0)


def test_rejects_non_int_inputs() -> None:
    with pytest.raises(TypeError):
        get_amount_out(amount_in=1.5, reserve_in=10, reserve_out=10, swap_fee=0)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        get_amount_out(amount_in=True, reserve_in=10, reserve_out=10, swap_fee=0)  # type: ignore[arg-type]
