# [TESTER] v1

from __future__ import annotations

import logging

import pytest

from tidepool import Chain
from tidepool.core import stable_pair as stable_pair_module
from tidepool.core.errors import (
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InvalidParameter,
    Unauthorized,
)
from tidepool.kernels.python.stable_math_v1 import NonConvergenceError
from tidepool.state.balances import ZERO_ADDRESS

from tests.fakes import ALICE, BOB, FEE_TO, OWNER, deposit, make_factory, make_tokens, swap_in, withdraw

DAY = 86_400


def _stable(chain=None, decimals=(18, 18), **config):
    config.setdefault("amplification_coefficient", 200)
    config.setdefault("sp_swap_fee", 0)
    config.setdefault("platform_fee", 0)
    factory = make_factory(chain, **config)
    token_a, token_b = make_tokens(factory.chain, *decimals)
    return factory, factory.create_pair(token_a, token_b, "STABLE")


class _FailingInvariant:
    """Curve whose invariant computation never converges."""

    def __init__(self, curve) -> None:
        self._curve = curve

    def compute_liquidity(self, *args):
        raise NonConvergenceError("forced")

    def spot_price(self, *args):
        return self._curve.spot_price(*args)


def test_first_mint_and_swap() -> None:
    _, pair = _stable()
    assert pair.get_current_a() == 200

    liquidity = deposit(pair, ALICE, 10**6, 10**6)
    assert liquidity == 1_999_000
    assert pair.lp.balance_of(ZERO_ADDRESS) == 1000
    assert pair.last_invariant == 2 * 10**6
    assert pair.last_invariant_amp == 200 * 100

    result = swap_in(pair, BOB, 70_000)
    assert result.amount_out == 69_975
    assert pair.get_reserves()[:2] == (1_070_000, 930_025)


def test_exact_out_matches_exact_in() -> None:
    _, pair = _stable()
    deposit(pair, ALICE, 10**6, 10**6)
    pair.token0.mint(BOB, 70_000)
    pair.token0.transfer(BOB, pair.address, 70_000)
    result = pair.swap(-69_975, False, BOB)
    assert result.amount_in == 70_000


def test_first_mint_needs_both_tokens() -> None:
    _, pair = _stable()
    with pytest.raises(InsufficientLiquidityMinted):
        deposit(pair, ALICE, 10**6, 0)


def test_pro_rata_mint_and_burn() -> None:
    _, pair = _stable()
    deposit(pair, ALICE, 10**6, 10**6)
    liquidity = deposit(pair, BOB, 1000, 1000)
    assert liquidity == 2000
    assert withdraw(pair, BOB, liquidity) == (1000, 1000)


def test_one_sided_round_trip_loses_to_fees() -> None:
    _, pair = _stable(sp_swap_fee=10_000)
    deposit(pair, ALICE, 10**6, 10**6)

    liquidity = deposit(pair, BOB, 100_000, 0)
    out0, out1 = withdraw(pair, BOB, liquidity)
    sold = swap_in(pair, BOB, out1, token0_in=False).amount_out

    assert out0 + sold < 100_000


def test_platform_fee_on_invariant_growth() -> None:
    _, pair = _stable(sp_swap_fee=100, platform_fee=250_000)
    deposit(pair, ALICE, 10**6, 10**6)
    for _ in range(5):
        swap_in(pair, BOB, 100_000)
        swap_in(pair, BOB, 100_000, token0_in=False)
    assert pair.lp.balance_of(FEE_TO) == 0

    deposit(pair, BOB, 1000, 1000)
    assert pair.lp.balance_of(FEE_TO) > 0
    r0, r1, _, _ = pair.get_reserves()
    assert pair.last_invariant == pair.curve.compute_liquidity(r0, r1, pair.get_current_a_precise())


def test_burn_forfeits_fee_when_invariant_fails(monkeypatch, caplog) -> None:
    _, pair = _stable(sp_swap_fee=100, platform_fee=250_000)
    liquidity = deposit(pair, ALICE, 10**6, 10**6)
    swap_in(pair, BOB, 100_000)

    def _fail(**kwargs):
        raise NonConvergenceError("forced")

    monkeypatch.setattr(stable_pair_module, "stable_platform_shares", _fail)
    with caplog.at_level(logging.WARNING, logger="tidepool.core.stable_pair"):
        amounts = withdraw(pair, ALICE, liquidity // 2)

    assert amounts[0] > 0 and amounts[1] > 0
    assert pair.lp.balance_of(FEE_TO) == 0
    assert "platform fee skipped" in caplog.text

    # Mint has no such fallback.
    with pytest.raises(NonConvergenceError):
        deposit(pair, BOB, 1000, 1000)


def test_burn_clears_invariant_when_it_cannot_be_recorded(monkeypatch, caplog) -> None:
    _, pair = _stable()
    liquidity = deposit(pair, ALICE, 10**6, 10**6)

    monkeypatch.setattr(pair, "curve", _FailingInvariant(pair.curve))
    with caplog.at_level(logging.WARNING, logger="tidepool.core.stable_pair"):
        withdraw(pair, ALICE, liquidity // 2)

    assert pair.last_invariant == 0
    assert "invariant not recorded" in caplog.text


def test_ramp_a() -> None:
    factory, pair = _stable()
    now = factory.chain.timestamp

    ramp = factory.ramp_a(pair, 400, now + DAY, caller=OWNER)
    assert (ramp.initial_a, ramp.future_a) == (20_000, 40_000)

    factory.chain.advance(DAY // 2)
    assert pair.get_current_a() == 300

    assert factory.stop_ramp_a(pair, caller=OWNER) == 30_000
    factory.chain.advance(DAY)
    assert pair.get_current_a() == 300


def test_ramp_a_limits() -> None:
    factory, pair = _stable()
    now = factory.chain.timestamp
    with pytest.raises(InvalidParameter):
        factory.ramp_a(pair, 401, now + DAY, caller=OWNER)
    with pytest.raises(InvalidParameter):
        factory.ramp_a(pair, 300, now + DAY - 1, caller=OWNER)
    with pytest.raises(Unauthorized):
        pair.ramp_a(300, now + DAY, caller=OWNER)
    with pytest.raises(Unauthorized):
        factory.ramp_a(pair, 300, now + DAY, caller=ALICE)


def test_swaps_follow_ramped_a() -> None:
    factory, pair = _stable()
    deposit(pair, ALICE, 10**6, 10**6)
    factory.ramp_a(pair, 400, factory.chain.timestamp + DAY, caller=OWNER)
    factory.chain.advance(DAY)

    # Higher A means a flatter curve and less slippage.
    assert swap_in(pair, BOB, 70_000).amount_out > 69_975


def test_mixed_decimals() -> None:
    _, pair = _stable(Chain(timestamp=1_000_000), decimals=(6, 18))
    deposit(pair, ALICE, 10**6 * 10**6, 10**6 * 10**18)
    assert pair.curve.spot_price(*pair.get_reserves()[:2], pair.get_current_a_precise()) == 10**18

    out = swap_in(pair, BOB, 70_000 * 10**6).amount_out
    assert 69_975 * 10**18 < out < 69_976 * 10**18


def test_burn_on_never_minted_pair_rejected() -> None:
    _, pair = _stable()
    with pytest.raises(InsufficientLiquidityBurned):
        pair.burn(ALICE)
    pair.token0.mint(pair.address, 1000)
    with pytest.raises(InsufficientLiquidityBurned):
        pair.burn(ALICE)
