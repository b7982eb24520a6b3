"""
StableSwap pool with a time-ramped amplification coefficient.

Liquidity is priced by invariant growth; an imbalanced deposit pays half the swap
fee on its excess side before its share of D is computed. The platform fee is the
configured fraction of the growth of D since `last_invariant`, evaluated at the
amplification in force when that invariant was recorded.
"""

from __future__ import annotations

import logging
from typing import Tuple

from ..kernels.python.stable_math_v1 import StableMathError
from ..state.balances import Address, Amount, ZERO_ADDRESS
from ..state.pools import CURVE_TAG_STABLE, AmplificationRamp
from . import amm_dispatch
from .cpmm import MINIMUM_LIQUIDITY
from .errors import InsufficientLiquidityBurned, InsufficientLiquidityMinted, InvalidParameter
from .fees import non_optimal_mint_fee, stable_platform_shares
from .pair import Pair
from .stableswap import A_PRECISION, StableCurve, plan_ramp

logger = logging.getLogger(__name__)


class StablePair(Pair):
    config_prefix = "sp"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.curve = StableCurve.for_decimals(self.token0.decimals, self.token1.decimals)

    # ------------------------------------------------------------------ amplification

    @property
    def ramp(self) -> AmplificationRamp:
        return self.state.ramp

    @property
    def last_invariant(self) -> int:
        return self.state.last_invariant

    @property
    def last_invariant_amp(self) -> int:
        return self.state.last_invariant_amp

    def get_current_a_precise(self) -> int:
        return self.state.ramp.current(self.chain.timestamp)

    def get_current_a(self) -> int:
        return self.get_current_a_precise() // A_PRECISION

    def ramp_a(self, future_a: int, future_time: int, *, caller: Address) -> AmplificationRamp:
        """Start moving A linearly to `future_a` (raw) by `future_time`."""
        self._require_factory(caller, "ramp_a")
        now = self.chain.timestamp
        try:
            ramp = plan_ramp(self.get_current_a_precise(), future_a, now, future_time)
        except ValueError as exc:
            raise InvalidParameter(str(exc)) from exc
        self.state.ramp = ramp
        logger.info(
            "%s: ramping A from %d to %d by %d", self.address, ramp.initial_a, ramp.future_a, ramp.future_time
        )
        return ramp

    def stop_ramp_a(self, *, caller: Address) -> int:
        """Freeze A at its currently interpolated value."""
        self._require_factory(caller, "stop_ramp_a")
        now = self.chain.timestamp
        current = self.get_current_a_precise()
        self.state.ramp = AmplificationRamp.constant(current, now)
        logger.info("%s: ramp stopped at A=%d", self.address, current)
        return current

    # ------------------------------------------------------------------ fees

    def _mint_fee(self, reserve0: Amount, reserve1: Amount) -> Amount:
        """Mint the platform's shares; returns the total supply afterwards."""
        s = self.state
        if s.platform_fee == 0 or s.last_invariant == 0:
            return self.lp.total_supply
        invariant = self.curve.compute_liquidity(reserve0, reserve1, s.last_invariant_amp)
        shares = stable_platform_shares(
            total_supply=self.lp.total_supply,
            invariant=invariant,
            last_invariant=s.last_invariant,
            platform_fee=s.platform_fee,
        )
        if shares > 0:
            self.lp.mint(self.factory.read("shared.platform_fee_to"), shares)
            logger.debug("%s: platform fee %d shares", self.address, shares)
        return self.lp.total_supply

    def _record_invariant(self, balance0: Amount, balance1: Amount) -> None:
        a_precise = self.get_current_a_precise()
        self.state.last_invariant = self.curve.compute_liquidity(balance0, balance1, a_precise)
        self.state.last_invariant_amp = a_precise

    # ------------------------------------------------------------------ liquidity

    def _mint(self, to: Address) -> Amount:
        reserve0, reserve1 = self._sync_managed()
        balance0, balance1 = self._total_token0(), self._total_token1()
        amount0 = balance0 - reserve0
        amount1 = balance1 - reserve1
        a_precise = self.get_current_a_precise()

        fee0, fee1 = non_optimal_mint_fee(
            amount0=amount0, amount1=amount1, reserve0=reserve0, reserve1=reserve1, swap_fee=self.state.swap_fee
        )
        total_supply = self._mint_fee(reserve0, reserve1)

        if total_supply == 0:
            if amount0 <= 0 or amount1 <= 0:
                raise InsufficientLiquidityMinted(f"{self.address}: first deposit needs both tokens")
            new_liquidity = self.curve.compute_liquidity(balance0, balance1, a_precise)
            liquidity = new_liquidity - MINIMUM_LIQUIDITY
        else:
            old_liquidity = self.curve.compute_liquidity(reserve0, reserve1, a_precise)
            new_liquidity = self.curve.compute_liquidity(balance0 - fee0, balance1 - fee1, a_precise)
            liquidity = (new_liquidity - old_liquidity) * total_supply // old_liquidity

        if liquidity <= 0:
            raise InsufficientLiquidityMinted(f"{self.address}: deposit ({amount0}, {amount1}) mints nothing")
        if total_supply == 0:
            self.lp.mint(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
        self.lp.mint(to, liquidity)

        self._update(balance0, balance1)
        self._record_invariant(balance0, balance1)
        logger.debug(
            "%s: mint %d shares for (%d, %d), non-optimal fee (%d, %d)",
            self.address, liquidity, amount0, amount1, fee0, fee1,
        )
        return liquidity

    def _burn(self, to: Address) -> Tuple[Amount, Amount]:
        reserve0, reserve1 = self._sync_managed()
        balance0, balance1 = self._total_token0(), self._total_token1()
        liquidity = self.lp.balance_of(self.address)
        if liquidity == 0 or self.lp.total_supply == 0:
            raise InsufficientLiquidityBurned(f"{self.address}: no shares to burn")

        try:
            total_supply = self._mint_fee(reserve0, reserve1)
        except StableMathError as exc:
            # Withdrawals must not be blocked by fee bookkeeping: the fee due is forfeited.
            logger.warning("%s: platform fee skipped on burn: %s", self.address, exc)
            total_supply = self.lp.total_supply

        amount0 = liquidity * balance0 // total_supply
        amount1 = liquidity * balance1 // total_supply
        if amount0 == 0 or amount1 == 0:
            raise InsufficientLiquidityBurned(f"{self.address}: burning {liquidity} shares pays nothing")
        self.lp.burn(self.address, liquidity)

        self._checked_transfer(self.token0, to, amount0)
        self._checked_transfer(self.token1, to, amount1)

        balance0, balance1 = self._total_token0(), self._total_token1()
        self._update(balance0, balance1)
        try:
            self._record_invariant(balance0, balance1)
        except StableMathError as exc:
            logger.warning("%s: invariant not recorded after burn: %s", self.address, exc)
            self.state.last_invariant = 0
        logger.debug("%s: burn %d shares for (%d, %d)", self.address, liquidity, amount0, amount1)
        return amount0, amount1

    # ------------------------------------------------------------------ swap

    def _params(self, token0_in: bool) -> amm_dispatch.StableParams:
        m_in, m_out = (self.multiplier0, self.multiplier1) if token0_in else (self.multiplier1, self.multiplier0)
        return amm_dispatch.StableParams(
            a_precise=self.get_current_a_precise(), multiplier_in=m_in, multiplier_out=m_out
        )

    def _quote_out(self, amount_in: Amount, reserve0: Amount, reserve1: Amount, token0_in: bool) -> Amount:
        reserve_in, reserve_out = (reserve0, reserve1) if token0_in else (reserve1, reserve0)
        return amm_dispatch.quote_out(
            CURVE_TAG_STABLE, amount_in, reserve_in, reserve_out, self.state.swap_fee, self._params(token0_in)
        )

    def _quote_in(self, amount_out: Amount, reserve0: Amount, reserve1: Amount, token0_out: bool) -> Amount:
        reserve_in, reserve_out = (reserve1, reserve0) if token0_out else (reserve0, reserve1)
        return amm_dispatch.quote_in(
            CURVE_TAG_STABLE, amount_out, reserve_in, reserve_out, self.state.swap_fee, self._params(not token0_out)
        )

    def _spot_price(self, reserve0: Amount, reserve1: Amount) -> int:
        return self.curve.spot_price(reserve0, reserve1, self.get_current_a_precise())
