"""
Constant-product pool: x * y = k.

The platform fee is collected at liquidity events by minting shares worth
`platform_fee` of the growth in sqrt(k) since `k_last`.
"""

from __future__ import annotations

import logging
from typing import Tuple

from ..state.balances import Address, Amount, ZERO_ADDRESS
from ..state.pools import CURVE_TAG_CONSTANT_PRODUCT
from . import amm_dispatch, cpmm
from .errors import InsufficientLiquidityBurned, InsufficientLiquidityMinted
from .fees import constant_product_fee_shares
from .pair import Pair

logger = logging.getLogger(__name__)


class ConstantProductPair(Pair):
    config_prefix = "cp"

    @property
    def k_last(self) -> int:
        return self.state.k_last

    def _mint_fee(self, reserve0: Amount, reserve1: Amount) -> Amount:
        """Mint the platform's shares; returns the total supply afterwards."""
        s = self.state
        shares = constant_product_fee_shares(
            reserve0=reserve0,
            reserve1=reserve1,
            k_last=s.k_last,
            platform_fee=s.platform_fee,
            total_supply=self.lp.total_supply,
        )
        if shares > 0:
            self.lp.mint(self.factory.read("shared.platform_fee_to"), shares)
            logger.debug("%s: platform fee %d shares", self.address, shares)
        return self.lp.total_supply

    def _record_k(self, balance0: Amount, balance1: Amount) -> None:
        s = self.state
        s.k_last = balance0 * balance1 if s.platform_fee > 0 else 0

    def _mint(self, to: Address) -> Amount:
        reserve0, reserve1 = self._sync_managed()
        balance0, balance1 = self._total_token0(), self._total_token1()
        amount0 = balance0 - reserve0
        amount1 = balance1 - reserve1

        total_supply = self._mint_fee(reserve0, reserve1)
        liquidity = cpmm.compute_lp_mint(reserve0, reserve1, amount0, amount1, total_supply)
        if liquidity <= 0:
            raise InsufficientLiquidityMinted(f"{self.address}: deposit ({amount0}, {amount1}) mints nothing")
        if total_supply == 0:
            self.lp.mint(ZERO_ADDRESS, cpmm.MINIMUM_LIQUIDITY)
        self.lp.mint(to, liquidity)

        self._update(balance0, balance1)
        self._record_k(balance0, balance1)
        logger.debug("%s: mint %d shares for (%d, %d)", self.address, liquidity, amount0, amount1)
        return liquidity

    def _burn(self, to: Address) -> Tuple[Amount, Amount]:
        reserve0, reserve1 = self._sync_managed()
        balance0, balance1 = self._total_token0(), self._total_token1()
        liquidity = self.lp.balance_of(self.address)
        if liquidity == 0 or self.lp.total_supply == 0:
            raise InsufficientLiquidityBurned(f"{self.address}: no shares to burn")

        total_supply = self._mint_fee(reserve0, reserve1)
        amount0, amount1 = cpmm.compute_lp_burn(liquidity, balance0, balance1, total_supply)
        if amount0 == 0 or amount1 == 0:
            raise InsufficientLiquidityBurned(f"{self.address}: burning {liquidity} shares pays nothing")
        self.lp.burn(self.address, liquidity)

        self._checked_transfer(self.token0, to, amount0)
        self._checked_transfer(self.token1, to, amount1)

        balance0, balance1 = self._total_token0(), self._total_token1()
        self._update(balance0, balance1)
        self._record_k(balance0, balance1)
        logger.debug("%s: burn %d shares for (%d, %d)", self.address, liquidity, amount0, amount1)
        return amount0, amount1

    def _quote_out(self, amount_in: Amount, reserve0: Amount, reserve1: Amount, token0_in: bool) -> Amount:
        reserve_in, reserve_out = (reserve0, reserve1) if token0_in else (reserve1, reserve0)
        return amm_dispatch.quote_out(
            CURVE_TAG_CONSTANT_PRODUCT, amount_in, reserve_in, reserve_out, self.state.swap_fee
        )

    def _quote_in(self, amount_out: Amount, reserve0: Amount, reserve1: Amount, token0_out: bool) -> Amount:
        reserve_in, reserve_out = (reserve1, reserve0) if token0_out else (reserve0, reserve1)
        return amm_dispatch.quote_in(
            CURVE_TAG_CONSTANT_PRODUCT, amount_out, reserve_in, reserve_out, self.state.swap_fee
        )

    def _spot_price(self, reserve0: Amount, reserve1: Amount) -> int:
        return cpmm.spot_price(reserve0, reserve1, self.multiplier0, self.multiplier1)
