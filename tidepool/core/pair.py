"""
Pool ledger shared by both curve families.

A `Pair` owns one `PoolState`, its LP share table and its oracle buffer. Every
permissionless entrypoint follows the same sequence:

1. take the pool lock (re-entry raises `ReentrantCall`),
2. reconcile managed balances against the asset manager's valuation,
3. do the curve-specific work (`_mint`, `_burn`, swap quoting),
4. write reserves and the oracle (`_update`),
5. release the lock and, after mint/burn, let the asset manager rebalance.

All of it runs inside `Chain.atomic()`, so a failure anywhere (including inside a
flash-swap callee or the manager callback) leaves no trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, Tuple

from ..kernels.python.stable_math_v1 import precision_multiplier
from ..state.balances import Address, Amount, InsufficientBalance, Token
from ..state.lp import LPTable
from ..state.observations import Observation, ObservationBuffer, to_block_timestamp
from ..state.pools import MAX_RESERVE, PoolState
from . import oracle
from .errors import (
    AmountOverflow,
    InsufficientAmountIn,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidParameter,
    ManagedBalanceError,
    ReserveOverflow,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from .fees import FeeParams, validate_platform_fee, validate_swap_fee
from .interfaces import AssetManagerHooks, SwapCallee
from .lock import ReentrancyGuard

if TYPE_CHECKING:  # pragma: no cover
    from ..state.chain import Chain
    from .factory import Factory

logger = logging.getLogger(__name__)


def _validated(validate, value: int) -> int:
    try:
        return validate(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(str(exc)) from exc


@dataclass(frozen=True)
class SwapResult:
    token_in: Address
    token_out: Address
    amount_in: Amount
    amount_out: Amount


class Pair:
    """Base pool ledger; subclasses supply the curve."""

    # Config namespace holding this curve's default swap fee.
    config_prefix = ""

    def __init__(self, factory: "Factory", token0: Token, token1: Token, state: PoolState, *, oracle_capacity: int) -> None:
        if (token0.address, token1.address) != (state.token0, state.token1):
            raise ValueError("token objects do not match the pool record")
        self.factory = factory
        self.chain: "Chain" = factory.chain
        self.token0 = token0
        self.token1 = token1
        self.multiplier0 = precision_multiplier(token0.decimals)
        self.multiplier1 = precision_multiplier(token1.decimals)
        self.state = state
        self.lp = LPTable()
        self.observations = ObservationBuffer(oracle_capacity)
        self.asset_manager: Optional[AssetManagerHooks] = None
        self._lock = ReentrancyGuard(state.pool_id)
        self.chain.register(self)

    # ------------------------------------------------------------------ views

    @property
    def address(self) -> Address:
        return self.state.pool_id

    @property
    def swap_fee(self) -> int:
        return self.state.swap_fee

    @property
    def platform_fee(self) -> int:
        return self.state.platform_fee

    @property
    def token0_managed(self) -> Amount:
        return self.state.token0_managed

    @property
    def token1_managed(self) -> Amount:
        return self.state.token1_managed

    @property
    def locked(self) -> bool:
        return self._lock.locked

    def get_reserves(self) -> Tuple[Amount, Amount, int, int]:
        s = self.state
        return s.reserve0, s.reserve1, s.block_timestamp_last, self.observations.index

    def observation(self, index: int) -> Observation:
        return self.observations.get(index)

    def _token(self, address: Address) -> Token:
        if address == self.token0.address:
            return self.token0
        if address == self.token1.address:
            return self.token1
        raise InvalidParameter(f"{address} is not a token of pair {self.address}")

    # ------------------------------------------------------------------ journal

    def snapshot(self) -> tuple:
        return (
            replace(self.state),
            self.lp.snapshot(),
            self.observations.snapshot(),
            self.asset_manager,
        )

    def restore(self, snap: tuple) -> None:
        state, lp, observations, manager = snap
        self.state = replace(state)
        self.lp.restore(lp)
        self.observations.restore(observations)
        self.asset_manager = manager

    # ------------------------------------------------------------------ curve hooks

    def _mint(self, to: Address) -> Amount:
        raise NotImplementedError

    def _burn(self, to: Address) -> Tuple[Amount, Amount]:
        raise NotImplementedError

    def _quote_out(self, amount_in: Amount, reserve0: Amount, reserve1: Amount, token0_in: bool) -> Amount:
        raise NotImplementedError

    def _quote_in(self, amount_out: Amount, reserve0: Amount, reserve1: Amount, token0_out: bool) -> Amount:
        raise NotImplementedError

    def _spot_price(self, reserve0: Amount, reserve1: Amount) -> int:
        raise NotImplementedError

    # ------------------------------------------------------------------ internals

    def _total_token0(self) -> Amount:
        return self.token0.balance_of(self.address) + self.state.token0_managed

    def _total_token1(self) -> Amount:
        return self.token1.balance_of(self.address) + self.state.token1_managed

    def _handle_report(self, token: Address, reserve: Amount, prev_managed: Amount, new_managed: Amount) -> Amount:
        if new_managed > prev_managed:
            reserve += new_managed - prev_managed
            if reserve > MAX_RESERVE:
                raise ReserveOverflow(f"{self.address}: managed profit pushes {token} reserve past 2^104")
            logger.debug("%s: managed %s profit %d", self.address, token, new_managed - prev_managed)
        elif new_managed < prev_managed:
            reserve -= prev_managed - new_managed
            logger.debug("%s: managed %s loss %d", self.address, token, prev_managed - new_managed)
        return reserve

    def _sync_managed(self) -> Tuple[Amount, Amount]:
        """Fold the manager's current valuation into the reserves; returns the new reserves."""
        s = self.state
        if self.asset_manager is None:
            return s.reserve0, s.reserve1
        new0 = self.asset_manager.get_balance(self, s.token0)
        new1 = self.asset_manager.get_balance(self, s.token1)
        s.reserve0 = self._handle_report(s.token0, s.reserve0, s.token0_managed, new0)
        s.reserve1 = self._handle_report(s.token1, s.reserve1, s.token1_managed, new1)
        s.token0_managed = new0
        s.token1_managed = new1
        return s.reserve0, s.reserve1

    def _checked_transfer(self, token: Token, to: Address, amount: Amount) -> None:
        """
        Pay `amount` of `token` out of the pool.

        When the physical balance is short because funds are parked with the asset
        manager, the exact shortfall is requested back once and the transfer retried.
        """
        try:
            token.transfer(self.address, to, amount)
            return
        except InsufficientBalance as exc:
            if self.asset_manager is None:
                raise TransferFailed(f"{self.address}: cannot pay {amount} of {token.address}") from exc
            missing = amount - exc.balance

        logger.warning("%s: returning %d of %s from the asset manager", self.address, missing, token.address)
        if token is self.token0:
            self.asset_manager.return_asset(self, missing, 0, caller=self.address)
        else:
            self.asset_manager.return_asset(self, 0, missing, caller=self.address)

        try:
            token.transfer(self.address, to, amount)
        except InsufficientBalance as exc:
            raise TransferFailed(f"{self.address}: cannot pay {amount} of {token.address} after return") from exc

    def _update(self, balance0: Amount, balance1: Amount) -> None:
        if balance0 > MAX_RESERVE or balance1 > MAX_RESERVE:
            raise ReserveOverflow(f"{self.address}: balances ({balance0}, {balance1}) exceed 2^104 - 1")
        s = self.state
        if s.token0_managed > balance0 or s.token1_managed > balance1:
            raise ManagedBalanceError(f"{self.address}: managed amounts exceed reserves")
        s.reserve0 = balance0
        s.reserve1 = balance1
        if balance0 != 0 and balance1 != 0:
            oracle.record(
                self.observations,
                self._spot_price(balance0, balance1),
                self.chain.timestamp,
                max_change_rate=s.max_change_rate,
                max_change_per_trade=s.max_change_per_trade,
            )
        s.block_timestamp_last = to_block_timestamp(self.chain.timestamp)

    def _manager_callback(self) -> None:
        if self.asset_manager is not None:
            self.asset_manager.after_liquidity_event(self, caller=self.address)

    def _require_factory(self, caller: Address, action: str) -> None:
        if caller != self.factory.address:
            raise Unauthorized(action, caller)

    # ------------------------------------------------------------------ liquidity

    def mint(self, to: Address) -> Amount:
        """Mint LP shares for whatever was sent to the pool since the last sync."""
        with self.chain.atomic():
            with self._lock.hold("mint"):
                liquidity = self._mint(to)
            self._manager_callback()
        return liquidity

    def burn(self, to: Address) -> Tuple[Amount, Amount]:
        """Burn the LP shares held by the pool itself and pay out both tokens pro rata."""
        with self.chain.atomic():
            with self._lock.hold("burn"):
                amounts = self._burn(to)
            self._manager_callback()
        return amounts

    # ------------------------------------------------------------------ swap

    def swap(
        self,
        amount: int,
        exact_in: bool,
        to: Address,
        data: bytes = b"",
        *,
        initiator: Optional[Address] = None,
        callee: Optional[SwapCallee] = None,
    ) -> SwapResult:
        """
        Swap against the pool.

        `amount` names the token0 side when positive and the token1 side when negative:
        the amount paid in for exact-in swaps, the amount taken out for exact-out ones.
        The output is paid first; with non-empty `data` the callee is then invoked and
        the input is verified by balance afterwards.
        """
        with self.chain.atomic():
            with self._lock.hold("swap"):
                return self._swap(amount, exact_in, to, data, initiator, callee)

    def _swap(
        self,
        amount: int,
        exact_in: bool,
        to: Address,
        data: bytes,
        initiator: Optional[Address],
        callee: Optional[SwapCallee],
    ) -> SwapResult:
        if amount == 0:
            raise ZeroAmount(f"{self.address}: zero swap amount")
        if abs(amount) > MAX_RESERVE:
            raise AmountOverflow(f"{self.address}: swap amount exceeds 2^104 - 1: {amount}")
        if data and callee is None:
            raise InvalidParameter("flash swap data supplied without a callee")

        reserve0, reserve1 = self._sync_managed()
        if reserve0 == 0 or reserve1 == 0:
            raise InsufficientLiquidity(f"{self.address}: empty pool")

        if exact_in:
            token0_in = amount > 0
            amount_in = abs(amount)
            amount_out = self._quote_out(amount_in, reserve0, reserve1, token0_in)
            if amount_out == 0:
                raise InsufficientOutputAmount(f"{self.address}: {amount_in} in buys nothing")
        else:
            token0_in = amount < 0
            amount_out = abs(amount)
            if amount_out >= (reserve1 if token0_in else reserve0):
                raise InsufficientLiquidity(f"{self.address}: cannot take {amount_out} out")
            amount_in = self._quote_in(amount_out, reserve0, reserve1, not token0_in)

        token_in, token_out = (self.token0, self.token1) if token0_in else (self.token1, self.token0)
        self._checked_transfer(token_out, to, amount_out)

        if data:
            delta0, delta1 = (amount_in, -amount_out) if token0_in else (-amount_out, amount_in)
            callee.on_swap(initiator if initiator is not None else to, delta0, delta1, data)

        balance0, balance1 = self._total_token0(), self._total_token1()
        received = balance0 - reserve0 if token0_in else balance1 - reserve1
        if received < amount_in:
            raise InsufficientAmountIn(f"{self.address}: received {received} < required {amount_in}")

        self._update(balance0, balance1)
        logger.debug(
            "%s: swap %d %s -> %d %s", self.address, amount_in, token_in.address, amount_out, token_out.address
        )
        return SwapResult(
            token_in=token_in.address, token_out=token_out.address, amount_in=amount_in, amount_out=amount_out
        )

    # ------------------------------------------------------------------ maintenance

    def skim(self, to: Address) -> Tuple[Amount, Amount]:
        """Send any physical balance above the unmanaged part of the reserves to `to`."""
        with self.chain.atomic():
            with self._lock.hold("skim"):
                reserve0, reserve1 = self._sync_managed()
                s = self.state
                excess0 = max(self.token0.balance_of(self.address) - (reserve0 - s.token0_managed), 0)
                excess1 = max(self.token1.balance_of(self.address) - (reserve1 - s.token1_managed), 0)
                if excess0:
                    self._checked_transfer(self.token0, to, excess0)
                if excess1:
                    self._checked_transfer(self.token1, to, excess1)
                return excess0, excess1

    def sync(self) -> None:
        """Force the reserves to match the current balances."""
        with self.chain.atomic():
            with self._lock.hold("sync"):
                self._sync_managed()
                self._update(self._total_token0(), self._total_token1())

    def recover_token(self, token: Token) -> Amount:
        """Send the pool's whole balance of a non-pool token to the configured recoverer."""
        if token.address in (self.state.token0, self.state.token1):
            raise InvalidParameter(f"{token.address} is a pool token")
        with self.chain.atomic():
            with self._lock.hold("recover_token"):
                recoverer = self.factory.read("shared.recoverer")
                amount = token.balance_of(self.address)
                token.transfer(self.address, recoverer, amount)
        logger.info("%s: recovered %d of %s to %s", self.address, amount, token.address, recoverer)
        return amount

    # ------------------------------------------------------------------ fees

    def set_custom_swap_fee(self, fee: Optional[int], *, caller: Address) -> None:
        self._require_factory(caller, "set_custom_swap_fee")
        if fee is not None:
            _validated(validate_swap_fee, fee)
        self.state.custom_swap_fee = fee
        self.update_swap_fee()

    def set_custom_platform_fee(self, fee: Optional[int], *, caller: Address) -> None:
        self._require_factory(caller, "set_custom_platform_fee")
        if fee is not None:
            _validated(validate_platform_fee, fee)
        self.state.custom_platform_fee = fee
        self.update_platform_fee()

    def _fee_params(self) -> FeeParams:
        s = self.state
        return FeeParams(
            default_swap_fee=self.factory.read(f"{self.config_prefix}.swap_fee"),
            default_platform_fee=self.factory.read("shared.platform_fee"),
            custom_swap_fee=s.custom_swap_fee,
            custom_platform_fee=s.custom_platform_fee,
        )

    def update_swap_fee(self) -> int:
        self.state.swap_fee = self._fee_params().swap_fee
        return self.state.swap_fee

    def update_platform_fee(self) -> int:
        self.state.platform_fee = self._fee_params().platform_fee
        return self.state.platform_fee

    def set_clamp_params(self, max_change_rate: int, max_change_per_trade: int, *, caller: Address) -> None:
        self._require_factory(caller, "set_clamp_params")
        try:
            oracle.validate_clamp_params(max_change_rate, max_change_per_trade)
        except ValueError as exc:
            raise InvalidParameter(str(exc)) from exc
        self.state.max_change_rate = max_change_rate
        self.state.max_change_per_trade = max_change_per_trade

    # ------------------------------------------------------------------ asset management

    def set_manager(self, manager: Optional[AssetManagerHooks], *, caller: Address) -> None:
        self._require_factory(caller, "set_manager")
        if self.state.token0_managed != 0 or self.state.token1_managed != 0:
            raise InvalidParameter(f"{self.address}: cannot change manager while funds are managed")
        self.asset_manager = manager
        logger.info("%s: asset manager set to %s", self.address, getattr(manager, "address", None))

    def adjust_management(self, delta0: int, delta1: int, *, caller: Address) -> None:
        """
        Move reserves to (positive) or back from (negative) the asset manager.

        Not guarded by the pool lock: the manager calls this while returning assets
        in the middle of a burn or swap.
        """
        manager = self.asset_manager
        if manager is None or caller != manager.address:
            raise Unauthorized("adjust_management", caller)
        s = self.state
        if abs(delta0) > MAX_RESERVE or abs(delta1) > MAX_RESERVE:
            raise AmountOverflow(f"{self.address}: management delta exceeds 2^104 - 1")

        managed0 = s.token0_managed + delta0
        managed1 = s.token1_managed + delta1
        if managed0 < 0 or managed1 < 0:
            raise ManagedBalanceError(f"{self.address}: managed amounts would go negative")
        if managed0 > s.reserve0 or managed1 > s.reserve1:
            raise ManagedBalanceError(f"{self.address}: managed amounts would exceed reserves")
        s.token0_managed = managed0
        s.token1_managed = managed1

        for token, delta in ((self.token0, delta0), (self.token1, delta1)):
            if delta > 0:
                token.transfer(self.address, manager.address, delta)
            elif delta < 0:
                token.transfer(manager.address, self.address, -delta)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.state!r})"
