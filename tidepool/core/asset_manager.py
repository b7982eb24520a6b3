"""
Asset manager: lends idle pool reserves to share-based yield vaults.

Each underlying asset maps to at most one vault. Pools hold claims on the
manager's vault position, denominated in vault shares:

    sum(shares[pair][asset] for pair in pairs) == total_shares[vault]

Shares are credited and debited by the change in the manager's own vault share
balance, never by what the vault reports, so stray shares or tokens sent to the
manager are never attributed to a pool (the owner can sweep them with `raw_call`).

After every mint/burn the pair calls `after_liquidity_event`; a token whose managed
fraction has left `[lower_threshold, upper_threshold]` is moved back to the middle of
the band. In wind-down mode every investment is dropped to zero and only
divestments go through.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..state.balances import Address, Amount, Token
from ..state.pools import MAX_RESERVE
from .errors import (
    AmountOverflow,
    InvalidParameter,
    InvalidThresholds,
    ManagedBalanceError,
    ReentrantCall,
    ShareMismatch,
    Unauthorized,
    UnknownPair,
    VaultInUse,
)
from .interfaces import RewardDistributor, Vault
from .lock import ReentrancyGuard
from .log_compression import WAD
from .pair import Pair

logger = logging.getLogger(__name__)

DEFAULT_LOWER_THRESHOLD = 3 * WAD // 10
DEFAULT_UPPER_THRESHOLD = 7 * WAD // 10


class AssetManager:
    def __init__(self, factory, *, owner: Address, guardian: Optional[Address] = None, address: Address) -> None:
        self.factory = factory
        self.chain = factory.chain
        self.owner = owner
        self.guardian = guardian
        self.address = address
        self.lower_threshold = DEFAULT_LOWER_THRESHOLD
        self.upper_threshold = DEFAULT_UPPER_THRESHOLD
        self.wind_down_mode = False
        self._vaults: Dict[Address, Vault] = {}
        self._shares: Dict[Tuple[Address, Address], Amount] = {}
        self._total_shares: Dict[Address, Amount] = {}
        self._lock = ReentrancyGuard(address)
        self.chain.register(self)

    # ------------------------------------------------------------------ views

    def asset_vault(self, asset: Address) -> Optional[Vault]:
        return self._vaults.get(asset)

    def shares(self, pair: Pair, token: Address) -> Amount:
        return self._shares.get((pair.address, token), 0)

    def total_shares(self, vault: Vault) -> Amount:
        return self._total_shares.get(vault.address, 0)

    def get_balance(self, pair: Pair, token: Address) -> Amount:
        """Current value, in `token`, of the pair's claim on the vault position."""
        shares = self.shares(pair, token)
        if shares == 0:
            return 0
        return self._vaults[token].convert_to_assets(shares)

    # ------------------------------------------------------------------ journal

    def snapshot(self) -> tuple:
        return (
            self.guardian,
            self.lower_threshold,
            self.upper_threshold,
            self.wind_down_mode,
            dict(self._vaults),
            dict(self._shares),
            dict(self._total_shares),
        )

    def restore(self, snap: tuple) -> None:
        (
            self.guardian,
            self.lower_threshold,
            self.upper_threshold,
            self.wind_down_mode,
            vaults,
            shares,
            total_shares,
        ) = snap
        self._vaults = dict(vaults)
        self._shares = dict(shares)
        self._total_shares = dict(total_shares)

    # ------------------------------------------------------------------ access

    def _only_owner(self, caller: Address, action: str) -> None:
        if caller != self.owner:
            raise Unauthorized(action, caller)

    def _only_owner_or_guardian(self, caller: Address, action: str) -> None:
        if caller != self.owner and (self.guardian is None or caller != self.guardian):
            raise Unauthorized(action, caller)

    def _only_pair(self, pair: Pair, caller: Address, action: str) -> None:
        self._require_managed_pair(pair)
        if caller != pair.address:
            raise Unauthorized(action, caller)

    def _require_managed_pair(self, pair: Pair) -> None:
        if not self.factory.is_pair(pair):
            raise UnknownPair(f"{getattr(pair, 'address', pair)} is not a registered pair")
        if pair.asset_manager is not self:
            raise UnknownPair(f"{pair.address} is not managed by {self.address}")

    # ------------------------------------------------------------------ owner

    def set_guardian(self, guardian: Optional[Address], *, caller: Address) -> None:
        self._only_owner(caller, "set_guardian")
        self.guardian = guardian
        logger.info("%s: guardian set to %s", self.address, guardian)

    def set_vault_for_asset(self, asset: Token, vault: Optional[Vault], *, caller: Address) -> None:
        self._only_owner(caller, "set_vault_for_asset")
        current = self._vaults.get(asset.address)
        if current is not None and self._total_shares.get(current.address, 0) != 0:
            raise VaultInUse(f"{current.address} still holds shares for {asset.address}")
        if vault is None:
            self._vaults.pop(asset.address, None)
        else:
            if vault.asset.address != asset.address:
                raise InvalidParameter(f"vault {vault.address} holds {vault.asset.address}, not {asset.address}")
            self._vaults[asset.address] = vault
        logger.info("%s: vault for %s set to %s", self.address, asset.address, getattr(vault, "address", None))

    def raw_call(self, target: Any, method: str, *args: Any, caller: Address, **kwargs: Any) -> Any:
        """Invoke `target.method(*args, **kwargs)` on the owner's behalf (e.g. to sweep stray funds)."""
        self._only_owner(caller, "raw_call")
        with self.chain.atomic():
            return getattr(target, method)(*args, **kwargs)

    # ------------------------------------------------------------------ owner or guardian

    def set_thresholds(self, lower: int, upper: int, *, caller: Address) -> None:
        self._only_owner_or_guardian(caller, "set_thresholds")
        if not (0 <= lower <= upper <= WAD):
            raise InvalidThresholds(f"thresholds must satisfy 0 <= lower <= upper <= 1e18: ({lower}, {upper})")
        self.lower_threshold = lower
        self.upper_threshold = upper
        logger.info("%s: thresholds set to [%d, %d]", self.address, lower, upper)

    def set_wind_down_mode(self, enabled: bool, *, caller: Address) -> None:
        self._only_owner_or_guardian(caller, "set_wind_down_mode")
        self.wind_down_mode = bool(enabled)
        logger.info("%s: wind-down mode %s", self.address, "on" if enabled else "off")

    def claim_rewards(
        self,
        distributor: RewardDistributor,
        users: Sequence[Address],
        tokens: Sequence[Token],
        amounts: Sequence[Amount],
        proofs: Sequence[Sequence[bytes]],
        *,
        caller: Address,
    ) -> Dict[Address, Amount]:
        """Claim rewards; the amounts actually received are re-read from balances."""
        self._only_owner_or_guardian(caller, "claim_rewards")
        with self.chain.atomic():
            before = {t.address: t.balance_of(self.address) for t in tokens}
            distributor.claim(users, [t.address for t in tokens], amounts, proofs)
            received = {t.address: t.balance_of(self.address) - before[t.address] for t in tokens}
        logger.info("%s: claimed rewards %s", self.address, received)
        return received

    def distribute_rewards(self, asset: Token, amount: Amount, pairs: Sequence[Pair], *, caller: Address) -> Amount:
        """
        Deposit `amount` of `asset` held by the manager and split the new shares
        across `pairs` in proportion to their current shares. The last pair takes
        the rounding remainder. Returns the number of shares distributed.
        """
        self._only_owner_or_guardian(caller, "distribute_rewards")
        vault = self._vaults.get(asset.address)
        if vault is None:
            raise InvalidParameter(f"no vault configured for {asset.address}")
        if not pairs:
            raise InvalidParameter("no pairs to distribute to")
        if len({p.address for p in pairs}) != len(pairs):
            raise InvalidParameter("duplicate pairs in distribution list")
        for pair in pairs:
            if not self.factory.is_pair(pair):
                raise UnknownPair(f"{pair.address} is not a registered pair")

        weights: List[Amount] = [self.shares(p, asset.address) for p in pairs]
        denominator = sum(weights)
        if denominator == 0:
            raise InvalidParameter("listed pairs hold no shares")

        with self.chain.atomic():
            new_shares = self._deposit(vault, asset, amount)
            distributed = 0
            for i, (pair, weight) in enumerate(zip(pairs, weights)):
                portion = new_shares - distributed if i == len(pairs) - 1 else new_shares * weight // denominator
                self._credit(pair, asset.address, vault, portion)
                distributed += portion
        logger.info("%s: distributed %d %s shares over %d pairs", self.address, new_shares, vault.address, len(pairs))
        return new_shares

    # ------------------------------------------------------------------ management

    def adjust_management(self, pair: Pair, delta0: int, delta1: int, *, caller: Address) -> None:
        """Invest (positive) or divest (negative) the pair's reserves."""
        self._only_owner(caller, "adjust_management")
        if abs(delta0) > MAX_RESERVE or abs(delta1) > MAX_RESERVE:
            raise AmountOverflow(f"management delta exceeds 2^104 - 1: ({delta0}, {delta1})")
        self._require_managed_pair(pair)
        with self.chain.atomic():
            with self._lock.hold("adjust_management"):
                self._adjust(pair, delta0, delta1)

    def after_liquidity_event(self, pair: Pair, *, caller: Address) -> None:
        """Rebalance the pair's managed fractions back into the threshold band."""
        self._only_pair(pair, caller, "after_liquidity_event")
        if pair.locked:
            raise ReentrantCall(f"{pair.address}: rebalance while the pair is locked")
        with self.chain.atomic():
            with self._lock.hold("after_liquidity_event"):
                reserve0, reserve1, _, _ = pair.get_reserves()
                delta0 = self._calculate_change(pair.token0.address, pair.token0_managed, reserve0)
                delta1 = self._calculate_change(pair.token1.address, pair.token1_managed, reserve1)
                if delta0 or delta1:
                    self._adjust(pair, delta0, delta1)

    def return_asset(self, pair: Pair, amount0: Amount, amount1: Amount, *, caller: Address) -> None:
        """Divest exactly (amount0, amount1) back to the pair to cover a payout shortfall."""
        self._only_pair(pair, caller, "return_asset")
        if amount0 < 0 or amount1 < 0:
            raise InvalidParameter(f"return amounts must be non-negative: ({amount0}, {amount1})")
        with self.chain.atomic():
            with self._lock.hold("return_asset"):
                self._adjust(pair, -amount0, -amount1)

    def _calculate_change(self, token: Address, managed: Amount, reserve: Amount) -> int:
        if token not in self._vaults or reserve == 0:
            return 0
        fraction = managed * WAD // reserve
        if self.lower_threshold <= fraction <= self.upper_threshold:
            return 0
        target = reserve * ((self.lower_threshold + self.upper_threshold) // 2) // WAD
        return target - managed

    def _adjust(self, pair: Pair, delta0: int, delta1: int) -> None:
        token0, token1 = pair.token0, pair.token1
        vault0 = self._vaults.get(token0.address)
        vault1 = self._vaults.get(token1.address)
        if vault0 is None:
            delta0 = 0
        if vault1 is None:
            delta1 = 0
        if self.wind_down_mode:
            delta0 = min(delta0, 0)
            delta1 = min(delta1, 0)
        if delta0 == 0 and delta1 == 0:
            return

        if delta0 < 0:
            self._divest(pair, token0, vault0, -delta0)
        if delta1 < 0:
            self._divest(pair, token1, vault1, -delta1)

        pair.adjust_management(delta0, delta1, caller=self.address)

        if delta0 > 0:
            self._invest(pair, token0, vault0, delta0)
        if delta1 > 0:
            self._invest(pair, token1, vault1, delta1)

    def _deposit(self, vault: Vault, asset: Token, amount: Amount) -> Amount:
        before = vault.balance_of(self.address)
        vault.deposit(amount, self.address, caller=self.address)
        return vault.balance_of(self.address) - before

    def _credit(self, pair: Pair, token: Address, vault: Vault, shares: Amount) -> None:
        key = (pair.address, token)
        self._shares[key] = self._shares.get(key, 0) + shares
        self._total_shares[vault.address] = self._total_shares.get(vault.address, 0) + shares

    def _invest(self, pair: Pair, token: Token, vault: Vault, amount: Amount) -> None:
        shares = self._deposit(vault, token, amount)
        self._credit(pair, token.address, vault, shares)
        logger.debug("%s: invested %d %s for %s -> %d shares", self.address, amount, token.address, pair.address, shares)

    def _divest(self, pair: Pair, token: Token, vault: Vault, amount: Amount) -> None:
        key = (pair.address, token.address)
        expected = vault.preview_withdraw(amount)
        if expected > self._shares.get(key, 0):
            raise ManagedBalanceError(f"{pair.address} has no claim on {amount} of {token.address}")

        before = vault.balance_of(self.address)
        vault.withdraw(amount, self.address, self.address, caller=self.address)
        burned = before - vault.balance_of(self.address)
        if burned != expected:
            raise ShareMismatch(f"{vault.address}: burned {burned} shares, quoted {expected}")

        self._shares[key] -= burned
        self._total_shares[vault.address] -= burned
        logger.debug("%s: divested %d %s for %s <- %d shares", self.address, amount, token.address, pair.address, burned)
