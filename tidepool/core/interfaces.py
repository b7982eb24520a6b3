"""
Collaborator capabilities the ledger talks to.

These are structural types only. Vaults follow the share-based vault surface
(deposit/withdraw with preview quotes); Python has no implicit message sender, so
calls that move the caller's funds take an explicit `caller` address.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from ..state.balances import Address, Amount, Token

if TYPE_CHECKING:  # pragma: no cover
    from .pair import Pair


@runtime_checkable
class Vault(Protocol):
    address: Address

    @property
    def asset(self) -> Token: ...

    def preview_deposit(self, assets: Amount) -> Amount: ...

    def deposit(self, assets: Amount, receiver: Address, *, caller: Address) -> Amount: ...

    def preview_withdraw(self, assets: Amount) -> Amount: ...

    def withdraw(self, assets: Amount, receiver: Address, owner: Address, *, caller: Address) -> Amount: ...

    def convert_to_assets(self, shares: Amount) -> Amount: ...

    def balance_of(self, holder: Address) -> Amount: ...


@runtime_checkable
class SwapCallee(Protocol):
    def on_swap(self, initiator: Address, delta0: int, delta1: int, data: bytes) -> None:
        """Flash-swap hook; must pay the pool the positive delta before returning."""


class RewardDistributor(Protocol):
    def claim(
        self,
        users: Sequence[Address],
        tokens: Sequence[Address],
        amounts: Sequence[Amount],
        proofs: Sequence[Sequence[bytes]],
    ) -> None: ...


class AssetManagerHooks(Protocol):
    """What a pair needs from the manager it delegates reserves to."""

    address: Address

    def get_balance(self, pair: "Pair", token: Address) -> Amount: ...

    def after_liquidity_event(self, pair: "Pair", *, caller: Address) -> None: ...

    def return_asset(self, pair: "Pair", amount0: Amount, amount1: Amount, *, caller: Address) -> None: ...
