"""
Token balance ledger.

A `Token` is the minimal fungible-asset model the pools need: per-holder balances,
a total supply, and a transfer that fails loudly when the sender is short.
"""

from __future__ import annotations

from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .chain import Chain


# Type aliases
Address = str
Amount = int  # Non-negative integer (arbitrary precision)

ZERO_ADDRESS = "0x" + "00" * 20


class InsufficientBalance(ValueError):
    """Raised when a transfer would drive the sender's balance negative."""

    def __init__(self, token: Address, holder: Address, balance: Amount, amount: Amount) -> None:
        self.token = token
        self.holder = holder
        self.balance = balance
        self.amount = amount
        super().__init__(f"{token}: insufficient balance for {holder}: {balance} < {amount}")


class Token:
    """
    Fungible token ledger mapping holder -> amount.

    Note: balances are stored in a plain dict. Zero balances are dropped to keep the
    table sparse; callers must not rely on dict iteration order.
    """

    def __init__(self, address: Address, decimals: int = 18, *, chain: Optional["Chain"] = None) -> None:
        if not isinstance(address, str) or not address:
            raise ValueError("token address must be a non-empty string")
        if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 77):
            raise ValueError(f"decimals out of range: {decimals}")
        self.address = address
        self.decimals = decimals
        self._balances: Dict[Address, Amount] = {}
        self._total_supply: Amount = 0
        if chain is not None:
            chain.register(self)

    @property
    def total_supply(self) -> Amount:
        return self._total_supply

    def balance_of(self, holder: Address) -> Amount:
        """Get balance for holder. Returns 0 if not found."""
        return self._balances.get(holder, 0)

    def _set(self, holder: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop(holder, None)
        else:
            self._balances[holder] = amount

    def mint(self, to: Address, amount: Amount) -> None:
        """Create `amount` new units for `to` (test/demo faucet)."""
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        self._set(to, self.balance_of(to) + amount)
        self._total_supply += amount

    def burn(self, holder: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Burn amount must be non-negative: {amount}")
        current = self.balance_of(holder)
        if current < amount:
            raise InsufficientBalance(self.address, holder, current, amount)
        self._set(holder, current - amount)
        self._total_supply -= amount

    def transfer(self, sender: Address, recipient: Address, amount: Amount) -> None:
        """
        Move `amount` from sender to recipient.

        Raises:
            ValueError: If amount is negative
            InsufficientBalance: If the sender holds less than `amount`
        """
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        current = self.balance_of(sender)
        if current < amount:
            raise InsufficientBalance(self.address, sender, current, amount)
        self._set(sender, current - amount)
        self._set(recipient, self.balance_of(recipient) + amount)

    def snapshot(self) -> tuple:
        return dict(self._balances), self._total_supply

    def restore(self, snap: tuple) -> None:
        balances, total_supply = snap
        self._balances = dict(balances)
        self._total_supply = total_supply

    def __repr__(self) -> str:
        return f"Token({self.address}, decimals={self.decimals}, holders={len(self._balances)})"
