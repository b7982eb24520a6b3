"""
LP share balance tracking for a single pool.

Mint/burn are driven by the pool ledger; `transfer` is the one movement holders need
(sending shares to the pool ahead of a burn). Allowances are not modelled.
"""

from __future__ import annotations

from typing import Dict

from .balances import Address, Amount


class LPTable:
    """
    Deterministic LP balance table mapping holder -> share amount.

    Notes:
    - LP balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[Address, Amount] = {}
        self._total_supply: Amount = 0

    @property
    def total_supply(self) -> Amount:
        return self._total_supply

    def balance_of(self, holder: Address) -> Amount:
        """Get LP balance for holder. Returns 0 if not found."""
        return self._balances.get(holder, 0)

    def _set(self, holder: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"LP balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop(holder, None)
        else:
            self._balances[holder] = amount

    def mint(self, to: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        self._set(to, self.balance_of(to) + amount)
        self._total_supply += amount

    def burn(self, holder: Address, amount: Amount) -> None:
        current = self.balance_of(holder)
        if amount < 0 or amount > current:
            raise ValueError(f"Insufficient LP balance: {current} < {amount}")
        self._set(holder, current - amount)
        self._total_supply -= amount

    def transfer(self, sender: Address, recipient: Address, amount: Amount) -> None:
        current = self.balance_of(sender)
        if amount < 0 or amount > current:
            raise ValueError(f"Insufficient LP balance: {current} < {amount}")
        self._set(sender, current - amount)
        self._set(recipient, self.balance_of(recipient) + amount)

    def verify_supply(self) -> bool:
        """Verify stored balances are non-negative and sum to the total supply."""
        return all(a >= 0 for a in self._balances.values()) and sum(self._balances.values()) == self._total_supply

    def snapshot(self) -> tuple:
        return dict(self._balances), self._total_supply

    def restore(self, snap: tuple) -> None:
        balances, total_supply = snap
        self._balances = dict(balances)
        self._total_supply = total_supply

    def __repr__(self) -> str:
        return f"LPTable({len(self._balances)} entries, total_supply={self._total_supply})"
