"""Funds held in the ledger's custody."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class TransferResult:
    """Result of a transfer out of custody."""

    success: bool
    recipient: str
    amount: int
    balance_after: int
    error: Optional[str] = None


class Custody:
    """Running balance of everything the ledger holds.

    Funding a gig and inbound payments deposit; payouts and withdrawals
    debit. The balance never goes negative.
    """

    def __init__(self, balance: int = 0):
        if balance < 0:
            raise ValueError("Custody balance cannot be negative")
        self._balance = balance

    @property
    def balance(self) -> int:
        return self._balance

    def can_cover(self, amount: int) -> bool:
        return 0 <= amount <= self._balance

    def deposit(self, amount: int) -> int:
        if amount < 0:
            raise ValueError("Deposit amount cannot be negative")
        self._balance += amount
        return self._balance

    def debit(self, amount: int) -> int:
        if not self.can_cover(amount):
            raise ValueError(f"Cannot debit {amount} from balance {self._balance}")
        self._balance -= amount
        return self._balance
