# src/customer.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from errors import InsufficientBalanceError
from products import to_decimal


@dataclass(eq=False)
class Customer:
    """A shopper paying from a prepaid balance."""
    name: str
    balance: Decimal

    def __post_init__(self) -> None:
        self.balance = to_decimal(self.balance)
        if self.balance < 0:
            raise ValueError(f"Balance of {self.name} must not be negative")

    def can_afford(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def pay(self, amount: Decimal) -> None:
        """Debit ``amount`` from the balance.

        Raises:
            InsufficientBalanceError: If the balance does not cover ``amount``.
                The balance is left unchanged.
        """
        if not self.can_afford(amount):
            raise InsufficientBalanceError(self, amount)
        self.balance -= amount
