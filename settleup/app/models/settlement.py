"""
models/settlement.py: Simplified debt value type.

A SimplifiedDebt is ephemeral: balance_service.simplify_debts() produces it on
demand from a balance map and nothing ever stores it. Recording that a debt
was actually paid happens by appending a Payment expense (settlement_service).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class SimplifiedDebt:
    from_member_id: str
    to_member_id: str
    amount: Decimal  # always > 0, rounded to the currency's minor unit

    def involves(self, member_id: str) -> bool:
        return member_id in (self.from_member_id, self.to_member_id)

    def to_dict(self) -> dict:
        return {
            "from_member_id": self.from_member_id,
            "to_member_id": self.to_member_id,
            "amount": self.amount,
        }
