"""
models/expense.py: Expense and split value types.

Plain immutable records. No business logic. No imports from services or routes.
The engine never persists or mutates these: the expense store (an external
collaborator) owns them, and the engine returns NEW expenses for the caller to
append (see settlement_service.record_payment).

Key design points:
  - `amount` is a Decimal in the group's base currency, never float.
  - `original_amount` / `original_currency` record what the user typed when
    the expense was entered in another currency. They are informational; the
    engine folds only `amount`.
  - SplitMethod and Category are str enums so they can be imported and used
    throughout the service layer without repeating string literals.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


# ── Enum Definitions ───────────────────────────────────────────────────────
# Do not duplicate these as plain string constants anywhere else in the codebase.

class SplitMethod(str, enum.Enum):
    EQUAL      = "equal"
    UNEQUAL    = "unequal"
    PERCENTAGE = "percentage"
    SHARES     = "shares"


class Category(str, enum.Enum):
    FOOD_AND_DRINK  = "Food & Drink"
    TRANSPORTATION  = "Transportation"
    HOUSING         = "Housing"
    ENTERTAINMENT   = "Entertainment"
    UTILITIES       = "Utilities"
    HEALTH          = "Health"
    PERSONAL_CARE   = "Personal Care"
    RENT            = "Rent"
    SHOPPING        = "Shopping"
    GROCERIES       = "Groceries"
    PAYMENT         = "Payment"
    OTHER           = "Other"


# ── Value types ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExpenseSplit:
    """One member's owed share of an expense, in base currency (amount >= 0)."""

    member_id: str
    amount: Decimal


@dataclass(frozen=True)
class Expense:
    id: str
    payer_id: str
    amount: Decimal
    currency: str
    split_method: SplitMethod = SplitMethod.EQUAL
    splits: tuple[ExpenseSplit, ...] = ()
    category: Category = Category.OTHER
    description: str = ""
    expense_date: datetime | None = None
    original_amount: Decimal | None = None
    original_currency: str | None = None
    group_id: str | None = None

    # ── Convenience properties ─────────────────────────────────────────────
    # Read-only; they inspect field values and contain no engine rules.

    @property
    def is_payment(self) -> bool:
        """True if this expense records an actual money transfer."""
        return self.category == Category.PAYMENT

    def involves(self, member_id: str) -> bool:
        """True if member_id paid for this expense or owes part of it."""
        return self.payer_id == member_id or any(
            s.member_id == member_id for s in self.splits
        )

    def split_for(self, member_id: str) -> Decimal:
        """Returns member_id's split amount, or 0 if they are not in the split list."""
        for s in self.splits:
            if s.member_id == member_id:
                return s.amount
        return Decimal("0")
