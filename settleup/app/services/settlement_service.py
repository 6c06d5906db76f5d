"""
services/settlement_service.py: Settle-up orchestration and payment recording.

Wires balance_service together for one settle-up request:
  eligible expenses → compute_balances → sum check → simplify_debts
and filters the resulting plan to what the acting member needs to see.

Recording a payment:
  The engine owns exactly one mutation contract: it builds a NEW Expense with
  category Payment, payer = the paying member, and a single split of the full
  amount to the receiving member. The caller appends it to its store. On the
  next recompute the payment folds into balances like any other expense,
  which is how a settlement cancels the debt it paid.

Rules enforced here:
  SELF_SETTLEMENT (422) : a member cannot pay themselves
  INVALID_FIELD (400) : payment amount must be positive
  MEMBER_NOT_FOUND (422) : both parties must be in the supplied member list
  OVERPAYMENT (warning) : paying more than the planned debt between the
                          pair is still recorded (pre-payment is valid)
  INTERNAL_ERROR (500) : balance sum check failed; source data is corrupt

Layer rules:
  - No Flask imports. Pure Python; nothing is persisted here.
  - Settlement never depends on exchange rates. Everything is base currency.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from decimal import Decimal

from settleup.app.errors import AppError, ErrorCode, WarningCode
from settleup.app.models.currency import DEFAULT_CURRENCY, format_currency, quantize_amount
from settleup.app.models.expense import Category, Expense, ExpenseSplit, SplitMethod
from settleup.app.models.settlement import SimplifiedDebt
from settleup.app.services import balance_service


# ── Private helpers ────────────────────────────────────────────────────────

def _require_member(member_id: str, members: Sequence[str], field: str) -> None:
    """Raises MEMBER_NOT_FOUND (422) if member_id is not in the supplied member list."""
    if member_id not in members:
        raise AppError(
            ErrorCode.MEMBER_NOT_FOUND,
            f"Member {member_id!r} is not part of this group.",
            422,
            field=field,
        )


def _folded_balances(
        members: Sequence[str],
        expenses: Sequence[Expense],
) -> dict[str, Decimal]:
    """
    Balances over eligible expenses, with the closed-system check.

    Raises:
        AppError(INTERNAL_ERROR, 500) -- balances do not sum to ~0.
    """
    eligible = balance_service.balance_eligible_expenses(expenses)
    balances = balance_service.compute_balances(eligible, members)

    balance_sum = balance_service.check_balance_sum(balances)
    if abs(balance_sum) > balance_service.balance_sum_tolerance(len(balances)):
        # The sum check already logged the details.
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Balance integrity check failed: sum was {balance_sum} (expected 0.00). "
            f"The expense list has inconsistent split data.",
            500,
        )
    return balances


def _display_name(member_id: str, names: Mapping[str, str] | None) -> str:
    if names and member_id in names:
        return names[member_id]
    return member_id


# ── Public service functions ───────────────────────────────────────────────

def plan_settlements(
        members: Sequence[str],
        expenses: Sequence[Expense],
        currency: str = DEFAULT_CURRENCY,
) -> list[SimplifiedDebt]:
    """Full minimal payment plan for the group."""
    balances = _folded_balances(members, expenses)
    return balance_service.simplify_debts(balances, currency)


def settle_up_for(
        members: Sequence[str],
        expenses: Sequence[Expense],
        acting_member_id: str,
        currency: str = DEFAULT_CURRENCY,
) -> list[SimplifiedDebt]:
    """
    The payment plan filtered to debts the acting member pays or receives.

    Relative order of the full plan is preserved. The filter is applied after
    simplification, never before, so the acting member sees the same payments
    the whole group would.
    """
    return [
        debt
        for debt in plan_settlements(members, expenses, currency)
        if debt.involves(acting_member_id)
    ]


def record_payment(
        from_member_id: str,
        to_member_id: str,
        amount: Decimal,
        members: Sequence[str],
        currency: str = DEFAULT_CURRENCY,
        expenses: Sequence[Expense] | None = None,
        names: Mapping[str, str] | None = None,
        expense_id: str | None = None,
        group_id: str | None = None,
        paid_at: datetime | None = None,
) -> tuple[Expense, list[dict]]:
    """
    Builds the Payment expense that records from_member_id paying to_member_id.

    Args:
        amount:   Base-currency amount actually paid. Must be > 0.
        members:  The group's member ids. Both parties must be in it.
        expenses: Optional current expense list. When given, the payment is
                  compared with the planned debt between the two parties and
                  an OVERPAYMENT warning is added if it exceeds it.
        names:    Optional {member_id: display name} for the description.

    Returns:
        (Expense, warnings). The expense is NOT stored anywhere; the caller
        appends it. An empty warnings list means no warnings.
    """
    amount = Decimal(amount)

    if from_member_id == to_member_id:
        raise AppError(
            ErrorCode.SELF_SETTLEMENT,
            "A payment cannot be made to yourself.",
            422,
            field="to_member_id",
        )
    if amount <= 0:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "Payment amount must be greater than zero.",
            400,
            field="amount",
        )

    _require_member(from_member_id, members, "from_member_id")
    _require_member(to_member_id, members, "to_member_id")

    warnings: list[dict] = []
    if expenses is not None:
        planned = sum(
            (
                d.amount
                for d in plan_settlements(members, expenses, currency)
                if d.from_member_id == from_member_id and d.to_member_id == to_member_id
            ),
            Decimal("0.00"),
        )
        if amount > planned:
            warnings.append({
                "code": WarningCode.OVERPAYMENT,
                "message": (
                    f"Payment of {format_currency(amount, currency)} exceeds the planned "
                    f"debt of {format_currency(planned, currency)} from {from_member_id} "
                    f"to {to_member_id}. Recording anyway; pre-payment is valid."
                ),
            })

    payment = Expense(
        id=expense_id or uuid.uuid4().hex,
        payer_id=from_member_id,
        amount=amount,
        currency=currency,
        split_method=SplitMethod.UNEQUAL,
        splits=(ExpenseSplit(to_member_id, amount),),
        category=Category.PAYMENT,
        description=(
            f"Payment from {_display_name(from_member_id, names)} "
            f"to {_display_name(to_member_id, names)}"
        ),
        expense_date=paid_at or datetime.now(timezone.utc),
        group_id=group_id,
    )
    return payment, warnings


def record_debt_payment(
        debt: SimplifiedDebt,
        members: Sequence[str],
        currency: str = DEFAULT_CURRENCY,
        **kwargs,
) -> Expense:
    """Records a planned debt as paid in full. See record_payment()."""
    payment, _ = record_payment(
        debt.from_member_id,
        debt.to_member_id,
        debt.amount,
        members,
        currency=currency,
        **kwargs,
    )
    return payment


def get_balance_response(
        members: Sequence[str],
        expenses: Sequence[Expense],
        currency: str = DEFAULT_CURRENCY,
) -> dict:
    """
    Builds the full balance payload: per-member balances, the simplified
    debt plan, the balance sum and the group financial summary.

    Raises:
        AppError(INTERNAL_ERROR, 500) -- balance sum check failed.
    """
    balances = _folded_balances(members, expenses)
    simplified = balance_service.simplify_debts(balances, currency)

    # Balances are shown at the currency's precision; the sum is taken over the
    # unrounded values so display rounding cannot make it look non-zero.
    summary = balance_service.summarize_group(expenses, balances)
    return {
        "currency": currency,
        "balances": [
            {"member_id": mid, "balance": quantize_amount(bal, currency)}
            for mid, bal in balances.items()
        ],
        "simplified_debts": [d.to_dict() for d in simplified],
        "balance_sum": quantize_amount(sum(balances.values(), Decimal("0.00")), currency),
        "summary": {key: quantize_amount(value, currency) for key, value in summary.items()},
    }
