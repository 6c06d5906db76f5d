"""
services/balance_service.py: Balance computation and debt simplification.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula must not be reimplemented elsewhere in the codebase.
Any change to how balances work must be made here; all other behaviour
follows from it.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain lists of Expense records and member ids as arguments.
  - Returns plain Python dicts and lists.
  - Holds no state between calls. Balances are recomputed from the full
    expense list every time they are needed.

Inclusion rule:
  - An expense with fewer than 2 splits is a personal record and does not
    take part in balances, unless it is a Payment (one split: the receiver).
  - balance_eligible_expenses() applies that rule. compute_balances() itself
    folds whatever it is given and never raises on a short split list.

Closed-system guarantee:
  - compute_balances() produces sum ≈ 0 when every folded expense's splits
    add up to its amount. check_balance_sum() verifies it; a violation is a
    programming or data error, never a user-facing validation message.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from settleup.app.models.currency import DEFAULT_CURRENCY, minor_unit, quantize_amount
from settleup.app.models.expense import Expense
from settleup.app.models.settlement import SimplifiedDebt


logger = logging.getLogger(__name__)

# Currency units. A balance within this distance of zero counts as settled.
SETTLEMENT_EPSILON = Decimal("0.01")

# Currency units per member. Accumulated float-free drift from unrounded
# equal/percentage/shares splits stays far below this.
BALANCE_SUM_TOLERANCE_PER_MEMBER = Decimal("0.01")

# Pairwise ledger entries with a smaller effect are not shown.
PAIRWISE_EFFECT_TOLERANCE = Decimal("0.001")

_ZERO = Decimal("0")


# ── Inclusion rule ─────────────────────────────────────────────────────────

def is_balance_eligible(expense: Expense) -> bool:
    """True if the expense takes part in balance folding."""
    if expense.is_payment:
        return len(expense.splits) >= 1
    return len(expense.splits) >= 2


def balance_eligible_expenses(expenses: Iterable[Expense]) -> list[Expense]:
    """Drops personal records (fewer than 2 splits, non-payment). Order is kept."""
    return [e for e in expenses if is_balance_eligible(e)]


# ── Core algorithms ────────────────────────────────────────────────────────

def compute_balances(
        expenses: Iterable[Expense],
        members: Sequence[str],
) -> dict[str, Decimal]:
    """
    Canonical balance computation.

    Returns {member_id: net_balance} for every member, in `members` order.
    Positive = the group owes this member; negative = this member owes.

    Algorithm:
      1. Start every member at zero.
      2. For each expense whose payer is a known member:
         credit the payer the full amount they fronted, then
         debit each known split member their split portion.
      Expenses paid by someone outside `members` are skipped entirely, so
      they cannot unbalance the result.
    """
    balances: dict[str, Decimal] = {member_id: Decimal("0.00") for member_id in members}

    for expense in expenses:
        if expense.payer_id not in balances:
            continue

        balances[expense.payer_id] += expense.amount

        for split in expense.splits:
            if split.member_id in balances:
                balances[split.member_id] -= split.amount

    return balances


def balance_sum_tolerance(member_count: int) -> Decimal:
    return BALANCE_SUM_TOLERANCE_PER_MEMBER * max(member_count, 1)


def check_balance_sum(balances: dict[str, Decimal]) -> Decimal:
    """
    Returns sum(balances). Logs an error if it is not within
    balance_sum_tolerance() of zero.
    """
    total = sum(balances.values(), Decimal("0.00"))
    if abs(total) > balance_sum_tolerance(len(balances)):
        logger.error(
            "Balance integrity check failed: sum was %s over %d members (expected ~0).",
            total,
            len(balances),
        )
    return total


def _settled_threshold(currency: str) -> Decimal:
    """
    SETTLEMENT_EPSILON, widened to half a minor unit where the minor unit is
    coarser (zero-decimal currencies). After a rounded transfer, the smaller
    party's residual is at most half a minor unit, so it always drops out.
    """
    return max(SETTLEMENT_EPSILON, minor_unit(currency) / 2)


def _largest(parties: list[list]) -> int:
    """Index of the party with the largest remaining amount; first one wins ties."""
    best = 0
    for i in range(1, len(parties)):
        if parties[i][1] > parties[best][1]:
            best = i
    return best


def simplify_debts(
        balances: dict[str, Decimal],
        currency: str = DEFAULT_CURRENCY,
) -> list[SimplifiedDebt]:
    """
    Greedy minimum cash flow debt simplification.

    Repeatedly matches the largest remaining creditor with the largest
    remaining debtor until every balance is within the settled threshold.
    For N parties with a non-zero balance, produces at most N-1 transactions.

    Determinism: ties are broken by the order of `balances`, so the same map
    always yields the same list.

    Rounding: every emitted amount is rounded to the currency's minor unit,
    and the ROUNDED amount is subtracted from both parties. The rounding
    remainder therefore stays in the residual balances instead of silently
    reopening a balance later.

    Args:
        balances: {member_id: net_balance} from compute_balances().
                  Should satisfy sum(balances.values()) ≈ 0.
        currency: base currency; decides the rounding precision.

    Returns:
        Ordered list of SimplifiedDebt. Empty when everything is settled.
    """
    threshold = _settled_threshold(currency)

    creditors = [[mid, bal] for mid, bal in balances.items() if bal > threshold]
    debtors = [[mid, -bal] for mid, bal in balances.items() if bal < -threshold]

    # Each pass drops at least one party, so this bound is never reached
    # unless the threshold logic is broken.
    max_iterations = len(creditors) + len(debtors)

    transactions: list[SimplifiedDebt] = []
    iterations = 0

    while creditors and debtors:
        if iterations >= max_iterations:
            logger.error(
                "Debt simplification stopped after %d iterations with %d creditors "
                "and %d debtors still open.",
                iterations,
                len(creditors),
                len(debtors),
            )
            break
        iterations += 1

        ci = _largest(creditors)
        di = _largest(debtors)
        creditor_id, credit = creditors[ci]
        debtor_id, debt = debtors[di]

        transfer = quantize_amount(min(credit, debt), currency)
        transactions.append(SimplifiedDebt(debtor_id, creditor_id, transfer))

        creditors[ci][1] = credit - transfer
        debtors[di][1] = debt - transfer

        if abs(creditors[ci][1]) <= threshold:
            creditors.pop(ci)
        if abs(debtors[di][1]) <= threshold:
            debtors.pop(di)

    return transactions


# ── Derived views ──────────────────────────────────────────────────────────

def total_outstanding(balances: dict[str, Decimal]) -> Decimal:
    """Sum of what debtors owe: the absolute value of every negative balance."""
    return sum((-b for b in balances.values() if b < 0), Decimal("0.00"))


def summarize_group(
        expenses: Iterable[Expense],
        balances: dict[str, Decimal],
) -> dict:
    """
    Group financial summary.

    Expenses are deduplicated by id (first occurrence wins) before totals
    are taken, so a list assembled from overlapping sources is not
    double-counted.

      total_group_expense   every expense, payments included
      total_shared_expense  expenses split between 2+ people
      total_settled         Payment expenses
      balance_to_settle     total_outstanding(balances)
    """
    unique: dict[str, Expense] = {}
    for expense in expenses:
        unique.setdefault(expense.id, expense)

    deduplicated = list(unique.values())
    return {
        "total_group_expense": sum((e.amount for e in deduplicated), Decimal("0.00")),
        "total_shared_expense": sum(
            (e.amount for e in deduplicated if len(e.splits) >= 2), Decimal("0.00")
        ),
        "total_settled": sum(
            (e.amount for e in deduplicated if e.is_payment), Decimal("0.00")
        ),
        "balance_to_settle": total_outstanding(balances),
    }


def pairwise_ledger(
        expenses: Iterable[Expense],
        member_id: str,
        other_id: str,
) -> dict:
    """
    What happened between two members, expense by expense.

    For each expense involving both:
      paid by member_id → effect = other's split   (other owes member)
      paid by other_id  → effect = -member's split (member owes other)
      paid by a third party → no direct effect, omitted

    Returns {"entries": [{"expense": Expense, "effect": Decimal}, ...],
             "net_balance": Decimal}
    Entries are newest first (undated expenses last); effects within
    PAIRWISE_EFFECT_TOLERANCE of zero are dropped.
    """
    entries = []
    net = Decimal("0")

    for expense in expenses:
        if not (expense.involves(member_id) and expense.involves(other_id)):
            continue

        if expense.payer_id == member_id:
            effect = expense.split_for(other_id)
        elif expense.payer_id == other_id:
            effect = -expense.split_for(member_id)
        else:
            effect = _ZERO

        net += effect
        if abs(effect) > PAIRWISE_EFFECT_TOLERANCE:
            entries.append({"expense": expense, "effect": effect})

    entries.sort(
        key=lambda item: (
            item["expense"].expense_date is not None,
            item["expense"].expense_date.timestamp() if item["expense"].expense_date else 0,
        ),
        reverse=True,
    )
    return {"entries": entries, "net_balance": net}
