"""
services/split_service.py: The four split calculators.

Each calculator turns a total amount, the group's member list and the values
the user has typed so far into a list of per-member owed amounts:

  equal       input: iterable of selected member ids (nobody is pre-selected)
  unequal     input: {member_id: amount}      free-form, positive entries only
  percentage  input: {member_id: percentage}  must add up to 100
  shares      input: {member_id: share count} integer weights

Contract (shared by all four):
  - Pure and synchronous. The caller re-runs the calculator on every edit.
  - Never raises for user input. A problem is RETURNED as SplitResult.error /
    SplitResult.error_code next to the partial (possibly empty) split list,
    so the form can keep showing work in progress while blocking submit.
  - Error precedence: the "fewer than 2 participants" rule is checked before
    any total-mismatch rule. A single-person split is never meaningful,
    whatever the amounts say.
  - Splits are emitted in `members` order. Entries for ids that are not in
    `members` are ignored.
  - Unparseable entries ("", "abc") and entries too large to be money
    ("1e30") are treated as "not entered".

Layer rules:
  - No Flask imports. Plain Decimal in, plain SplitResult out.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, NamedTuple

from settleup.app.errors import ErrorCode
from settleup.app.models.currency import DEFAULT_CURRENCY, format_currency
from settleup.app.models.expense import ExpenseSplit, SplitMethod


# ── Tolerances ─────────────────────────────────────────────────────────────
# Two different units. Do not use one where the other is meant.

SPLIT_AMOUNT_TOLERANCE = Decimal("0.001")   # currency units (unequal sum check)
PERCENTAGE_TOLERANCE   = Decimal("0.001")   # percentage points (percentage sum check)

MIN_PARTICIPANTS = 2

# Typed entries of 10**16 and above are treated as not entered.
MAX_ENTRY_ADJUSTED_EXPONENT = 15

_HUNDRED = Decimal("100")

TOO_FEW_PARTICIPANTS_MESSAGE = (
    "To split an expense, select at least 2 people. "
    "(Or save without selecting anyone for a personal expense)"
)


class SplitResult(NamedTuple):
    splits: list[ExpenseSplit]
    error: str | None = None
    error_code: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def total(self) -> Decimal:
        return sum((s.amount for s in self.splits), Decimal("0"))


def _too_few(splits: list[ExpenseSplit]) -> SplitResult:
    return SplitResult(splits, TOO_FEW_PARTICIPANTS_MESSAGE, ErrorCode.TOO_FEW_PARTICIPANTS)


# ── Input parsing ──────────────────────────────────────────────────────────

def _parse_decimal(raw) -> Decimal | None:
    """Parses a typed amount/percentage. Returns None for blank or invalid input."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    if not value.is_finite() or value.adjusted() > MAX_ENTRY_ADJUSTED_EXPONENT:
        return None
    return value


def _parse_share_count(raw) -> int | None:
    """
    Parses a typed share count. Fractions are truncated toward zero
    ("2.7" → 2), matching what an integer-only input field produces.
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw if abs(raw) < 10 ** (MAX_ENTRY_ADJUSTED_EXPONENT + 1) else None
    value = _parse_decimal(raw)
    if value is None:
        return None
    return int(value)


def _entries_in_member_order(members: Sequence[str], user_input: Mapping) -> list[tuple[str, object]]:
    return [(m, user_input[m]) for m in members if m in user_input]


# ── Calculators ────────────────────────────────────────────────────────────

def compute_equal_split(
        total_amount: Decimal,
        members: Sequence[str],
        selected: Iterable[str],
        currency: str = DEFAULT_CURRENCY,
) -> SplitResult:
    """
    Divides total_amount evenly across the selected members.

      0 selected  → [] and no error (a valid personal expense)
      1 selected  → [] and TOO_FEW_PARTICIPANTS
      2+ selected → total / n each, no error

    The per-person amount is not rounded here. Rounding to the currency's
    minor unit happens once, when debts are simplified.
    """
    chosen = set(selected)
    participants = [m for m in members if m in chosen]

    if not participants:
        return SplitResult([])
    if len(participants) < MIN_PARTICIPANTS:
        return _too_few([])

    per_person = Decimal(total_amount) / len(participants)
    return SplitResult([ExpenseSplit(m, per_person) for m in participants])


def compute_unequal_split(
        total_amount: Decimal,
        members: Sequence[str],
        amounts: Mapping[str, object],
        currency: str = DEFAULT_CURRENCY,
) -> SplitResult:
    """
    Uses the typed amounts as-is. Only positive entries become splits.

    Valid only when the entered amounts add up to total_amount within
    SPLIT_AMOUNT_TOLERANCE. On mismatch the partial list is still returned,
    with an error that reports how much is left to assign (negative when
    over-assigned).
    """
    total_amount = Decimal(total_amount)
    splits: list[ExpenseSplit] = []
    entered_total = Decimal("0")

    for member_id, raw in _entries_in_member_order(members, amounts):
        value = _parse_decimal(raw)
        if value is None:
            continue
        entered_total += value
        if value > 0:
            splits.append(ExpenseSplit(member_id, value))

    if len(splits) == 1:
        return _too_few(splits)

    remaining = total_amount - entered_total
    if abs(remaining) > SPLIT_AMOUNT_TOLERANCE:
        return SplitResult(
            splits,
            f"The total split ({format_currency(entered_total, currency)}) does not match "
            f"the expense amount ({format_currency(total_amount, currency)}). "
            f"Remaining: {format_currency(remaining, currency)}.",
            ErrorCode.SPLIT_SUM_MISMATCH,
        )
    return SplitResult(splits)


def compute_percentage_split(
        total_amount: Decimal,
        members: Sequence[str],
        percentages: Mapping[str, object],
        currency: str = DEFAULT_CURRENCY,
) -> SplitResult:
    """
    amount = total_amount * pct / 100 for every member with a positive percentage.

    Valid only when the entered percentages add up to 100 within
    PERCENTAGE_TOLERANCE. The check is skipped while total_amount is zero
    (nothing typed yet). A single participant yields [] and TOO_FEW_PARTICIPANTS.
    """
    total_amount = Decimal(total_amount)
    splits: list[ExpenseSplit] = []
    total_percentage = Decimal("0")

    for member_id, raw in _entries_in_member_order(members, percentages):
        pct = _parse_decimal(raw)
        if pct is None:
            continue
        total_percentage += pct
        if pct > 0:
            splits.append(ExpenseSplit(member_id, total_amount * pct / _HUNDRED))

    if len(splits) == 1:
        return _too_few([])

    if total_amount > 0 and abs(total_percentage - _HUNDRED) > PERCENTAGE_TOLERANCE:
        return SplitResult(
            splits,
            f"Percentages must add up to 100%. Current total: "
            f"{total_percentage.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}%",
            ErrorCode.PERCENTAGE_SUM_MISMATCH,
        )
    return SplitResult(splits)


def compute_shares_split(
        total_amount: Decimal,
        members: Sequence[str],
        shares: Mapping[str, object],
        currency: str = DEFAULT_CURRENCY,
) -> SplitResult:
    """
    amount = total_amount / total_shares * member_shares for every member
    with a positive share count.

    total_shares counts every parsed entry, so a negative entry reduces it.
    When total_shares is not positive while someone has shares, the splits
    are cleared and ZERO_TOTAL_SHARES is returned.
    """
    total_amount = Decimal(total_amount)
    counted: list[tuple[str, int]] = []
    total_shares = 0

    for member_id, raw in _entries_in_member_order(members, shares):
        count = _parse_share_count(raw)
        if count is None:
            continue
        total_shares += count
        if count > 0:
            counted.append((member_id, count))

    if total_shares <= 0 or total_amount == 0:
        per_share = Decimal("0")
    else:
        per_share = total_amount / total_shares

    splits = [ExpenseSplit(m, per_share * count) for m, count in counted]

    if len(splits) == 1:
        return _too_few(splits)

    if total_shares <= 0 and splits:
        return SplitResult(
            [],
            "Total shares must be greater than zero.",
            ErrorCode.ZERO_TOTAL_SHARES,
        )
    return SplitResult(splits)


SplitCalculator = Callable[..., SplitResult]

CALCULATORS: dict[SplitMethod, SplitCalculator] = {
    SplitMethod.EQUAL:      compute_equal_split,
    SplitMethod.UNEQUAL:    compute_unequal_split,
    SplitMethod.PERCENTAGE: compute_percentage_split,
    SplitMethod.SHARES:     compute_shares_split,
}


def compute_split(
        method: SplitMethod,
        total_amount: Decimal,
        members: Sequence[str],
        user_input,
        currency: str = DEFAULT_CURRENCY,
) -> SplitResult:
    """Dispatches to the calculator registered for `method`."""
    return CALCULATORS[SplitMethod(method)](total_amount, members, user_input, currency)


# ── Re-derivation from saved splits ────────────────────────────────────────
#
# When an existing expense is opened for editing, the form needs calculator
# input again, but only the split amounts were stored. These inverses are
# best-effort: percentages are rounded to 2 dp, and share counts assume the
# smallest positive split is exactly one share. Histories with non-integer
# share ratios (e.g. 1.5 : 1) do not round-trip. That is a known limitation
# of storing amounts only, not something to be patched over here.

def derive_split_input(
        method: SplitMethod,
        total_amount: Decimal,
        splits: Sequence[ExpenseSplit],
):
    """
    Returns input for the `method` calculator that reproduces `splits` as
    closely as possible.

      equal       → list of member ids
      unequal     → {member_id: amount string}
      percentage  → {member_id: percentage string, 2 dp}
      shares      → {member_id: int share count}
    """
    method = SplitMethod(method)
    total_amount = Decimal(total_amount)

    if method == SplitMethod.EQUAL:
        return [s.member_id for s in splits]

    if method == SplitMethod.UNEQUAL:
        return {s.member_id: str(s.amount) for s in splits}

    if method == SplitMethod.PERCENTAGE:
        if total_amount <= 0:
            return {}
        return {
            s.member_id: str(
                (s.amount / total_amount * _HUNDRED).quantize(
                    Decimal("0.01"), rounding=ROUND_HALF_UP
                )
            )
            for s in splits
        }

    # SHARES
    if total_amount <= 0:
        return {}
    positive = [s.amount for s in splits if s.amount > 0]
    if not positive:
        return {}
    unit = min(positive)
    return {
        s.member_id: int((s.amount / unit).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        for s in splits
    }
