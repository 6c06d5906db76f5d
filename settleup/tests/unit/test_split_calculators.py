"""
tests/unit/test_split_calculators.py: Unit tests for the four split calculators.

What this file proves:
  - Equal: per_person * n == total (within tolerance); 0 selected is a valid
    personal expense; 1 selected is TOO_FEW_PARTICIPANTS
  - Unequal: only positive entries become splits; a mismatch reports the
    remaining amount next to the partial split list
  - Percentage: amounts are total * pct / 100; the 100% check is skipped while
    the total is zero
  - Shares: weights are integers; a non-positive share total clears the splits
  - The fewer-than-2 rule always wins over a total-mismatch error
  - Calculators never raise for user input, including oversized entries

Unit test constraints:
  - No Flask. Plain Decimal in, SplitResult out.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from settleup.app.errors import ErrorCode
from settleup.app.models.expense import ExpenseSplit, SplitMethod
from settleup.app.services.split_service import (
    SPLIT_AMOUNT_TOLERANCE,
    compute_equal_split,
    compute_percentage_split,
    compute_shares_split,
    compute_split,
    compute_unequal_split,
)


MEMBERS = ["alice", "bob", "carol"]


def _as_pairs(result) -> list[tuple[str, Decimal]]:
    return [(s.member_id, s.amount) for s in result.splits]


# ═══════════════════════════════════════════════════════════════════════════
# Equal
# ═══════════════════════════════════════════════════════════════════════════

class TestEqualSplit:

    def test_three_way_split_of_ninety(self):
        result = compute_equal_split(Decimal("90.00"), MEMBERS, ["alice", "bob", "carol"])
        assert result.is_valid
        assert _as_pairs(result) == [
            ("alice", Decimal("30")),
            ("bob", Decimal("30")),
            ("carol", Decimal("30")),
        ]

    def test_per_person_times_count_equals_total(self):
        """100 / 3 is not exact; the unrounded amounts still add back up."""
        result = compute_equal_split(Decimal("100.00"), MEMBERS, MEMBERS)
        per_person = result.splits[0].amount
        assert abs(per_person * 3 - Decimal("100.00")) <= SPLIT_AMOUNT_TOLERANCE
        assert abs(result.total - Decimal("100.00")) <= SPLIT_AMOUNT_TOLERANCE

    def test_nobody_selected_is_a_personal_expense(self):
        result = compute_equal_split(Decimal("40.00"), MEMBERS, [])
        assert result.splits == []
        assert result.error is None
        assert result.is_valid

    def test_single_person_is_too_few(self):
        result = compute_equal_split(Decimal("40.00"), MEMBERS, ["bob"])
        assert result.splits == []
        assert result.error_code == ErrorCode.TOO_FEW_PARTICIPANTS
        assert "at least 2 people" in result.error

    def test_splits_follow_member_order_not_selection_order(self):
        result = compute_equal_split(Decimal("20.00"), MEMBERS, ["carol", "alice"])
        assert [s.member_id for s in result.splits] == ["alice", "carol"]

    def test_selected_ids_outside_members_are_ignored(self):
        result = compute_equal_split(Decimal("20.00"), MEMBERS, ["alice", "mallory"])
        assert result.error_code == ErrorCode.TOO_FEW_PARTICIPANTS

    def test_amounts_are_decimal(self):
        result = compute_equal_split(Decimal("10.00"), MEMBERS, ["alice", "bob"])
        assert all(isinstance(s.amount, Decimal) for s in result.splits)


# ═══════════════════════════════════════════════════════════════════════════
# Unequal
# ═══════════════════════════════════════════════════════════════════════════

class TestUnequalSplit:

    def test_exact_amounts_are_valid(self):
        result = compute_unequal_split(
            Decimal("100.00"), MEMBERS, {"alice": "70.00", "bob": "30.00"}
        )
        assert result.is_valid
        assert _as_pairs(result) == [("alice", Decimal("70.00")), ("bob", Decimal("30.00"))]

    def test_mismatch_returns_partial_splits_and_remaining(self):
        result = compute_unequal_split(Decimal("100"), MEMBERS, {"alice": "70", "bob": "20"})
        assert result.error_code == ErrorCode.SPLIT_SUM_MISMATCH
        assert _as_pairs(result) == [("alice", Decimal("70")), ("bob", Decimal("20"))]
        assert "Remaining: $10.00" in result.error

    def test_over_assignment_reports_negative_remaining(self):
        result = compute_unequal_split(Decimal("50"), MEMBERS, {"alice": "40", "bob": "20"})
        assert result.error_code == ErrorCode.SPLIT_SUM_MISMATCH
        assert "Remaining: $-10.00" in result.error

    def test_difference_within_tolerance_is_accepted(self):
        result = compute_unequal_split(
            Decimal("10.00"), MEMBERS, {"alice": "5.0005", "bob": "5.00"}
        )
        assert result.is_valid

    def test_blank_and_garbage_entries_are_not_entered(self):
        result = compute_unequal_split(
            Decimal("60"),
            MEMBERS,
            {"alice": "30", "bob": "", "carol": "thirty"},
        )
        # Only alice counts → fewer than 2 participants.
        assert result.error_code == ErrorCode.TOO_FEW_PARTICIPANTS
        assert _as_pairs(result) == [("alice", Decimal("30"))]

    def test_zero_entries_are_not_splits(self):
        result = compute_unequal_split(
            Decimal("60"), MEMBERS, {"alice": "30", "bob": "0", "carol": "30"}
        )
        assert result.is_valid
        assert [s.member_id for s in result.splits] == ["alice", "carol"]

    def test_single_participant_wins_over_mismatch(self):
        """The single entry is also 20 short of the total; the ≥2 rule is reported."""
        result = compute_unequal_split(Decimal("100"), MEMBERS, {"alice": "80"})
        assert result.error_code == ErrorCode.TOO_FEW_PARTICIPANTS
        assert _as_pairs(result) == [("alice", Decimal("80"))]

    def test_numeric_values_are_accepted(self):
        result = compute_unequal_split(Decimal("30"), MEMBERS, {"alice": 10, "bob": Decimal("20")})
        assert result.is_valid

    @pytest.mark.parametrize("huge", ["1e30", "1e999999999", "-1e999999999"])
    def test_oversized_entries_are_not_entered(self, huge):
        result = compute_unequal_split(
            Decimal("100"), MEMBERS, {"alice": huge, "bob": "40", "carol": "60"}
        )
        assert result.is_valid
        assert _as_pairs(result) == [("bob", Decimal("40")), ("carol", Decimal("60"))]

    def test_oversized_entry_with_mismatch_still_formats_remaining(self):
        result = compute_unequal_split(
            Decimal("100"), MEMBERS, {"alice": "1e30", "bob": "40", "carol": "50"}
        )
        assert result.error_code == ErrorCode.SPLIT_SUM_MISMATCH
        assert "Remaining: $10.00" in result.error


# ═══════════════════════════════════════════════════════════════════════════
# Percentage
# ═══════════════════════════════════════════════════════════════════════════

class TestPercentageSplit:

    def test_sixty_forty(self):
        result = compute_percentage_split(Decimal("100"), MEMBERS, {"alice": "60", "bob": "40"})
        assert result.is_valid
        assert _as_pairs(result) == [("alice", Decimal("60")), ("bob", Decimal("40"))]

    def test_thirds_sum_within_tolerance(self):
        result = compute_percentage_split(
            Decimal("90"),
            MEMBERS,
            {"alice": "33.3333", "bob": "33.3333", "carol": "33.3334"},
        )
        assert result.is_valid
        assert abs(result.total - Decimal("90")) <= SPLIT_AMOUNT_TOLERANCE

    def test_short_of_hundred_reports_current_total(self):
        result = compute_percentage_split(Decimal("100"), MEMBERS, {"alice": "50", "bob": "30"})
        assert result.error_code == ErrorCode.PERCENTAGE_SUM_MISMATCH
        assert result.error == "Percentages must add up to 100%. Current total: 80.00%"
        assert len(result.splits) == 2

    def test_check_skipped_while_total_is_zero(self):
        result = compute_percentage_split(Decimal("0"), MEMBERS, {"alice": "50", "bob": "30"})
        assert result.error is None

    def test_single_participant_returns_no_splits(self):
        result = compute_percentage_split(Decimal("100"), MEMBERS, {"alice": "100"})
        assert result.splits == []
        assert result.error_code == ErrorCode.TOO_FEW_PARTICIPANTS

    @pytest.mark.parametrize("huge", ["1e30", "1e999999999"])
    def test_oversized_entries_are_not_entered(self, huge):
        result = compute_percentage_split(
            Decimal("100"), MEMBERS, {"alice": huge, "bob": "60", "carol": "40"}
        )
        assert result.is_valid
        assert _as_pairs(result) == [("bob", Decimal("60")), ("carol", Decimal("40"))]


# ═══════════════════════════════════════════════════════════════════════════
# Shares
# ═══════════════════════════════════════════════════════════════════════════

class TestSharesSplit:

    def test_one_and_two_shares_of_ninety(self):
        result = compute_shares_split(Decimal("90"), MEMBERS, {"alice": 1, "bob": 2})
        assert result.is_valid
        assert _as_pairs(result) == [("alice", Decimal("30")), ("bob", Decimal("60"))]

    def test_fractional_share_counts_are_truncated(self):
        result = compute_shares_split(Decimal("90"), MEMBERS, {"alice": "2.7", "bob": "1"})
        assert _as_pairs(result) == [("alice", Decimal("60")), ("bob", Decimal("30"))]

    def test_non_positive_total_shares_clears_splits(self):
        result = compute_shares_split(
            Decimal("90"), MEMBERS, {"alice": 1, "bob": 1, "carol": -2}
        )
        assert result.splits == []
        assert result.error_code == ErrorCode.ZERO_TOTAL_SHARES
        assert result.error == "Total shares must be greater than zero."

    def test_single_participant_is_too_few(self):
        result = compute_shares_split(Decimal("90"), MEMBERS, {"alice": 3, "bob": 0})
        assert result.error_code == ErrorCode.TOO_FEW_PARTICIPANTS
        assert _as_pairs(result) == [("alice", Decimal("90"))]

    def test_zero_total_amount_gives_zero_splits(self):
        result = compute_shares_split(Decimal("0"), MEMBERS, {"alice": 1, "bob": 1})
        assert result.is_valid
        assert all(s.amount == 0 for s in result.splits)

    @pytest.mark.parametrize("huge", ["1e999999999", "1e30", 10 ** 30])
    def test_oversized_share_counts_are_not_entered(self, huge):
        result = compute_shares_split(
            Decimal("90"), MEMBERS, {"alice": huge, "bob": 1, "carol": 2}
        )
        assert result.is_valid
        assert _as_pairs(result) == [("bob", Decimal("30")), ("carol", Decimal("60"))]


# ═══════════════════════════════════════════════════════════════════════════
# Dispatch
# ═══════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize(
    "method, user_input",
    [
        ("equal", ["alice", "bob"]),
        ("unequal", {"alice": "5", "bob": "5"}),
        ("percentage", {"alice": "50", "bob": "50"}),
        ("shares", {"alice": 1, "bob": 1}),
    ],
)
def test_compute_split_dispatches_by_method_name(method, user_input):
    result = compute_split(method, Decimal("10"), MEMBERS, user_input)
    assert result.is_valid
    assert result.splits == [
        ExpenseSplit("alice", Decimal("5")),
        ExpenseSplit("bob", Decimal("5")),
    ]


def test_compute_split_rejects_unknown_method():
    with pytest.raises(ValueError):
        compute_split("thirds", Decimal("10"), MEMBERS, {})


def test_split_method_enum_is_accepted():
    result = compute_split(SplitMethod.EQUAL, Decimal("10"), MEMBERS, MEMBERS)
    assert len(result.splits) == 3
