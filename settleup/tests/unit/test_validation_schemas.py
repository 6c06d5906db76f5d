"""
tests/unit/test_validation_schemas.py: Unit tests for the marshmallow schemas.

What this file proves:
  - Valid payloads load into Expense / ExpenseSplit records with Decimal amounts
  - Enum, currency and amount rules are enforced with registered error codes
  - DUPLICATE_SPLIT_MEMBER and DUPLICATE_MEMBER are request-shape errors
  - Split calculator input is shape-checked but its typed values are not

Unit test constraints:
  - No Flask application context. Schemas inherit from marshmallow.Schema.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from marshmallow import ValidationError

from settleup.app.errors import ErrorCode
from settleup.app.models.expense import Category, Expense, ExpenseSplit, SplitMethod
from settleup.app.schemas.balance_schema import BalanceRequestSchema, PairwiseRequestSchema
from settleup.app.schemas.conversion_schema import ConversionRequestSchema
from settleup.app.schemas.expense_schema import ExpenseSchema
from settleup.app.schemas.settlement_schema import RecordPaymentSchema, SettlementPlanSchema
from settleup.app.schemas.split_schema import DeriveSplitSchema, SplitRequestSchema


def _expense_payload(**overrides) -> dict:
    payload = {
        "id": "e1",
        "payer_id": "alice",
        "amount": "90.00",
        "currency": "USD",
        "split_method": "equal",
        "splits": [
            {"member_id": "alice", "amount": "45.00"},
            {"member_id": "bob", "amount": "45.00"},
        ],
        "category": "Food & Drink",
    }
    payload.update(overrides)
    return payload


# ═══════════════════════════════════════════════════════════════════════════
# ExpenseSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestExpenseSchema:

    def _load(self, data: dict):
        return ExpenseSchema().load(data)

    def test_valid_payload_builds_expense(self):
        expense = self._load(_expense_payload(expense_date="2024-03-01T12:00:00+00:00"))
        assert isinstance(expense, Expense)
        assert expense.amount == Decimal("90.00")
        assert isinstance(expense.amount, Decimal)
        assert expense.split_method == SplitMethod.EQUAL
        assert expense.category == Category.FOOD_AND_DRINK
        assert expense.splits == (
            ExpenseSplit("alice", Decimal("45.00")),
            ExpenseSplit("bob", Decimal("45.00")),
        )
        assert isinstance(expense.expense_date, datetime)

    def test_defaults(self):
        expense = self._load({"id": "e1", "payer_id": "a", "amount": "5", "currency": "EUR"})
        assert expense.splits == ()
        assert expense.category == Category.OTHER
        assert expense.description == ""
        assert expense.original_amount is None

    def test_missing_amount(self):
        payload = _expense_payload()
        del payload["amount"]
        with pytest.raises(ValidationError) as exc_info:
            self._load(payload)
        assert "amount" in exc_info.value.messages

    @pytest.mark.parametrize("amount", ["0", "-1", "abc"])
    def test_non_positive_or_invalid_amount(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            self._load(_expense_payload(amount=amount))
        assert "amount" in exc_info.value.messages

    def test_unknown_currency(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(_expense_payload(currency="XYZ"))
        assert exc_info.value.messages["currency"] == [ErrorCode.INVALID_CURRENCY]

    def test_unknown_category(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(_expense_payload(category="food"))
        assert exc_info.value.messages["category"] == [ErrorCode.INVALID_CATEGORY]

    def test_unknown_split_method(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(_expense_payload(split_method="custom"))
        assert exc_info.value.messages["split_method"] == [ErrorCode.INVALID_SPLIT_METHOD]

    def test_negative_split_amount(self):
        payload = _expense_payload(splits=[{"member_id": "a", "amount": "-1"}])
        with pytest.raises(ValidationError):
            self._load(payload)

    def test_duplicate_split_member(self):
        payload = _expense_payload(splits=[
            {"member_id": "alice", "amount": "45.00"},
            {"member_id": "alice", "amount": "45.00"},
        ])
        with pytest.raises(ValidationError) as exc_info:
            self._load(payload)
        assert exc_info.value.messages["splits"] == [ErrorCode.DUPLICATE_SPLIT_MEMBER]

    def test_dump_round_trips_core_fields(self):
        expense = self._load(_expense_payload())
        dumped = ExpenseSchema().dump(expense)
        assert dumped["category"] == "Food & Drink"
        assert dumped["split_method"] == "equal"
        assert dumped["splits"][0] == {"member_id": "alice", "amount": Decimal("45.00")}


# ═══════════════════════════════════════════════════════════════════════════
# Balance / settlement request schemas
# ═══════════════════════════════════════════════════════════════════════════

class TestBalanceRequestSchema:

    def test_valid(self):
        data = BalanceRequestSchema().load({
            "members": ["alice", "bob"],
            "expenses": [_expense_payload()],
        })
        assert data["currency"] is None
        assert isinstance(data["expenses"][0], Expense)

    def test_members_required(self):
        with pytest.raises(ValidationError) as exc_info:
            BalanceRequestSchema().load({"expenses": []})
        assert "members" in exc_info.value.messages

    def test_empty_members_rejected(self):
        with pytest.raises(ValidationError):
            BalanceRequestSchema().load({"members": []})

    def test_duplicate_members_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            BalanceRequestSchema().load({"members": ["a", "a"]})
        assert exc_info.value.messages["members"] == [ErrorCode.DUPLICATE_MEMBER]

    def test_pairwise_requires_two_different_members(self):
        with pytest.raises(ValidationError) as exc_info:
            PairwiseRequestSchema().load({
                "members": ["a", "b"],
                "member_id": "a",
                "other_id": "a",
            })
        assert "other_id" in exc_info.value.messages


class TestSettlementSchemas:

    def test_plan_acting_member_optional(self):
        data = SettlementPlanSchema().load({"members": ["a", "b"]})
        assert data["acting_member_id"] is None

    def test_payment_valid(self):
        data = RecordPaymentSchema().load({
            "members": ["a", "b"],
            "from_member_id": "b",
            "to_member_id": "a",
            "amount": "12.50",
        })
        assert data["amount"] == Decimal("12.50")
        assert data["expenses"] is None

    def test_payment_amount_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            RecordPaymentSchema().load({
                "members": ["a", "b"],
                "from_member_id": "b",
                "to_member_id": "a",
                "amount": "0",
            })
        assert "amount" in exc_info.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# Split request schemas
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitRequestSchema:

    def test_equal_takes_member_list(self):
        data = SplitRequestSchema().load({
            "method": "equal",
            "amount": "30",
            "members": ["a", "b"],
            "input": ["a", "b"],
        })
        assert data["method"] == SplitMethod.EQUAL

    def test_equal_rejects_mapping_input(self):
        with pytest.raises(ValidationError) as exc_info:
            SplitRequestSchema().load({
                "method": "equal",
                "amount": "30",
                "members": ["a", "b"],
                "input": {"a": True},
            })
        assert "input" in exc_info.value.messages

    def test_unequal_rejects_list_input(self):
        with pytest.raises(ValidationError):
            SplitRequestSchema().load({
                "method": "unequal",
                "amount": "30",
                "members": ["a", "b"],
                "input": ["a"],
            })

    def test_typed_values_are_not_validated(self):
        data = SplitRequestSchema().load({
            "method": "percentage",
            "amount": "0",
            "members": ["a", "b"],
            "input": {"a": "", "b": "abc"},
        })
        assert data["input"] == {"a": "", "b": "abc"}

    def test_unknown_method(self):
        with pytest.raises(ValidationError) as exc_info:
            SplitRequestSchema().load({"method": "thirds", "amount": "1", "members": []})
        assert exc_info.value.messages["method"] == [ErrorCode.INVALID_SPLIT_METHOD]

    def test_derive_loads_splits(self):
        data = DeriveSplitSchema().load({
            "method": "shares",
            "amount": "90",
            "splits": [{"member_id": "a", "amount": "30"}],
        })
        assert data["splits"] == [ExpenseSplit("a", Decimal("30"))]


# ═══════════════════════════════════════════════════════════════════════════
# Conversion request schema
# ═══════════════════════════════════════════════════════════════════════════

class TestConversionRequestSchema:

    def test_valid_without_manual_rate(self):
        data = ConversionRequestSchema().load({
            "amount": "100", "from_currency": "EUR", "to_currency": "USD",
        })
        assert data["manual_rate"] is None

    def test_manual_rate_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            ConversionRequestSchema().load({
                "amount": "100", "from_currency": "EUR", "to_currency": "USD",
                "manual_rate": "0",
            })
        assert "manual_rate" in exc_info.value.messages

    def test_unknown_currency(self):
        with pytest.raises(ValidationError) as exc_info:
            ConversionRequestSchema().load({
                "amount": "100", "from_currency": "EUR", "to_currency": "???",
            })
        assert exc_info.value.messages["to_currency"] == [ErrorCode.INVALID_CURRENCY]
