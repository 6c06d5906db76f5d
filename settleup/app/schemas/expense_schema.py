"""
schemas/expense_schema.py: Marshmallow schemas for expenses sent with a request.

The app stores nothing, so every balance or settlement request carries the
expense list it wants folded. These schemas turn that JSON into Expense /
ExpenseSplit records (post_load) and dump records back to JSON.

Validation responsibility:
  - This file:
      - Field types, enum values, currency codes
      - Expense amount strictly positive, split amounts non-negative
      - DUPLICATE_SPLIT_MEMBER (400) : request shape rule
  - services/*:
      - Whether the payer and split members belong to the group
        (unknown members are skipped during folding, not rejected)
      - The closed-system balance check (INTERNAL_ERROR, 500)
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from settleup.app.errors import ErrorCode
from settleup.app.models.currency import is_valid_currency
from settleup.app.models.expense import Category, Expense, ExpenseSplit, SplitMethod


# ── Shared validators ──────────────────────────────────────────────────────

# Amounts of 10**16 and above are rejected.
MAX_AMOUNT = Decimal("1e16")


def _check_magnitude(value: Decimal) -> None:
    if value.copy_abs() >= MAX_AMOUNT:
        raise ValidationError("Amount is too large.")


def validate_positive_amount(value: Decimal) -> None:
    _check_magnitude(value)
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")


def validate_non_negative_amount(value: Decimal) -> None:
    _check_magnitude(value)
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")


def validate_currency_code(value: str) -> None:
    """The route error handler maps the bare code to its default message."""
    if not is_valid_currency(value):
        raise ValidationError(ErrorCode.INVALID_CURRENCY)


def validate_unique_members(value: list[str]) -> None:
    if len(set(value)) != len(value):
        raise ValidationError(ErrorCode.DUPLICATE_MEMBER)


def currency_field(**kwargs) -> fields.Str:
    return fields.Str(validate=validate_currency_code, **kwargs)


def member_id_field(**kwargs) -> fields.Str:
    """Member ids are opaque, non-empty strings."""
    return fields.Str(
        validate=validate.Length(min=1, max=128, error="Member id must be 1-128 characters."),
        **kwargs,
    )


# ── Sub-schema: one entry in the `splits` array ───────────────────────────

class ExpenseSplitSchema(Schema):

    member_id = member_id_field(required=True)
    amount = fields.Decimal(required=True, validate=validate_non_negative_amount)

    @post_load
    def make_split(self, data: dict, **kwargs) -> ExpenseSplit:
        return ExpenseSplit(member_id=data["member_id"], amount=data["amount"])


# ── Expense ────────────────────────────────────────────────────────────────

class ExpenseSchema(Schema):
    """
    One recorded expense, in the group's base currency.

    `splits` may be empty (a personal expense) or hold a single entry
    (a Payment); balance folding decides what to include.
    """

    id = fields.Str(required=True, validate=validate.Length(min=1))
    payer_id = member_id_field(required=True)
    amount = fields.Decimal(required=True, validate=validate_positive_amount)
    currency = currency_field(required=True)

    split_method = fields.Enum(
        SplitMethod,
        load_default=SplitMethod.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_METHOD},
    )
    splits = fields.List(fields.Nested(ExpenseSplitSchema), load_default=list)

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )
    description = fields.Str(load_default="", validate=validate.Length(max=255))
    expense_date = fields.DateTime(load_default=None, allow_none=True)

    # What the user typed when the expense was entered in another currency.
    original_amount = fields.Decimal(
        load_default=None, allow_none=True, validate=validate_positive_amount
    )
    original_currency = currency_field(load_default=None, allow_none=True)
    group_id = fields.Str(load_default=None, allow_none=True)

    @validates_schema
    def validate_unique_split_members(self, data: dict, **kwargs) -> None:
        """DUPLICATE_SPLIT_MEMBER: the same member_id twice in one split list."""
        seen: set[str] = set()
        for split in data.get("splits") or []:
            member = split.member_id if isinstance(split, ExpenseSplit) else split["member_id"]
            if member in seen:
                raise ValidationError(ErrorCode.DUPLICATE_SPLIT_MEMBER, field_name="splits")
            seen.add(member)

    @post_load
    def make_expense(self, data: dict, **kwargs) -> Expense:
        return Expense(
            id=data["id"],
            payer_id=data["payer_id"],
            amount=data["amount"],
            currency=data["currency"],
            split_method=data["split_method"],
            splits=tuple(data["splits"]),
            category=data["category"],
            description=data["description"],
            expense_date=data["expense_date"],
            original_amount=data["original_amount"],
            original_currency=data["original_currency"],
            group_id=data["group_id"],
        )
