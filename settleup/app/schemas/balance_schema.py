"""
schemas/balance_schema.py: Marshmallow schemas for balance endpoints.

A balance request is the whole picture the engine needs: the member ids (in
display order), the base currency and the full expense list. The currency
may be omitted; the route then falls back to DEFAULT_CURRENCY from config.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from settleup.app.schemas.expense_schema import (
    ExpenseSchema,
    currency_field,
    member_id_field,
    validate_unique_members,
)


class BalanceRequestSchema(Schema):
    """POST /balances"""

    members = fields.List(
        member_id_field(),
        required=True,
        validate=[
            validate.Length(min=1, error="members must contain at least one member id."),
            validate_unique_members,
        ],
    )
    expenses = fields.List(fields.Nested(ExpenseSchema), load_default=list)
    currency = currency_field(load_default=None)


class PairwiseRequestSchema(BalanceRequestSchema):
    """POST /balances/pairwise: what happened between member_id and other_id."""

    member_id = member_id_field(required=True)
    other_id = member_id_field(required=True)

    @validates_schema
    def validate_distinct_pair(self, data: dict, **kwargs) -> None:
        if data.get("member_id") is not None and data.get("member_id") == data.get("other_id"):
            raise ValidationError("other_id must differ from member_id.", field_name="other_id")
