"""
schemas/split_schema.py: Marshmallow schemas for the split calculator endpoints.

The split method comes from the URL; the route merges it into the payload
before loading so an unknown method is reported as INVALID_SPLIT_METHOD like
any other enum error.

`input` carries whatever the form holds right now:
  equal                         list of selected member ids
  unequal / percentage / shares {member_id: typed value}

Typed values are NOT validated here. Blank or unparseable entries are part
of normal form editing; the calculators treat them as "not entered" and
report problems through SplitResult instead of failing the request.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from settleup.app.errors import ErrorCode
from settleup.app.models.expense import SplitMethod
from settleup.app.schemas.expense_schema import (
    ExpenseSplitSchema,
    currency_field,
    member_id_field,
    validate_non_negative_amount,
    validate_unique_members,
)


def _split_method_field() -> fields.Enum:
    return fields.Enum(
        SplitMethod,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_METHOD},
    )


class SplitRequestSchema(Schema):
    """POST /splits/<method>"""

    method = _split_method_field()
    amount = fields.Decimal(required=True, validate=validate_non_negative_amount)
    members = fields.List(
        member_id_field(),
        required=True,
        validate=validate_unique_members,
    )
    input = fields.Raw(load_default=None, allow_none=True)
    currency = currency_field(load_default=None)

    @validates_schema
    def validate_input_shape(self, data: dict, **kwargs) -> None:
        method = data.get("method")
        user_input = data.get("input")
        if method is None or user_input is None:
            return

        if method == SplitMethod.EQUAL:
            if not isinstance(user_input, list) or not all(
                isinstance(m, str) for m in user_input
            ):
                raise ValidationError(
                    "For the equal method, input must be a list of member ids.",
                    field_name="input",
                )
        elif not isinstance(user_input, dict):
            raise ValidationError(
                f"For the {method.value} method, input must be an object keyed by member id.",
                field_name="input",
            )


class DeriveSplitSchema(Schema):
    """POST /splits/<method>/derive: rebuild calculator input from saved splits."""

    method = _split_method_field()
    amount = fields.Decimal(required=True, validate=validate_non_negative_amount)
    splits = fields.List(fields.Nested(ExpenseSplitSchema), required=True)
