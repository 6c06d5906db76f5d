"""
schemas/settlement_schema.py: Marshmallow schemas for settlement endpoints.

Validation responsibility:
  - This file: field types, positive amount, currency code.
  - services/settlement_service.py:
      - SELF_SETTLEMENT (422) : from_member_id == to_member_id
      - MEMBER_NOT_FOUND (422) : either party missing from `members`
      - OVERPAYMENT (warning) : needs the planned debt, so needs balances
"""

from __future__ import annotations

from marshmallow import fields

from settleup.app.schemas.balance_schema import BalanceRequestSchema
from settleup.app.schemas.expense_schema import (
    ExpenseSchema,
    member_id_field,
    validate_positive_amount,
)


class SettlementPlanSchema(BalanceRequestSchema):
    """
    POST /settlements/plan

    Without acting_member_id the full group plan is returned. With it, only
    the payments that member makes or receives.
    """

    acting_member_id = member_id_field(load_default=None, allow_none=True)


class RecordPaymentSchema(BalanceRequestSchema):
    """
    POST /settlements/payments

    `expenses` is optional here. When sent, the payment is compared with the
    planned debt between the two parties and OVERPAYMENT is reported if it
    exceeds it. Overpayment is valid and never blocks the request.
    """

    from_member_id = member_id_field(required=True)
    to_member_id = member_id_field(required=True)
    amount = fields.Decimal(required=True, validate=validate_positive_amount)

    expenses = fields.List(fields.Nested(ExpenseSchema), load_default=None, allow_none=True)
    names = fields.Dict(keys=fields.Str(), values=fields.Str(), load_default=None)
    group_id = fields.Str(load_default=None, allow_none=True)
    paid_at = fields.DateTime(load_default=None, allow_none=True)
