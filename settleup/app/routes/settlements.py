"""
routes/settlements.py: Settlement route handlers.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic.

Special: record_payment returns (Expense, warnings[]).
  If warnings is non-empty (e.g. OVERPAYMENT), the route includes them in the
  response envelope: {"data": {...}, "warnings": [{"code": "OVERPAYMENT", ...}]}.
  The HTTP status is still 201. Overpayment does NOT block the request.

The payment expense is returned, not stored. The client appends it to its
own expense list; the next balance request folds it in.

Endpoints (url_prefix=/api/v1):
  POST /settlements/plan       → 200  minimal payment plan (optionally for one member)
  POST /settlements/payments   → 201  build the Payment expense for a transfer
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from settleup.app.schemas.expense_schema import ExpenseSchema
from settleup.app.schemas.settlement_schema import RecordPaymentSchema, SettlementPlanSchema
from settleup.app.services import settlement_service

settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("/settlements/plan", methods=["POST"])
def get_settlement_plan():
    """
    POST /settlements/plan

    Body: {"members": [...], "expenses": [...], "currency": "USD",
           "acting_member_id": "a"}    (acting_member_id optional)
    """
    data = SettlementPlanSchema().load(request.get_json(silent=True) or {})
    currency = data["currency"] or current_app.config["DEFAULT_CURRENCY"]
    acting = data["acting_member_id"]

    if acting is None:
        debts = settlement_service.plan_settlements(data["members"], data["expenses"], currency)
    else:
        debts = settlement_service.settle_up_for(
            data["members"], data["expenses"], acting, currency
        )

    return jsonify({
        "data": {
            "currency": currency,
            "acting_member_id": acting,
            "debts": [d.to_dict() for d in debts],
        },
        "warnings": [],
    }), 200


@settlements_bp.route("/settlements/payments", methods=["POST"])
def record_payment():
    """
    POST /settlements/payments

    Body: {"from_member_id": "b", "to_member_id": "a", "amount": "25.00",
           "members": [...], "expenses": [...] (optional), "names": {...} (optional)}
    """
    data = RecordPaymentSchema().load(request.get_json(silent=True) or {})
    payment, warnings = settlement_service.record_payment(
        from_member_id=data["from_member_id"],
        to_member_id=data["to_member_id"],
        amount=data["amount"],
        members=data["members"],
        currency=data["currency"] or current_app.config["DEFAULT_CURRENCY"],
        expenses=data["expenses"],
        names=data["names"],
        group_id=data["group_id"],
        paid_at=data["paid_at"],
    )
    return jsonify({"data": ExpenseSchema().dump(payment), "warnings": warnings}), 201
