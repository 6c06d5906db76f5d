"""
routes/balances.py: Balance route handlers.

Layer rules:
  - Parse the body, call ONE service, return envelope.
  - No business logic. Balances are recomputed from the posted expense list
    on every request; nothing is cached or stored.

Endpoints (url_prefix=/api/v1):
  POST /balances            → 200  balances + simplified debts + summary
  POST /balances/pairwise   → 200  expense-by-expense ledger between two members
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from settleup.app.models.currency import quantize_amount
from settleup.app.schemas.balance_schema import BalanceRequestSchema, PairwiseRequestSchema
from settleup.app.schemas.expense_schema import ExpenseSchema
from settleup.app.services import balance_service, settlement_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/balances", methods=["POST"])
def get_balances():
    """
    POST /balances

    Body: {"members": [...], "expenses": [...], "currency": "USD"}

    The service checks that balances sum to ~0 and raises INTERNAL_ERROR
    (500) if the posted expense list is inconsistent.
    """
    data = BalanceRequestSchema().load(request.get_json(silent=True) or {})
    result = settlement_service.get_balance_response(
        members=data["members"],
        expenses=data["expenses"],
        currency=data["currency"] or current_app.config["DEFAULT_CURRENCY"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/balances/pairwise", methods=["POST"])
def get_pairwise_ledger():
    """
    POST /balances/pairwise

    Body: balance request + {"member_id": "a", "other_id": "b"}

    Positive effects mean other_id owes member_id.
    """
    data = PairwiseRequestSchema().load(request.get_json(silent=True) or {})
    currency = data["currency"] or current_app.config["DEFAULT_CURRENCY"]

    ledger = balance_service.pairwise_ledger(
        balance_service.balance_eligible_expenses(data["expenses"]),
        data["member_id"],
        data["other_id"],
    )

    expense_schema = ExpenseSchema()
    return jsonify({
        "data": {
            "member_id": data["member_id"],
            "other_id": data["other_id"],
            "currency": currency,
            "entries": [
                {
                    "expense": expense_schema.dump(entry["expense"]),
                    "effect": quantize_amount(entry["effect"], currency),
                }
                for entry in ledger["entries"]
            ],
            "net_balance": quantize_amount(ledger["net_balance"], currency),
        },
        "warnings": [],
    }), 200
