"""
routes/splits.py: Split calculator route handlers.

Layer rules:
  - Parse, call ONE service function, return envelope.
  - No business logic.

A calculator problem (too few participants, totals that do not add up) is a
normal state of a form being filled in, so it is returned with status 200 in
data.error, next to the partial split list. Only a malformed request is a 400.

Endpoints (url_prefix=/api/v1):
  POST /splits/<method>          → 200  run the calculator
  POST /splits/<method>/derive   → 200  calculator input from saved splits
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from settleup.app.models.expense import SplitMethod
from settleup.app.schemas.split_schema import DeriveSplitSchema, SplitRequestSchema
from settleup.app.services import split_service

splits_bp = Blueprint("splits", __name__)


def _payload_with_method(method: str) -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    return {**payload, "method": method}


def _serialize_result(result: split_service.SplitResult) -> dict:
    return {
        "splits": [{"member_id": s.member_id, "amount": s.amount} for s in result.splits],
        "total": result.total,
        "is_valid": result.is_valid,
        "error": (
            {"code": result.error_code, "message": result.error}
            if result.error is not None
            else None
        ),
    }


@splits_bp.route("/splits/<method>", methods=["POST"])
def compute_split(method: str):
    """
    POST /splits/:method

    Body: {"amount": "90.00", "members": ["a", "b"], "input": {...} | [...],
           "currency": "USD"}
    """
    data = SplitRequestSchema().load(_payload_with_method(method))
    method = data["method"]
    user_input = data["input"]
    if user_input is None:
        user_input = [] if method == SplitMethod.EQUAL else {}

    result = split_service.compute_split(
        method,
        data["amount"],
        data["members"],
        user_input,
        currency=data["currency"] or current_app.config["DEFAULT_CURRENCY"],
    )
    return jsonify({"data": _serialize_result(result), "warnings": []}), 200


@splits_bp.route("/splits/<method>/derive", methods=["POST"])
def derive_split(method: str):
    """
    POST /splits/:method/derive

    Body: {"amount": "90.00", "splits": [{"member_id": "a", "amount": "30"}, ...]}
    """
    data = DeriveSplitSchema().load(_payload_with_method(method))
    derived = split_service.derive_split_input(data["method"], data["amount"], data["splits"])
    return jsonify({
        "data": {"method": data["method"].value, "input": derived},
        "warnings": [],
    }), 200
