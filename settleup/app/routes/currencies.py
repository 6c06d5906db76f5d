"""
routes/currencies.py: Supported currency table.

Endpoints (url_prefix=/api/v1):
  GET /currencies   → 200  every supported ISO 4217 code + the default
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from settleup.app.models.currency import SUPPORTED_CURRENCIES

currencies_bp = Blueprint("currencies", __name__)


@currencies_bp.route("/currencies", methods=["GET"])
def list_currencies():
    return jsonify({
        "data": {
            "default": current_app.config["DEFAULT_CURRENCY"],
            "currencies": [c._asdict() for c in SUPPORTED_CURRENCIES],
        },
        "warnings": [],
    }), 200
