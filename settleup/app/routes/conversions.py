"""
routes/conversions.py: Currency conversion route handler.

The only async view in the app: the rate lookup may wait on the network.
Flask runs it through asgiref (installed with flask[async]).

Failure flow:
  1. Client posts {amount, from_currency, to_currency}.
  2. Rate service down → 502 EXCHANGE_RATE_UNAVAILABLE, field "manual_rate".
  3. Client asks the user for a rate and posts again with manual_rate.

Endpoints (url_prefix=/api/v1):
  POST /conversions   → 200  converted amount + the rate used
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from settleup.app import CONVERTER_EXTENSION_KEY
from settleup.app.models.currency import quantize_amount
from settleup.app.schemas.conversion_schema import ConversionRequestSchema

conversions_bp = Blueprint("conversions", __name__)


@conversions_bp.route("/conversions", methods=["POST"])
async def convert_amount():
    data = ConversionRequestSchema().load(request.get_json(silent=True) or {})
    converter = current_app.extensions[CONVERTER_EXTENSION_KEY]

    converted, quote = await converter.convert_amount(
        data["amount"],
        data["from_currency"],
        data["to_currency"],
        manual_rate=data["manual_rate"],
    )

    return jsonify({
        "data": {
            "amount": data["amount"],
            "from_currency": data["from_currency"],
            "to_currency": data["to_currency"],
            "rate": quote.rate,
            "as_of": quote.as_of,
            "source": quote.source,
            "converted_amount": quantize_amount(converted, data["to_currency"]),
        },
        "warnings": [],
    }), 200
