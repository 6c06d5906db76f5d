"""
schemas/conversion_schema.py: Marshmallow schema for the conversion endpoint.
"""

from __future__ import annotations

from marshmallow import Schema, fields

from settleup.app.schemas.expense_schema import (
    currency_field,
    validate_non_negative_amount,
    validate_positive_amount,
)


class ConversionRequestSchema(Schema):
    """
    POST /conversions

    manual_rate is the fallback after EXCHANGE_RATE_UNAVAILABLE: the client
    asks the user for a rate and sends the same request again with it.
    """

    amount = fields.Decimal(required=True, validate=validate_non_negative_amount)
    from_currency = currency_field(required=True)
    to_currency = currency_field(required=True)
    manual_rate = fields.Decimal(
        load_default=None, allow_none=True, validate=validate_positive_amount
    )
