"""
tests/integration/conftest.py: Fixtures and helpers for all integration tests.

Design:
  - The app is stateless, so each test gets a fresh create_app("testing")
    instance. There is nothing to clean up between tests.
  - The exchange-rate source is never called: tests that need rates install
    a CurrencyConverter wrapping an AsyncMock fetcher via use_fake_rates().

Helper functions (not fixtures) are provided for common payloads:
  - expense(...)          → expense JSON dict
  - post(client, ...)     → HTTP response
  - use_fake_rates(app)   → the AsyncMock fetcher now behind /conversions

These are plain functions so they can be called with arbitrary arguments in
any test without fixture parameterization overhead.
"""

from __future__ import annotations

from decimal import Decimal
from unittest import mock

import pytest

from settleup.app import CONVERTER_EXTENSION_KEY, create_app
from settleup.app.services.conversion_service import CurrencyConverter, RateQuote


MEMBERS = ["alice", "bob", "carol"]


@pytest.fixture
def app():
    return create_app("testing")


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def expense(
    expense_id: str,
    payer_id: str,
    amount: str,
    splits: dict[str, str],
    category: str = "Other",
    **extra,
) -> dict:
    """Expense JSON with an unequal split list built from {member_id: amount}."""
    payload = {
        "id": expense_id,
        "payer_id": payer_id,
        "amount": amount,
        "currency": "USD",
        "split_method": "unequal",
        "splits": [{"member_id": m, "amount": a} for m, a in splits.items()],
        "category": category,
    }
    payload.update(extra)
    return payload


def post(client, path: str, payload):
    return client.post(f"/api/v1{path}", json=payload)


def use_fake_rates(app, rate: str = "1.08", error: Exception | None = None) -> mock.AsyncMock:
    """Swaps the app's converter for one backed by an AsyncMock fetcher."""
    if error is not None:
        fetcher = mock.AsyncMock(side_effect=error)
    else:
        fetcher = mock.AsyncMock(
            return_value=RateQuote(Decimal(rate), "2024-05-01", "exchangerate-api")
        )
    app.extensions[CONVERTER_EXTENSION_KEY] = CurrencyConverter(fetcher=fetcher)
    return fetcher
