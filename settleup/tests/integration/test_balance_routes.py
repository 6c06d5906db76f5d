"""
tests/integration/test_balance_routes.py: Balance endpoints.

Endpoints covered:
  POST /balances            → 200
  POST /balances/pairwise   → 200

Invariants verified:
  - balance_sum is "0.00" for a consistent expense list
  - personal expenses do not move balances
  - an inconsistent expense list is a 500 INTERNAL_ERROR, not a validation error
"""

from __future__ import annotations

from .conftest import MEMBERS, expense, post


def _dinner():
    return expense("e1", "alice", "90.00", {"alice": "30.00", "bob": "30.00", "carol": "30.00"})


def test_balances_and_simplified_debts(client):
    resp = post(client, "/balances", {"members": MEMBERS, "expenses": [_dinner()]})
    assert resp.status_code == 200

    body = resp.get_json()
    assert body["warnings"] == []
    data = body["data"]
    assert data["currency"] == "USD"
    assert data["balances"] == [
        {"member_id": "alice", "balance": "60.00"},
        {"member_id": "bob", "balance": "-30.00"},
        {"member_id": "carol", "balance": "-30.00"},
    ]
    assert data["simplified_debts"] == [
        {"from_member_id": "bob", "to_member_id": "alice", "amount": "30.00"},
        {"from_member_id": "carol", "to_member_id": "alice", "amount": "30.00"},
    ]
    assert data["balance_sum"] == "0.00"
    assert data["summary"] == {
        "total_group_expense": "90.00",
        "total_shared_expense": "90.00",
        "total_settled": "0.00",
        "balance_to_settle": "60.00",
    }


def test_no_expenses_everyone_settled(client):
    resp = post(client, "/balances", {"members": MEMBERS})
    data = resp.get_json()["data"]
    assert data["simplified_debts"] == []
    assert all(row["balance"] == "0.00" for row in data["balances"])


def test_personal_expense_does_not_move_balances(client):
    personal = expense("e2", "bob", "12.00", {"bob": "12.00"})
    resp = post(client, "/balances", {"members": MEMBERS, "expenses": [personal]})
    data = resp.get_json()["data"]
    assert all(row["balance"] == "0.00" for row in data["balances"])
    assert data["summary"]["total_group_expense"] == "12.00"


def test_currency_controls_rounding(client):
    dinner = expense("e1", "alice", "1000", {"alice": "333", "bob": "333", "carol": "334"})
    dinner["currency"] = "JPY"
    resp = post(client, "/balances", {"members": MEMBERS, "expenses": [dinner], "currency": "JPY"})
    data = resp.get_json()["data"]
    assert data["balances"][0] == {"member_id": "alice", "balance": "667"}


def test_inconsistent_expense_list_is_500(client):
    broken = expense("e1", "alice", "100.00", {"alice": "10.00", "bob": "10.00"})
    resp = post(client, "/balances", {"members": MEMBERS, "expenses": [broken]})
    assert resp.status_code == 500
    assert resp.get_json()["error"]["code"] == "INTERNAL_ERROR"


def test_duplicate_split_member_is_400(client):
    bad = _dinner()
    bad["splits"][1]["member_id"] = "alice"
    resp = post(client, "/balances", {"members": MEMBERS, "expenses": [bad]})
    assert resp.status_code == 400
    body = resp.get_json()["error"]
    assert body["code"] == "DUPLICATE_SPLIT_MEMBER"
    assert body["field"] == "expenses.0.splits"


def test_invalid_category_is_400(client):
    bad = _dinner()
    bad["category"] = "Groceries & Stuff"
    resp = post(client, "/balances", {"members": MEMBERS, "expenses": [bad]})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_CATEGORY"


def test_invalid_currency_is_400(client):
    resp = post(client, "/balances", {"members": MEMBERS, "currency": "DOGE"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == {
        "code": "INVALID_CURRENCY",
        "message": "The currency code is not a supported ISO 4217 code.",
        "field": "currency",
    }


def test_pairwise_ledger(client):
    lunch = expense(
        "e2", "bob", "40.00", {"alice": "20.00", "bob": "20.00"},
        expense_date="2024-03-02T12:00:00+00:00",
    )
    dinner = _dinner()
    dinner["expense_date"] = "2024-03-01T12:00:00+00:00"

    resp = post(client, "/balances/pairwise", {
        "members": MEMBERS,
        "expenses": [dinner, lunch],
        "member_id": "alice",
        "other_id": "bob",
    })
    assert resp.status_code == 200

    data = resp.get_json()["data"]
    assert data["net_balance"] == "10.00"
    assert [(e["expense"]["id"], e["effect"]) for e in data["entries"]] == [
        ("e2", "-20.00"),
        ("e1", "30.00"),
    ]
