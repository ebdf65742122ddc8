"""Tests for peer-to-peer transfers and user search."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from spendify.extensions import db
from spendify.models.transaction import Transaction
from spendify.models.user import User
from spendify.services import transfer_service


@pytest.fixture
def users(create_user):
    return {
        "alice": create_user(balance=500),
        "bob": create_user(email="bob@example.com", name="Bob", balance=50),
    }


@pytest.fixture
def alice(users, login_as):
    return login_as()


def send(client, amount, recipient="bob@example.com", **extra):
    return client.post("/api/transfer/send", json={"recipientEmail": recipient, "amount": amount, **extra})


def test_send_moves_money_and_writes_mirror_records(app, alice, users, balance_of):
    resp = send(alice, 120, description="Dinner")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["sender"]["newBalance"] == 380.0
    assert data["recipient"]["email"] == "bob@example.com"
    assert data["transaction"]["type"] == "expense"
    assert data["transaction"]["category"] == "Transfer"

    assert balance_of(User, users["alice"]) == Decimal("380.00")
    assert balance_of(User, users["bob"]) == Decimal("170.00")

    with app.app_context():
        received = Transaction.query.filter_by(user_id=users["bob"]).one()
        assert received.type == "income"
        assert received.amount == Decimal("120.00")
        assert received.description == "Dinner"


def test_default_descriptions_name_the_counterparty(app, alice, users):
    send(alice, 10)
    with app.app_context():
        sent = Transaction.query.filter_by(user_id=users["alice"]).one()
        received = Transaction.query.filter_by(user_id=users["bob"]).one()
    assert sent.description == "Sent to Bob (bob@example.com)"
    assert received.description == "Received from Alice (alice@example.com)"


def test_insufficient_balance(alice, users, balance_of):
    resp = send(alice, 500.01)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["code"] == "INSUFFICIENT_FUNDS"
    assert body["currentBalance"] == 500.0
    assert balance_of(User, users["bob"]) == Decimal("50.00")


def test_unknown_recipient(alice):
    resp = send(alice, 5, recipient="ghost@example.com")
    assert resp.status_code == 404


def test_cannot_send_to_self(alice):
    resp = send(alice, 5, recipient="ALICE@example.com")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot send money to yourself"


def test_failed_records_reverse_both_sides(app, alice, users, balance_of, monkeypatch):
    def boom(entries, origin):
        raise SQLAlchemyError("records unavailable")

    monkeypatch.setattr(transfer_service, "record_mirror_pair", boom)
    resp = send(alice, 100)
    assert resp.status_code == 500
    assert resp.get_json()["code"] == "LEDGER_ERROR"
    assert balance_of(User, users["alice"]) == Decimal("500.00")
    assert balance_of(User, users["bob"]) == Decimal("50.00")
    with app.app_context():
        assert db.session.query(Transaction).count() == 0


def test_history_lists_only_transfers(alice, users):
    send(alice, 10)
    alice.post("/api/transactions", json={"amount": 5, "type": "expense", "category": "Food"})
    resp = alice.get("/api/transfer/history")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["total"] == 1
    assert body["data"][0]["category"] == "Transfer"


class TestSearch:
    def test_partial_match_excludes_self(self, alice, users):
        resp = alice.get("/api/transfer/search?email=example")
        body = resp.get_json()
        assert resp.status_code == 200
        assert [u["email"] for u in body["data"]] == ["bob@example.com"]
        assert set(body["data"][0]) == {"id", "name", "email"}

    def test_wildcards_match_literally(self, alice, users):
        assert alice.get("/api/transfer/search?email=%25").get_json()["count"] == 0
        assert alice.get("/api/transfer/search?email=_").get_json()["count"] == 0

    def test_term_is_required(self, alice):
        assert alice.get("/api/transfer/search").status_code == 400


def test_transfer_records_cannot_be_edited_or_deleted(app, alice, users, balance_of, login_as):
    resp = send(alice, 40)
    sent = resp.get_json()["data"]["transaction"]
    assert sent["origin"] == "peer"

    resp = alice.delete(f"/api/transactions/{sent['id']}")
    assert resp.status_code == 400
    assert resp.get_json()["message"].startswith("Transfer records cannot be deleted")
    assert alice.put(f"/api/transactions/{sent['id']}", json={"amount": 1}).status_code == 400

    bob = login_as("bob@example.com")
    with app.app_context():
        received_id = Transaction.query.filter_by(user_id=users["bob"]).one().id
    assert bob.delete(f"/api/transactions/{received_id}").status_code == 400

    total = balance_of(User, users["alice"]) + balance_of(User, users["bob"])
    assert total == Decimal("550.00")
    assert balance_of(User, users["alice"]) == Decimal("460.00")
