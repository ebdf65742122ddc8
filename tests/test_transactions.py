"""Tests for transaction CRUD and its effect on the owner's balance."""

from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from spendify.extensions import db
from spendify.models.transaction import Transaction
from spendify.models.user import User
from spendify.services import transaction_service


@pytest.fixture
def alice(create_user, login_as):
    user_id = create_user(balance=1000)
    client = login_as()
    client.user_id = user_id
    return client


def add(client, amount, kind="expense", category="Food", **extra):
    return client.post(
        "/api/transactions",
        json={"amount": amount, "type": kind, "category": category, **extra},
    )


class TestCreate:
    def test_income_credits_balance(self, alice, balance_of):
        resp = add(alice, 250.5, kind="income", category="Salary")
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["amount"] == 250.5
        assert data["userId"] == alice.user_id
        assert balance_of(User, alice.user_id) == Decimal("1250.50")

    def test_expense_debits_balance(self, alice, balance_of):
        assert add(alice, 99.99).status_code == 201
        assert balance_of(User, alice.user_id) == Decimal("900.01")

    def test_overdraft_is_refused_and_nothing_recorded(self, app, alice, balance_of):
        resp = add(alice, 1000.01)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "INSUFFICIENT_FUNDS"
        assert body["currentBalance"] == 1000.0
        assert balance_of(User, alice.user_id) == Decimal("1000.00")
        with app.app_context():
            assert Transaction.query.count() == 0

    def test_invalid_body_reports_all_errors(self, alice):
        resp = alice.post("/api/transactions", json={"amount": 0, "type": "loan"})
        assert resp.status_code == 400
        assert len(resp.get_json()["errors"]) == 3

    def test_failed_insert_reverts_credit(self, alice, balance_of, monkeypatch):
        def boom(*args, **kwargs):
            raise SQLAlchemyError("insert failed")

        monkeypatch.setattr(Session, "add", boom)
        resp = add(alice, 300, kind="income", category="Salary")
        assert resp.status_code == 500
        assert resp.get_json()["code"] == "LEDGER_ERROR"
        assert balance_of(User, alice.user_id) == Decimal("1000.00")


class TestList:
    def test_filters_sort_and_pagination(self, alice):
        add(alice, 10, category="Food", date="2024-03-01")
        add(alice, 20, category="Rent", date="2024-03-15")
        add(alice, 30, kind="income", category="Salary", date="2024-04-01")

        resp = alice.get("/api/transactions?year=2024&month=3&sort=-amount")
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["total"] == 2
        assert [t["amount"] for t in body["data"]] == [20.0, 10.0]

        resp = alice.get("/api/transactions?type=income")
        assert [t["category"] for t in resp.get_json()["data"]] == ["Salary"]

        resp = alice.get("/api/transactions?limit=2&page=2")
        body = resp.get_json()
        assert body["count"] == 1
        assert body["totalPages"] == 2
        assert body["currentPage"] == 2

    @pytest.mark.parametrize("query", ["limit=101", "limit=0", "page=0", "sort=password", "type=loan"])
    def test_invalid_query_is_rejected(self, alice, query):
        assert alice.get(f"/api/transactions?{query}").status_code == 400

    def test_limit_at_bound_is_accepted(self, alice):
        assert alice.get("/api/transactions?limit=100&page=1").status_code == 200

    def test_search_matches_wildcards_literally(self, alice):
        add(alice, 10, description="coffee")
        add(alice, 10, description="100% refund")
        resp = alice.get("/api/transactions?search=%25")
        data = resp.get_json()["data"]
        assert [t["description"] for t in data] == ["100% refund"]

    def test_only_own_transactions_are_listed(self, alice, create_user, login_as):
        add(alice, 10)
        create_user(email="bob@example.com", name="Bob")
        bob = login_as("bob@example.com")
        assert bob.get("/api/transactions").get_json()["total"] == 0


class TestUpdateDelete:
    def test_amount_change_applies_net_difference(self, alice, balance_of):
        txn_id = add(alice, 30).get_json()["data"]["id"]
        resp = alice.put(f"/api/transactions/{txn_id}", json={"amount": 50})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["amount"] == 50.0
        assert balance_of(User, alice.user_id) == Decimal("950.00")

    def test_type_flip_applies_double_effect(self, alice, balance_of):
        txn_id = add(alice, 30).get_json()["data"]["id"]
        alice.put(f"/api/transactions/{txn_id}", json={"type": "income"})
        assert balance_of(User, alice.user_id) == Decimal("1030.00")

    def test_unaffordable_edit_leaves_record_and_balance(self, app, alice, balance_of):
        txn_id = add(alice, 30).get_json()["data"]["id"]
        resp = alice.put(f"/api/transactions/{txn_id}", json={"amount": 5000})
        assert resp.status_code == 400
        assert balance_of(User, alice.user_id) == Decimal("970.00")
        with app.app_context():
            assert db.session.get(Transaction, txn_id).amount == Decimal("30.00")

    def test_delete_expense_refunds(self, alice, balance_of):
        txn_id = add(alice, 30).get_json()["data"]["id"]
        assert alice.delete(f"/api/transactions/{txn_id}").status_code == 200
        assert balance_of(User, alice.user_id) == Decimal("1000.00")
        assert alice.get(f"/api/transactions/{txn_id}").status_code == 404

    def test_spent_income_cannot_be_deleted(self, alice, balance_of):
        txn_id = add(alice, 500, kind="income", category="Salary").get_json()["data"]["id"]
        add(alice, 1200)
        resp = alice.delete(f"/api/transactions/{txn_id}")
        assert resp.status_code == 400
        assert balance_of(User, alice.user_id) == Decimal("300.00")

    def test_other_users_transaction_is_forbidden(self, alice, create_user, login_as):
        txn_id = add(alice, 10).get_json()["data"]["id"]
        create_user(email="bob@example.com", name="Bob")
        bob = login_as("bob@example.com")
        assert bob.get(f"/api/transactions/{txn_id}").status_code == 403
        assert bob.put(f"/api/transactions/{txn_id}", json={"amount": 1}).status_code == 403
        assert bob.delete(f"/api/transactions/{txn_id}").status_code == 403

    def test_missing_transaction(self, alice):
        assert alice.get("/api/transactions/txn-missing").status_code == 404

    def test_edit_based_on_stale_read_is_undone(self, app, alice, balance_of, monkeypatch):
        txn_id = add(alice, 100, kind="income", category="Salary").get_json()["data"]["id"]
        read_owned = transaction_service.get_owned_transaction

        def read_then_lose_race(user_id, txn_id, action="access"):
            txn = read_owned(user_id, txn_id, action)
            # another request commits its edit between our read and our write
            with db.engine.begin() as conn:
                conn.execute(
                    update(Transaction)
                    .where(Transaction.id == txn_id)
                    .values(version=Transaction.version + 1)
                )
            return txn

        monkeypatch.setattr(transaction_service, "get_owned_transaction", read_then_lose_race)
        resp = alice.put(f"/api/transactions/{txn_id}", json={"amount": 300})
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "CONFLICT"
        assert balance_of(User, alice.user_id) == Decimal("1100.00")

        resp = alice.delete(f"/api/transactions/{txn_id}")
        assert resp.status_code == 400
        assert balance_of(User, alice.user_id) == Decimal("1100.00")

        with app.app_context():
            assert db.session.get(Transaction, txn_id).amount == Decimal("100.00")

    def test_edit_bumps_version(self, app, alice):
        txn_id = add(alice, 30).get_json()["data"]["id"]
        alice.put(f"/api/transactions/{txn_id}", json={"description": "groceries"})
        with app.app_context():
            txn = db.session.get(Transaction, txn_id)
            assert txn.version == 2
            assert txn.description == "groceries"
