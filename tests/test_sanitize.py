"""Tests for the request sanitization gate."""

import pytest

from spendify.utils.exceptions import ValidationError
from spendify.utils.sanitize import deep_sanitize, guard_operator_keys, is_operator_key, strip_xss


def test_strip_xss_removes_scripts_handlers_and_tags():
    assert strip_xss("<script>alert(1)</script>Lunch") == "Lunch"
    assert strip_xss('<img src=x onerror="alert(1)">Cafe') == "Cafe"
    assert strip_xss("javascript:alert(1)") == "alert(1)"
    assert strip_xss("<b>bold</b> text") == "bold text"
    assert strip_xss(42) == 42


def test_operator_keys():
    assert is_operator_key("$gt")
    assert is_operator_key("profile.name")
    assert not is_operator_key("email")


def test_guard_operator_keys_walks_nested_values():
    guard_operator_keys({"items": [{"name": "ok"}]})
    with pytest.raises(ValidationError) as excinfo:
        guard_operator_keys({"items": [{"$where": "1"}]}, "body")
    assert "body.items[0]" in excinfo.value.message


def test_deep_sanitize_is_in_place():
    body = {"description": "<script>x</script>hi", "tags": ["<i>a</i>"], "n": 3}
    result = deep_sanitize(body)
    assert result is body
    assert body == {"description": "hi", "tags": ["a"], "n": 3}


def test_operator_key_in_login_body_is_rejected(api):
    resp = api.post("/api/auth/login", json={"email": {"$gt": ""}, "password": "x"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert "operator key" in body["message"]


def test_operator_key_in_query_is_rejected(api):
    resp = api.get("/api/transactions?$where=1")
    assert resp.status_code == 400
    assert "operator key" in resp.get_json()["message"]


def test_markup_in_category_is_rejected(create_user, login_as):
    create_user(balance=100)
    client = login_as()
    resp = client.post(
        "/api/transactions",
        json={"amount": 5, "type": "expense", "category": "<b>Food</b>"},
    )
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Category contains invalid characters"


def test_script_in_description_is_stripped_before_storage(create_user, login_as):
    create_user(balance=100)
    client = login_as()
    resp = client.post(
        "/api/transactions",
        json={
            "amount": 5,
            "type": "expense",
            "category": "Food",
            "description": '<script>alert(1)</script>Lunch <img src=x onerror="alert(1)">',
        },
    )
    assert resp.status_code == 201
    description = resp.get_json()["data"]["description"]
    assert description == "Lunch"
    assert "<script" not in description
    assert "onerror" not in description


@pytest.mark.parametrize("body", [[{"amount": 5}], "hello", 42])
def test_non_object_body_is_rejected(create_user, login_as, body):
    create_user(balance=100)
    client = login_as()
    resp = client.post("/api/transactions", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_non_object_login_body_is_rejected(api):
    resp = api.post("/api/auth/login", json=["alice@example.com", "secret"])
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"
