"""Pytest fixtures for the Spendify API.

Every test gets a fresh app on its own SQLite file, so requests issued from
worker threads each use a real connection. ``ApiClient`` performs the CSRF
handshake once and then sends the token header and the bearer token on
every request.
"""

from decimal import Decimal

import pytest

from spendify.extensions import db
from spendify.main import create_app
from spendify.models.user import User
from spendify.utils.auth_utils import hash_password

STRONG_PASSWORD = "Str0ng!Passw0rd"


class ApiClient:
    def __init__(self, client):
        self.client = client
        self.token = None
        self.refresh_token = None
        resp = client.get("/api/csrf-token")
        self.csrf = resp.get_json()["csrfToken"]

    def _headers(self, extra=None):
        headers = {"X-XSRF-TOKEN": self.csrf}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers.update(extra or {})
        return headers

    def get(self, path, headers=None, **kwargs):
        return self.client.get(path, headers=self._headers(headers), **kwargs)

    def post(self, path, json=None, headers=None, **kwargs):
        return self.client.post(path, json=json, headers=self._headers(headers), **kwargs)

    def put(self, path, json=None, headers=None, **kwargs):
        return self.client.put(path, json=json, headers=self._headers(headers), **kwargs)

    def delete(self, path, headers=None, **kwargs):
        return self.client.delete(path, headers=self._headers(headers), **kwargs)


def make_app(tmp_path, **overrides):
    config = {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'spendify-test.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30, "check_same_thread": False}},
    }
    config.update(overrides)
    app = create_app("testing", config)
    with app.app_context():
        db.create_all()
    return app


@pytest.fixture
def app(tmp_path):
    app = make_app(tmp_path)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def api(app):
    return ApiClient(app.test_client())


@pytest.fixture
def create_user(app):
    """Insert a user directly, optionally with a starting balance."""

    def _create(email="alice@example.com", name="Alice", password=STRONG_PASSWORD, balance=0):
        with app.app_context():
            user = User(
                email=email,
                name=name,
                password_hash=hash_password(password),
                balance=Decimal(str(balance)),
            )
            db.session.add(user)
            db.session.commit()
            return user.id

    return _create


@pytest.fixture
def login_as(app):
    """Log in through the API and return an authenticated ApiClient."""

    def _login(email="alice@example.com", password=STRONG_PASSWORD):
        client = ApiClient(app.test_client())
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        body = resp.get_json()
        client.token = body["token"]
        client.refresh_token = body["refreshToken"]
        return client

    return _login


@pytest.fixture
def balance_of(app):
    def _balance(model, row_id):
        with app.app_context():
            return db.session.get(model, row_id).balance

    return _balance
