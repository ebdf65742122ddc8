"""Double-submit-cookie CSRF protection."""
import hmac
import secrets

from flask import request, g, current_app

from spendify.utils.exceptions import ServiceError

SAFE_METHODS = ("GET", "HEAD", "OPTIONS")
HEADER_NAMES = ("X-XSRF-TOKEN", "X-CSRF-TOKEN")


def generate_csrf_token():
    return secrets.token_hex(32)


def current_csrf_token():
    return getattr(g, "csrf_token", None) or request.cookies.get(current_app.config["CSRF_COOKIE_NAME"])


def csrf_protect():
    if not current_app.config.get("CSRF_ENABLED", True):
        return
    cookie_name = current_app.config["CSRF_COOKIE_NAME"]
    cookie_token = request.cookies.get(cookie_name)

    if request.method in SAFE_METHODS:
        if not cookie_token:
            g.csrf_token = generate_csrf_token()
        return

    header_token = next((request.headers[h] for h in HEADER_NAMES if request.headers.get(h)), None)
    if not cookie_token or not header_token or not hmac.compare_digest(cookie_token, header_token):
        raise ServiceError(code="CSRF_FAILED", message="Invalid or missing CSRF token", status=403)


def set_csrf_cookie(response):
    token = getattr(g, "csrf_token", None)
    if token:
        response.set_cookie(
            current_app.config["CSRF_COOKIE_NAME"],
            token,
            httponly=False,
            secure=current_app.config.get("CSRF_COOKIE_SECURE", False),
            samesite="Lax",
        )
    return response


def init_csrf(app):
    app.before_request(csrf_protect)
    app.after_request(set_csrf_cookie)
