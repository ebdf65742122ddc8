import hashlib
from functools import wraps

from flask import request, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt

from spendify.extensions import bcrypt, jwt
from spendify.utils.exceptions import AuthError
from spendify.utils.response_formatter import error_response


def hash_password(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")

def check_password(password, hashed_password):
    return bcrypt.check_password_hash(hashed_password, password)


def request_fingerprint():
    """sha256 of user-agent and client IP. A coarse signal: NAT and mobile
    carriers rotate IPs, so a mismatch is not proof of theft."""
    user_agent = request.headers.get("User-Agent") or "unknown"
    ip = request.remote_addr or "unknown"
    return hashlib.sha256(f"{user_agent}-{ip}".encode("utf-8")).hexdigest()


def auth_required(fn):
    """jwt_required plus the fingerprint binding check."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()
        if claims.get("fp") != request_fingerprint():
            current_app.logger.warning("Token fingerprint mismatch for user %s", claims.get("sub"))
            raise AuthError("Token fingerprint mismatch")
        return fn(*args, **kwargs)
    return wrapper


@jwt.user_lookup_loader
def load_user(_jwt_header, jwt_data):
    from spendify.models.user import User
    return User.query.get(jwt_data["sub"])


@jwt.token_in_blocklist_loader
def is_token_revoked(_jwt_header, jwt_payload):
    from spendify.models.blacklisted_token import BlacklistedToken
    return BlacklistedToken.is_blacklisted(jwt_payload["jti"])


@jwt.unauthorized_loader
def missing_token(reason):
    return error_response("UNAUTHORIZED", "Not authorized to access this route", status=401)


@jwt.invalid_token_loader
def invalid_token(reason):
    return error_response("UNAUTHORIZED", "Not authorized, token failed", status=401)


@jwt.expired_token_loader
def expired_token(_jwt_header, _jwt_payload):
    return error_response("TOKEN_EXPIRED", "Token has expired", status=401)


@jwt.revoked_token_loader
def revoked_token(_jwt_header, _jwt_payload):
    return error_response("TOKEN_REVOKED", "Token has been revoked/logged out", status=401)


@jwt.user_lookup_error_loader
def user_not_found(_jwt_header, _jwt_payload):
    return error_response("UNAUTHORIZED", "User not found", status=401)
