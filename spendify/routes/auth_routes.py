from flask import Blueprint, request, current_app
from flask_jwt_extended import get_jwt, current_user

from spendify.services.auth_service import register_user, authenticate_user
from spendify.services.token_service import (
    issue_access_token,
    issue_token_pair,
    rotate_refresh_token,
    blacklist_access_token,
    revoke_refresh_token,
    purge_expired_tokens,
)
from spendify.utils.auth_utils import auth_required, request_fingerprint
from spendify.utils.rate_limits import login_limit, register_limit
from spendify.utils.response_formatter import success_response

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.route("/register", methods=["POST"])
@register_limit
def register():
    data = request.get_json(silent=True) or {}
    user = register_user(data)
    token = issue_access_token(user, request_fingerprint())
    return success_response(
        {"user": user.to_dict(), "token": token},
        message="Account created successfully",
        status=201,
    )


@bp.route("/login", methods=["POST"])
@login_limit
def login():
    data = request.get_json(silent=True) or {}
    user = authenticate_user(data.get("email"), data.get("password"))
    token, refresh = issue_token_pair(user, request_fingerprint())
    current_app.logger.info("User %s logged in", user.id)
    return success_response(
        {"user": user.to_dict(), "token": token, "refreshToken": refresh},
        message="Login successful",
    )


@bp.route("/refresh", methods=["POST"])
def refresh():
    data = request.get_json(silent=True) or {}
    token, refresh_token = rotate_refresh_token(data.get("refreshToken"), request_fingerprint())
    return success_response({"token": token, "refreshToken": refresh_token})


@bp.route("/logout", methods=["POST"])
@auth_required
def logout():
    data = request.get_json(silent=True) or {}
    blacklist_access_token(get_jwt())
    revoke_refresh_token(data.get("refreshToken"), current_user.id)
    purge_expired_tokens()
    return success_response(message="Successfully logged out")


@bp.route("/me", methods=["GET"])
@auth_required
def me():
    return success_response({"user": current_user.to_dict()})
