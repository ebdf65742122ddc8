from flask import Blueprint

from spendify.utils.csrf import current_csrf_token
from spendify.utils.response_formatter import success_response

bp = Blueprint("csrf", __name__, url_prefix="/api/csrf-token")


@bp.route("", methods=["GET"])
def csrf_token():
    return success_response({"csrfToken": current_csrf_token()})
