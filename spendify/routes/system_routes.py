from flask import Blueprint

from spendify.extensions import limiter
from spendify.utils.dates import utcnow
from spendify.utils.response_formatter import success_response

bp = Blueprint("system", __name__)


@bp.route("/health", methods=["GET"])
@limiter.exempt
def health():
    return success_response({"timestamp": utcnow().isoformat() + "Z"}, message="Server is running")


@bp.route("/", methods=["GET"])
def index():
    return success_response({
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "auth": "/api/auth",
            "transactions": "/api/transactions",
            "cards": "/api/cards",
            "analytics": "/api/analytics",
            "transfer": "/api/transfer",
            "csrf": "/api/csrf-token",
        },
    }, message="Welcome to Spendify API")
