from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from spendify.schemas.transaction_schema import transactions_schema
from spendify.services import analytics_service
from spendify.utils.auth_utils import auth_required
from spendify.utils.dates import utcnow
from spendify.utils.exceptions import ValidationError
from spendify.utils.response_formatter import success_response
from spendify.utils.validators import TRANSACTION_TYPES

bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _int_arg(name, default, low, high):
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is None or not low <= value <= high:
        raise ValidationError(f"{name.capitalize()} must be an integer between {low} and {high}")
    return value


@bp.route("/monthly", methods=["GET"])
@auth_required
def monthly():
    now = utcnow()
    year = _int_arg("year", now.year, 2000, 2100)
    month = _int_arg("month", now.month, 1, 12)
    return success_response({"data": analytics_service.monthly_summary(get_jwt_identity(), year, month)})


@bp.route("/category", methods=["GET"])
@auth_required
def category():
    year = _int_arg("year", utcnow().year, 2000, 2100)
    month = _int_arg("month", None, 1, 12)
    kind = request.args.get("type")
    if kind and kind not in TRANSACTION_TYPES:
        kind = None
    return success_response({"data": analytics_service.category_breakdown(get_jwt_identity(), year, month, kind)})


@bp.route("/trends", methods=["GET"])
@auth_required
def trends():
    months = _int_arg("months", 6, 1, 24)
    return success_response({"data": analytics_service.trends(get_jwt_identity(), months)})


@bp.route("/summary", methods=["GET"])
@auth_required
def summary():
    data = analytics_service.dashboard_summary(get_jwt_identity())
    data["recentTransactions"] = transactions_schema.dump(data["recentTransactions"])
    return success_response({"data": data})
