from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from spendify.schemas.transaction_schema import transaction_schema, transactions_schema
from spendify.schemas.user_schema import users_search_schema
from spendify.services.transfer_service import send_money, transfer_history, search_users
from spendify.utils.auth_utils import auth_required
from spendify.utils.response_formatter import success_response

bp = Blueprint("transfer", __name__, url_prefix="/api/transfer")


@bp.route("/send", methods=["POST"])
@auth_required
def send():
    data = request.get_json(silent=True) or {}
    result = send_money(get_jwt_identity(), data)
    result["transaction"] = transaction_schema.dump(result["transaction"])
    return success_response({"data": result}, message="Money sent successfully")


@bp.route("/history", methods=["GET"])
@auth_required
def history():
    items, meta = transfer_history(get_jwt_identity(), request.args)
    return success_response({**meta, "data": transactions_schema.dump(items)})


@bp.route("/search", methods=["GET"])
@auth_required
def search():
    users = search_users(get_jwt_identity(), request.args)
    return success_response({"count": len(users), "data": users_search_schema.dump(users)})
