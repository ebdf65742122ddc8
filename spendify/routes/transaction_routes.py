from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from spendify.schemas.transaction_schema import transaction_schema, transactions_schema
from spendify.services.transaction_service import (
    list_transactions,
    get_owned_transaction,
    create_transaction,
    update_transaction,
    delete_transaction,
)
from spendify.utils.auth_utils import auth_required
from spendify.utils.response_formatter import success_response

bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@bp.route("", methods=["GET"])
@auth_required
def index():
    items, meta = list_transactions(get_jwt_identity(), request.args)
    return success_response({**meta, "data": transactions_schema.dump(items)})


@bp.route("", methods=["POST"])
@auth_required
def create():
    data = request.get_json(silent=True) or {}
    txn = create_transaction(get_jwt_identity(), data)
    return success_response(
        {"data": transaction_schema.dump(txn)},
        message="Transaction created successfully",
        status=201,
    )


@bp.route("/<txn_id>", methods=["GET"])
@auth_required
def show(txn_id):
    txn = get_owned_transaction(get_jwt_identity(), txn_id)
    return success_response({"data": transaction_schema.dump(txn)})


@bp.route("/<txn_id>", methods=["PUT"])
@auth_required
def update(txn_id):
    data = request.get_json(silent=True) or {}
    txn = update_transaction(get_jwt_identity(), txn_id, data)
    return success_response(
        {"data": transaction_schema.dump(txn)},
        message="Transaction updated successfully",
    )


@bp.route("/<txn_id>", methods=["DELETE"])
@auth_required
def destroy(txn_id):
    delete_transaction(get_jwt_identity(), txn_id)
    return success_response({"data": {}}, message="Transaction deleted successfully")
