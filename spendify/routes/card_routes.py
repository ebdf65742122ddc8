from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from spendify.schemas.card_schema import card_schema, cards_schema
from spendify.services.card_service import (
    list_cards,
    get_owned_card,
    create_card,
    update_card,
    deactivate_card,
    transfer_between_cards,
)
from spendify.utils.auth_utils import auth_required
from spendify.utils.response_formatter import success_response

bp = Blueprint("cards", __name__, url_prefix="/api/cards")


@bp.route("", methods=["GET"])
@auth_required
def index():
    cards = list_cards(get_jwt_identity())
    return success_response({"count": len(cards), "data": cards_schema.dump(cards)})


@bp.route("", methods=["POST"])
@auth_required
def create():
    data = request.get_json(silent=True) or {}
    card = create_card(get_jwt_identity(), data)
    return success_response({"data": card_schema.dump(card)}, message="Card added successfully", status=201)


# registered before /<card_id> so "transfer" is never taken for an id
@bp.route("/transfer", methods=["POST"])
@auth_required
def transfer():
    data = request.get_json(silent=True) or {}
    result = transfer_between_cards(get_jwt_identity(), data)
    return success_response({"data": result}, message="Transfer completed successfully")


@bp.route("/<card_id>", methods=["GET"])
@auth_required
def show(card_id):
    card = get_owned_card(get_jwt_identity(), card_id)
    return success_response({"data": card_schema.dump(card)})


@bp.route("/<card_id>", methods=["PUT"])
@auth_required
def update(card_id):
    data = request.get_json(silent=True) or {}
    card = update_card(get_jwt_identity(), card_id, data)
    return success_response({"data": card_schema.dump(card)}, message="Card updated successfully")


@bp.route("/<card_id>", methods=["DELETE"])
@auth_required
def destroy(card_id):
    deactivate_card(get_jwt_identity(), card_id)
    return success_response({"data": {}}, message="Card deleted successfully")
