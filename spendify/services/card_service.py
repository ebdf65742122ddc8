import logging

from sqlalchemy.exc import SQLAlchemyError

from spendify.extensions import db
from spendify.models.card import Card
from spendify.models.transaction import ORIGIN_CARD
from spendify.services import ledger_service
from spendify.services.transaction_service import record_mirror_pair
from spendify.utils.encryption import encrypt, last_four, detect_card_type
from spendify.utils.exceptions import ValidationError, NotFoundError, AuthorizationError, LedgerError
from spendify.utils.validators import (
    validate_card_body,
    validate_card_update,
    validate_card_transfer,
    normalize_card_number,
)

logger = logging.getLogger(__name__)


def list_cards(user_id):
    return (
        Card.query.filter_by(user_id=user_id, is_active=True)
        .order_by(Card.created_at.desc())
        .all()
    )


def get_owned_card(user_id, card_id, action="access"):
    card = Card.query.get(card_id)
    if not card or not card.is_active:
        raise NotFoundError("Card not found")
    if card.user_id != user_id:
        raise AuthorizationError(f"Not authorized to {action} this card")
    return card


def create_card(user_id, data):
    """Store a card. The number is encrypted, the CVV is checked and dropped."""
    errors = validate_card_body(data)
    if errors:
        raise ValidationError.from_errors(errors)

    number = normalize_card_number(data["cardNumber"])
    card = Card(
        user_id=user_id,
        card_number_encrypted=encrypt(number),
        last_four=last_four(number),
        card_holder_name=data["cardHolderName"].strip().upper(),
        expiry=data["expiry"],
        balance=ledger_service.to_money(data.get("balance") or 0),
        card_type=data.get("cardType") or detect_card_type(number),
    )
    db.session.add(card)
    db.session.commit()
    return card


def update_card(user_id, card_id, data):
    """Only holder name and expiry are editable; balance moves through transfers."""
    card = get_owned_card(user_id, card_id, action="update")
    errors = validate_card_update(data)
    if errors:
        raise ValidationError.from_errors(errors)

    if "cardHolderName" in data:
        card.card_holder_name = data["cardHolderName"].strip().upper()
    if "expiry" in data:
        card.expiry = data["expiry"]
    db.session.commit()
    return card


def deactivate_card(user_id, card_id):
    card = get_owned_card(user_id, card_id, action="delete")
    card.is_active = False
    db.session.commit()


def transfer_between_cards(user_id, data):
    """
    Move money between two of the caller's cards.

    Debit source (guarded), credit destination, then write the two mirror
    records. Any failure after the debit is undone by inverse increments.
    """
    errors = validate_card_transfer(data)
    if errors:
        raise ValidationError.from_errors(errors)

    amount = ledger_service.to_money(data["amount"])
    from_card = Card.query.get(data["fromCardId"])
    to_card = Card.query.get(data["toCardId"])

    if not from_card or not to_card or not from_card.is_active or not to_card.is_active:
        raise NotFoundError("One or both cards not found")
    if from_card.user_id != user_id or to_card.user_id != user_id:
        raise AuthorizationError("Not authorized to perform this transfer")

    from_id, to_id = from_card.id, to_card.id
    from_last4, to_last4 = from_card.last_four, to_card.last_four

    from_balance = ledger_service.debit(Card, from_id, amount, message="Insufficient balance in source card")

    to_balance = ledger_service.credit(Card, to_id, amount)
    if to_balance is None:
        ledger_service.compensate(Card, from_id, amount, "destination card disappeared")
        raise NotFoundError("Destination card not found. Transfer rolled back.")

    try:
        record_mirror_pair([
            (user_id, "expense", amount, f"Transfer to card ending in {to_last4}"),
            (user_id, "income", amount, f"Transfer from card ending in {from_last4}"),
        ], origin=ORIGIN_CARD)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Card transfer %s -> %s: failed to write records", from_id, to_id)
        ledger_service.compensate(Card, from_id, amount, "card transfer records failed")
        ledger_service.compensate(Card, to_id, -amount, "card transfer records failed")
        raise LedgerError("Failed to create transaction records. Transfer rolled back.")

    return {
        "fromCard": {"id": from_id, "maskedNumber": f"**** **** **** {from_last4}", "balance": float(from_balance)},
        "toCard": {"id": to_id, "maskedNumber": f"**** **** **** {to_last4}", "balance": float(to_balance)},
        "amount": float(amount),
    }
