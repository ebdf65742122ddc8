import logging

from sqlalchemy.exc import SQLAlchemyError

from spendify.extensions import db
from spendify.models.transaction import Transaction, ORIGIN_PEER
from spendify.models.user import User
from spendify.services import ledger_service
from spendify.services.transaction_service import record_mirror_pair
from spendify.utils.exceptions import ValidationError, NotFoundError, InsufficientFundsError, LedgerError
from spendify.utils.pagination import paginate_query
from spendify.utils.validators import (
    validate_transfer_body,
    validate_pagination,
    validate_search_query,
    escape_like,
)

logger = logging.getLogger(__name__)


def send_money(sender_id, data):
    """
    Peer-to-peer transfer.

    Order: guarded debit of the sender, credit of the recipient, then the two
    mirror records. A failed credit re-credits the sender; failed records
    reverse both sides.
    """
    errors = validate_transfer_body(data)
    if errors:
        raise ValidationError.from_errors(errors)

    amount = ledger_service.to_money(data["amount"])
    sender = User.query.get(sender_id)

    # fast path only; the guarded debit below is the real check
    if sender.balance < amount:
        raise InsufficientFundsError("Insufficient balance", balance=sender.balance)

    recipient = User.query.filter_by(email=data["recipientEmail"].strip().lower()).first()
    if not recipient:
        raise NotFoundError("Recipient not found")
    if recipient.id == sender.id:
        raise ValidationError("Cannot send money to yourself")

    sender_name, sender_email = sender.name, sender.email
    recipient_id, recipient_name, recipient_email = recipient.id, recipient.name, recipient.email
    description = data.get("description")

    sender_balance = ledger_service.debit(User, sender_id, amount)

    if ledger_service.credit(User, recipient_id, amount) is None:
        ledger_service.compensate(User, sender_id, amount, "recipient disappeared")
        raise NotFoundError("Recipient not found. Transaction rolled back.")

    try:
        sent, _received = record_mirror_pair([
            (sender_id, "expense", amount, description or f"Sent to {recipient_name} ({recipient_email})"),
            (recipient_id, "income", amount, description or f"Received from {sender_name} ({sender_email})"),
        ], origin=ORIGIN_PEER)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Transfer %s -> %s: failed to write records", sender_id, recipient_id)
        ledger_service.compensate(User, sender_id, amount, "transfer records failed")
        ledger_service.compensate(User, recipient_id, -amount, "transfer records failed")
        raise LedgerError("Failed to create transaction records. Transfer rolled back.")

    logger.info("Transfer of %s from %s to %s", amount, sender_id, recipient_id)
    return {
        "sender": {"id": sender_id, "name": sender_name, "newBalance": float(sender_balance)},
        "recipient": {"id": recipient_id, "name": recipient_name, "email": recipient_email},
        "amount": float(amount),
        "transaction": sent,
    }


def transfer_history(user_id, args):
    errors = validate_pagination(args)
    if errors:
        raise ValidationError.from_errors(errors)

    q = (
        Transaction.query
        .filter_by(user_id=user_id, category="Transfer")
        .order_by(Transaction.date.desc(), Transaction.id)
    )
    return paginate_query(q, args.get("page", 1), args.get("limit", 10))


def search_users(user_id, args):
    """Partial, case-insensitive email search. The term is matched literally."""
    errors = validate_search_query(args)
    if errors:
        raise ValidationError.from_errors(errors)

    term = escape_like(args["email"].strip().lower())
    return (
        User.query
        .filter(User.email.ilike(f"%{term}%", escape="\\"), User.id != user_id)
        .order_by(User.email)
        .limit(5)
        .all()
    )
