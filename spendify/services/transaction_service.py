import logging

from sqlalchemy import extract, update, delete
from sqlalchemy.exc import SQLAlchemyError

from spendify.extensions import db
from spendify.models.transaction import Transaction
from spendify.models.user import User
from spendify.services import ledger_service
from spendify.utils.dates import parse_date, utcnow
from spendify.utils.exceptions import (
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ConflictError,
    LedgerError,
)
from spendify.utils.pagination import paginate_query
from spendify.utils.validators import (
    SORT_FIELDS,
    validate_transaction_body,
    validate_transaction_query,
    escape_like,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("amount", "type", "category", "description", "date")


def get_owned_transaction(user_id, txn_id, action="access"):
    txn = Transaction.query.get(txn_id)
    if not txn:
        raise NotFoundError("Transaction not found")
    if txn.user_id != user_id:
        raise AuthorizationError(f"Not authorized to {action} this transaction")
    return txn


def list_transactions(user_id, args):
    errors = validate_transaction_query(args)
    if errors:
        raise ValidationError.from_errors(errors)

    q = Transaction.query.filter(Transaction.user_id == user_id)

    if args.get("type"):
        q = q.filter(Transaction.type == args["type"])

    if args.get("category"):
        q = q.filter(Transaction.category.ilike(f"%{escape_like(args['category'])}%", escape="\\"))

    month, year = args.get("month"), args.get("year")
    if year is not None:
        q = q.filter(extract("year", Transaction.date) == int(year))
        if month is not None:
            q = q.filter(extract("month", Transaction.date) == int(month))

    if args.get("search"):
        q = q.filter(Transaction.description.ilike(f"%{escape_like(args['search'])}%", escape="\\"))

    column_name, descending = SORT_FIELDS[args.get("sort") or "-date"]
    column = getattr(Transaction, column_name)
    q = q.order_by(column.desc() if descending else column.asc(), Transaction.id)

    return paginate_query(q, args.get("page", 1), args.get("limit", 10))


def _new_record(user_id, data):
    return Transaction(
        user_id=user_id,
        amount=ledger_service.to_money(data["amount"]),
        type=data["type"],
        category=data["category"].strip(),
        description=data.get("description"),
        date=parse_date(data["date"]) if data.get("date") else utcnow(),
    )


def create_transaction(user_id, data):
    """
    Record a transaction and apply its effect to the owner's balance.

    Expenses are a guarded atomic debit taken before the record exists, so
    two concurrent expenses cannot both pass a stale balance check. Income is
    credited first and reversed if the record cannot be written.
    """
    errors = validate_transaction_body(data)
    if errors:
        raise ValidationError.from_errors(errors)

    txn = _new_record(user_id, data)
    delta = Transaction.contribution(txn.type, txn.amount)

    if delta < 0:
        ledger_service.debit(User, user_id, -delta, message="Insufficient balance for this expense")
    elif ledger_service.credit(User, user_id, delta) is None:
        raise NotFoundError("User not found")

    try:
        db.session.add(txn)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to save transaction for user %s", user_id)
        ledger_service.compensate(User, user_id, -delta, "transaction record not created")
        raise LedgerError("Failed to save transaction. Balance change rolled back.")

    return txn


def _require_manual(txn, action):
    if not txn.is_manual:
        raise ValidationError(
            f"Transfer records cannot be {action}. They belong to a completed transfer."
        )


def update_transaction(user_id, txn_id, data):
    """
    Edit a transaction. The balance moves by the net of reverting the old
    contribution and applying the new one, before the record changes.

    The record write is conditional on the version that was read. If another
    edit got there first the write matches no row, the balance change is
    undone and the caller is asked to retry.
    """
    txn = get_owned_transaction(user_id, txn_id, action="update")
    _require_manual(txn, "edited")

    errors = validate_transaction_body(data, partial=True)
    if errors:
        raise ValidationError.from_errors(errors)

    read_version = txn.version
    new_type = data.get("type", txn.type)
    new_amount = ledger_service.to_money(data["amount"]) if "amount" in data else txn.amount
    net_change = ledger_service.to_money(
        Transaction.contribution(new_type, new_amount) - txn.signed_amount
    )

    values = {}
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "amount":
            value = new_amount
        elif field == "category":
            value = value.strip()
        elif field == "date":
            value = parse_date(value) if value else txn.date
        values[field] = value

    ledger_service.adjust(
        User, user_id, net_change,
        message="Insufficient balance to apply this change",
    )

    try:
        matched = db.session.execute(
            update(Transaction)
            .where(Transaction.id == txn_id, Transaction.version == read_version)
            .values(version=Transaction.version + 1, **values)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to update transaction %s", txn_id)
        if net_change:
            ledger_service.compensate(User, user_id, -net_change, "transaction update failed")
        raise LedgerError("Failed to update transaction. Balance change rolled back.")

    if matched != 1:
        logger.warning("Concurrent edit of transaction %s; discarding this change", txn_id)
        if net_change:
            ledger_service.compensate(User, user_id, -net_change, "transaction changed concurrently")
        raise ConflictError("Transaction was changed by another request. Please retry.")

    return db.session.get(Transaction, txn_id)


def delete_transaction(user_id, txn_id):
    """
    Remove a transaction and revert its contribution. Reverting income is a
    guarded debit: income that has already been spent cannot be deleted.
    """
    txn = get_owned_transaction(user_id, txn_id, action="delete")
    _require_manual(txn, "deleted")

    read_version = txn.version
    revert = -txn.signed_amount

    ledger_service.adjust(
        User, user_id, revert,
        message="Cannot delete this income: balance would become negative",
    )

    try:
        matched = db.session.execute(
            delete(Transaction)
            .where(Transaction.id == txn_id, Transaction.version == read_version)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to delete transaction %s", txn_id)
        ledger_service.compensate(User, user_id, -revert, "transaction delete failed")
        raise LedgerError("Failed to delete transaction. Balance change rolled back.")

    if matched != 1:
        logger.warning("Transaction %s changed before delete; reverting", txn_id)
        ledger_service.compensate(User, user_id, -revert, "transaction changed concurrently")
        raise ConflictError("Transaction was changed by another request. Please retry.")


def record_mirror_pair(entries, origin):
    """Insert the paired records of a transfer in one commit."""
    records = [
        Transaction(
            user_id=user_id,
            amount=ledger_service.to_money(amount),
            type=kind,
            category="Transfer",
            description=description,
            date=utcnow(),
            origin=origin,
        )
        for user_id, kind, amount, description in entries
    ]
    db.session.add_all(records)
    db.session.commit()
    return records
