"""
Balance ledger primitives.

Every balance change in the system goes through ``apply_delta``: a single
``UPDATE ... SET balance = balance + :delta`` executed by the database, never
a read-modify-write in Python. A debit can carry a guard
(``AND balance >= :amount``) so the funds check and the decrement are one
statement. Concurrent requests against the same row are serialized by the
database and cannot lose an update.

Each call commits on its own. Multi-step operations (transfers, edits) order
their steps debit -> credit -> records and undo already applied steps with
``compensate`` when a later step fails.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import update, select
from sqlalchemy.exc import SQLAlchemyError

from spendify.extensions import db
from spendify.utils.exceptions import InsufficientFundsError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value):
    """Decimal rounded to cents. Floats go through str to avoid binary noise."""
    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_delta(model, row_id, delta, guard=False):
    """
    Atomically add ``delta`` to ``model.balance`` for one row and commit.

    With ``guard`` and a negative delta the update only matches while the
    balance covers the debit. Returns the new balance, or None when no row
    matched (row missing, or guard failed).
    """
    delta = to_money(delta)
    stmt = update(model).where(model.id == row_id)
    if guard and delta < 0:
        stmt = stmt.where(model.balance >= -delta)
    stmt = (
        stmt.values(balance=model.balance + delta)
        .returning(model.balance)
        .execution_options(synchronize_session=False)
    )
    try:
        new_balance = db.session.execute(stmt).scalar_one_or_none()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return new_balance


def current_balance(model, row_id):
    return db.session.execute(
        select(model.balance).where(model.id == row_id)
    ).scalar_one_or_none()


def debit(model, row_id, amount, message="Insufficient balance"):
    """Guarded decrement. Raises InsufficientFundsError with a fresh balance."""
    new_balance = apply_delta(model, row_id, -to_money(amount), guard=True)
    if new_balance is None:
        raise InsufficientFundsError(message, balance=current_balance(model, row_id))
    return new_balance


def credit(model, row_id, amount):
    """Unconditional increment. Returns None when the row does not exist."""
    return apply_delta(model, row_id, to_money(amount))


def adjust(model, row_id, delta, message="Insufficient balance"):
    """Apply a signed delta, guarding it when it is a withdrawal."""
    delta = to_money(delta)
    if delta < 0:
        return debit(model, row_id, -delta, message=message)
    if delta > 0:
        return credit(model, row_id, delta)
    return current_balance(model, row_id)


def compensate(model, row_id, delta, reason):
    """
    Best-effort inverse of an already applied delta.

    Failures are logged, not raised: the caller is already on an error path
    and must report its original failure.
    """
    logger.warning("Compensating %s %s by %s: %s", model.__tablename__, row_id, delta, reason)
    try:
        if apply_delta(model, row_id, delta) is None:
            logger.error("Compensation target %s %s no longer exists", model.__tablename__, row_id)
    except SQLAlchemyError:
        logger.exception("Compensation of %s %s by %s failed", model.__tablename__, row_id, delta)
