import logging
import math

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from spendify.extensions import db
from spendify.models.user import User
from spendify.utils.auth_utils import hash_password, check_password
from spendify.utils.dates import utcnow
from spendify.utils.exceptions import ValidationError, ConflictError, AuthError, LockedError
from spendify.utils.validators import validate_registration, validate_password_strength

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def normalize_email(email):
    return email.strip().lower()


def minutes_remaining(lock_until, now=None):
    seconds = (lock_until - (now or utcnow())).total_seconds()
    return max(1, math.ceil(seconds / 60))


def _plural(n, word):
    return f"{n} {word}{'' if n == 1 else 's'}"


def register_user(data):
    """
    Create an account.

    Duplicate emails are reported (not masked): login already answers
    generically and registration is rate limited per IP.
    """
    errors = validate_registration(data)
    if errors:
        raise ValidationError.from_errors(errors)

    email = normalize_email(data["email"])
    if User.query.filter_by(email=email).first():
        raise ConflictError("An account with this email already exists", field="email")

    password_errors = validate_password_strength(data["password"])
    if password_errors:
        raise ValidationError.from_errors(password_errors)

    user = User(
        email=email,
        name=data["name"].strip(),
        password_hash=hash_password(data["password"]),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("An account with this email already exists", field="email")

    logger.info("Registered user %s", user.id)
    return user


def record_failed_login(user):
    """
    Count a failed password check; lock the account on reaching the limit.

    An expired lock restarts the count at 1. The increment is done by the
    database so parallel guesses are all counted. Returns the refreshed user.
    """
    max_attempts = current_app.config["MAX_LOGIN_ATTEMPTS"]
    now = utcnow()

    if user.lock_until is not None and user.lock_until <= now:
        db.session.execute(
            update(User).where(User.id == user.id)
            .values(failed_login_attempts=1, lock_until=None)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return User.query.get(user.id)

    attempts = db.session.execute(
        update(User).where(User.id == user.id)
        .values(failed_login_attempts=User.failed_login_attempts + 1)
        .returning(User.failed_login_attempts)
        .execution_options(synchronize_session=False)
    ).scalar_one()

    if attempts >= max_attempts:
        db.session.execute(
            update(User).where(User.id == user.id)
            .values(lock_until=now + current_app.config["LOCK_DURATION"])
            .execution_options(synchronize_session=False)
        )
        logger.warning("Account %s locked after %s failed login attempts", user.id, attempts)

    db.session.commit()
    return User.query.get(user.id)


def reset_failed_logins(user):
    db.session.execute(
        update(User).where(User.id == user.id)
        .values(failed_login_attempts=0, lock_until=None)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


def authenticate_user(email, password):
    """
    Check credentials against the lockout state machine.

    A locked account is refused even with the right password.
    """
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise ValidationError("Please provide email and password")

    user = User.query.filter_by(email=normalize_email(email)).first()
    if not user:
        raise AuthError(INVALID_CREDENTIALS)

    if user.is_locked():
        mins = minutes_remaining(user.lock_until)
        raise LockedError(
            f"Account locked due to too many failed attempts. Try again in {_plural(mins, 'minute')}.",
            lock_until=user.lock_until,
        )

    if not check_password(password, user.password_hash):
        user = record_failed_login(user)
        if user.is_locked():
            mins = minutes_remaining(user.lock_until)
            raise LockedError(
                f"Too many failed attempts. Account locked for {_plural(mins, 'minute')}.",
                lock_until=user.lock_until,
            )
        attempts_left = max(0, current_app.config["MAX_LOGIN_ATTEMPTS"] - (user.failed_login_attempts or 0))
        message = (
            f"{INVALID_CREDENTIALS}. {_plural(attempts_left, 'attempt')} remaining before account lock."
            if attempts_left > 0 else f"{INVALID_CREDENTIALS}."
        )
        raise AuthError(message, attemptsLeft=attempts_left)

    reset_failed_logins(user)
    return User.query.get(user.id)
