import logging
import secrets
from datetime import timedelta, datetime, timezone

from flask import current_app
from flask_jwt_extended import create_access_token
from sqlalchemy import update, delete
from sqlalchemy.exc import IntegrityError

from spendify.extensions import db
from spendify.models.refresh_token import RefreshToken
from spendify.models.blacklisted_token import BlacklistedToken
from spendify.utils.dates import utcnow
from spendify.utils.exceptions import AuthError

logger = logging.getLogger(__name__)


def issue_access_token(user, fingerprint):
    return create_access_token(
        identity=user.id,
        additional_claims={"fp": fingerprint},
        expires_delta=timedelta(seconds=current_app.config.get("ACCESS_EXPIRES", 3600)),
    )


def issue_refresh_token(user, fingerprint):
    """Opaque random token stored server side. Not a JWT."""
    record = RefreshToken(
        user_id=user.id,
        token=secrets.token_hex(40),
        expires_at=utcnow() + timedelta(days=current_app.config.get("REFRESH_EXPIRES_DAYS", 7)),
        fingerprint=fingerprint,
    )
    db.session.add(record)
    db.session.commit()
    return record.token


def issue_token_pair(user, fingerprint):
    return issue_access_token(user, fingerprint), issue_refresh_token(user, fingerprint)


def revoke_all_for_user(user_id):
    now = utcnow()
    result = db.session.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=now)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount


def rotate_refresh_token(token, fingerprint):
    """
    Redeem a refresh token: revoke it and return a new (access, refresh) pair.

    The revoke is a conditional UPDATE on ``revoked_at IS NULL`` so two
    concurrent redemptions of the same token cannot both succeed. Presenting
    an already revoked token is treated as theft and revokes every session of
    its owner.
    """
    from spendify.models.user import User

    if not isinstance(token, str) or not token:
        raise AuthError("Refresh token is required")

    record = RefreshToken.query.filter_by(token=token).first()
    if record is None:
        raise AuthError("Invalid refresh token")

    if record.revoked_at is not None:
        logger.warning("Revoked refresh token reused for user %s; revoking all sessions", record.user_id)
        revoke_all_for_user(record.user_id)
        raise AuthError("Refresh token has been revoked")

    now = utcnow()
    if record.is_expired(now):
        raise AuthError("Refresh token has expired")

    if record.fingerprint != fingerprint:
        logger.warning("Refresh token fingerprint mismatch for user %s", record.user_id)
        raise AuthError("Refresh token fingerprint mismatch")

    result = db.session.execute(
        update(RefreshToken)
        .where(RefreshToken.id == record.id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=now)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    if result.rowcount != 1:
        raise AuthError("Refresh token has been revoked")

    user = User.query.get(record.user_id)
    if user is None:
        raise AuthError("User not found")

    return issue_token_pair(user, fingerprint)


def blacklist_access_token(jwt_payload):
    """Deny the token until its own ``exp``."""
    expires_at = datetime.fromtimestamp(jwt_payload["exp"], timezone.utc).replace(tzinfo=None)
    if BlacklistedToken.is_blacklisted(jwt_payload["jti"]):
        return
    db.session.add(BlacklistedToken(jti=jwt_payload["jti"], expires_at=expires_at))
    try:
        db.session.commit()
    except IntegrityError:
        # concurrent logout with the same token already wrote the entry
        db.session.rollback()


def revoke_refresh_token(token, user_id):
    """Revoke one refresh token belonging to ``user_id``. Unknown tokens are ignored."""
    if not isinstance(token, str) or not token:
        return False
    result = db.session.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token == token,
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        )
        .values(revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def purge_expired_tokens():
    now = utcnow()
    blacklisted = db.session.execute(
        delete(BlacklistedToken).where(BlacklistedToken.expires_at <= now)
        .execution_options(synchronize_session=False)
    ).rowcount
    refresh = db.session.execute(
        delete(RefreshToken).where(RefreshToken.expires_at <= now)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.commit()
    return blacklisted, refresh
