from spendify.extensions import db
from spendify.models.user import gen_uuid
from spendify.utils.dates import utcnow


class BlacklistedToken(db.Model):
    """Access tokens revoked by logout, kept until their natural expiry."""

    __tablename__ = "blacklisted_tokens"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("bt"))
    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    @classmethod
    def is_blacklisted(cls, jti):
        return db.session.query(cls.id).filter_by(jti=jti).first() is not None
