from spendify.extensions import db
from spendify.models.user import gen_uuid
from spendify.utils.dates import utcnow


class RefreshToken(db.Model):
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        db.Index("ix_refresh_tokens_user_revoked", "user_id", "revoked_at"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("rt"))
    user_id = db.Column(db.String(50), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    fingerprint = db.Column(db.String(64), nullable=False)
    revoked_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def is_expired(self, now=None):
        return (now or utcnow()) >= self.expires_at
