from spendify.extensions import db
from spendify.utils.dates import utcnow
import uuid

def gen_uuid(prefix=None):
    uid = str(uuid.uuid4())
    return f"{prefix}-{uid}" if prefix else uid

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("usr"))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(50), nullable=False)

    # only ever changed through ledger_service.apply_delta
    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    failed_login_attempts = db.Column(db.Integer, nullable=False, default=0)
    lock_until = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def is_locked(self, now=None):
        return self.lock_until is not None and self.lock_until > (now or utcnow())

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "balance": float(self.balance or 0),
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
