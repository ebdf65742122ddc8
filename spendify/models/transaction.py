from decimal import Decimal

from spendify.extensions import db
from spendify.models.user import gen_uuid
from spendify.utils.dates import utcnow

ORIGIN_MANUAL = "manual"
ORIGIN_PEER = "peer"
ORIGIN_CARD = "card"


class Transaction(db.Model):
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_user_date", "user_id", "date"),
        db.Index("ix_transactions_user_type", "user_id", "type"),
        db.Index("ix_transactions_user_category", "user_id", "category"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("txn"))
    user_id = db.Column(db.String(50), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    type = db.Column(db.String(10), nullable=False)
    category = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(200))
    date = db.Column(db.DateTime, nullable=False, default=utcnow)

    # manual, peer or card; only manual records may be edited or deleted
    origin = db.Column(db.String(10), nullable=False, default=ORIGIN_MANUAL)
    # bumped on every edit so a write based on a stale read matches no row
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("transactions", lazy="dynamic", cascade="all, delete-orphan"))

    @staticmethod
    def contribution(kind, amount):
        """Signed effect of a transaction on its owner's balance."""
        amount = Decimal(amount)
        return amount if kind == "income" else -amount

    @property
    def is_manual(self):
        return self.origin == ORIGIN_MANUAL

    @property
    def signed_amount(self):
        return self.contribution(self.type, self.amount)
