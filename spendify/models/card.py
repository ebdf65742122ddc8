from spendify.extensions import db
from spendify.models.user import gen_uuid
from spendify.utils.dates import utcnow


class Card(db.Model):
    __tablename__ = "cards"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("card"))
    user_id = db.Column(db.String(50), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Fernet token of the full number; only the last four digits are kept in clear
    card_number_encrypted = db.Column(db.String(255), nullable=False)
    last_four = db.Column(db.String(4), nullable=False)

    card_holder_name = db.Column(db.String(50), nullable=False)
    expiry = db.Column(db.String(5), nullable=False)
    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    card_type = db.Column(db.String(20), nullable=False, default="other")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("cards", lazy="dynamic", cascade="all, delete-orphan"))

    @property
    def masked_number(self):
        return f"**** **** **** {self.last_four}"
