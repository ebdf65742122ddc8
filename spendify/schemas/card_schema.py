from marshmallow import fields

from spendify.extensions import ma

class CardSchema(ma.Schema):
    """Cards as shown to their owner. Never includes the number or CVV."""

    id = fields.String()
    user_id = fields.String(data_key="userId")
    last_four = fields.String(data_key="lastFour")
    masked_number = fields.String(data_key="maskedNumber")
    card_holder_name = fields.String(data_key="cardHolderName")
    expiry = fields.String()
    balance = fields.Float()
    card_type = fields.String(data_key="cardType")
    is_active = fields.Boolean(data_key="isActive")
    created_at = fields.DateTime(data_key="createdAt")

card_schema = CardSchema()
cards_schema = CardSchema(many=True)
