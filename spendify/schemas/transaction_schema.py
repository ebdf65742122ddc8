from marshmallow import fields

from spendify.extensions import ma

class TransactionSchema(ma.Schema):
    id = fields.String()
    user_id = fields.String(data_key="userId")
    amount = fields.Float()
    type = fields.String()
    category = fields.String()
    description = fields.String(allow_none=True)
    date = fields.DateTime()
    origin = fields.String()
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

transaction_schema = TransactionSchema()
transactions_schema = TransactionSchema(many=True)
