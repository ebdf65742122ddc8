from marshmallow import fields

from spendify.extensions import ma

class UserSearchSchema(ma.Schema):
    id = fields.String()
    name = fields.String()
    email = fields.String()

users_search_schema = UserSearchSchema(many=True)
