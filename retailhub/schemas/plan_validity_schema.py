# schemas/plan_validity_schema.py

from bson import ObjectId
from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema

from ..utils.plan.limits_map import USAGE_TYPES


def validate_objectid(value):
    if not ObjectId.is_valid(value):
        raise ValidationError(f"{value} is not a valid ID. Ensure you add a valid Item ID.")


class PlanTargetSchema(Schema):
    """Activate / switch body: exactly one of plan_id or plan_order_id."""
    class Meta:
        unknown = EXCLUDE

    plan_id = fields.Str(required=False, allow_none=True, validate=validate_objectid)
    plan_order_id = fields.Str(required=False, allow_none=True, validate=validate_objectid)

    @validates_schema
    def validate_target(self, data, **kwargs):
        given = [key for key in ("plan_id", "plan_order_id") if data.get(key)]
        if len(given) != 1:
            raise ValidationError("Provide exactly one of plan_id or plan_order_id.", field_name="plan_id")


class PlanUpgradeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    plan_id = fields.Str(
        required=True,
        validate=validate_objectid,
        error_messages={"required": "Plan ID is required"},
    )


class UsageCheckQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    type = fields.Str(
        required=True,
        validate=validate.OneOf(USAGE_TYPES),
        error_messages={"required": "Usage type is required"},
    )
    count = fields.Int(load_default=1, validate=validate.Range(min=1))
