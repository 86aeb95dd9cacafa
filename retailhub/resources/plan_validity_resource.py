# resources/plan_validity_resource.py
from flask import current_app, g
from flask.views import MethodView
from flask_smorest import Blueprint

from ..auth import token_required
from ..schemas.plan_validity_schema import PlanTargetSchema, PlanUpgradeSchema, UsageCheckQuerySchema
from ..utils.json_response import outcome_response

blp_plan_validity = Blueprint(
    "plan_validity",
    __name__,
    url_prefix="/plan-validity",
    description="Plan validity and usage management",
)


def _seller_id():
    return g.current_user["seller_id"]


def _validity_service():
    return current_app.extensions["plan_validity_service"]


def _usage_service():
    return current_app.extensions["plan_usage_service"]


# ACTIVATE
@blp_plan_validity.route("/activate", methods=["POST"])
class ActivatePlan(MethodView):

    @token_required
    @blp_plan_validity.arguments(PlanTargetSchema, location="json")
    def post(self, item_data):
        """Activate a plan order, creating one for free or top-up plans."""
        outcome = _validity_service().activate(
            _seller_id(),
            plan_id=item_data.get("plan_id"),
            plan_order_id=item_data.get("plan_order_id"),
        )
        return outcome_response(outcome)


# SWITCH
@blp_plan_validity.route("/switch", methods=["POST"])
class SwitchPlan(MethodView):

    @token_required
    @blp_plan_validity.arguments(PlanTargetSchema, location="json")
    def post(self, item_data):
        """Switch to a plan order the seller already holds."""
        outcome = _validity_service().switch(
            _seller_id(),
            plan_id=item_data.get("plan_id"),
            plan_order_id=item_data.get("plan_order_id"),
        )
        return outcome_response(outcome)


@blp_plan_validity.route("/switch-to-valid", methods=["POST"])
class SwitchToValidPlan(MethodView):

    @token_required
    def post(self):
        """Replace an expired current plan with the held plan that has the most time left."""
        return outcome_response(_validity_service().switch_to_valid_plan(_seller_id()))


@blp_plan_validity.route("/reactivate-current", methods=["POST"])
class ReactivateCurrentPlan(MethodView):

    @token_required
    def post(self):
        return outcome_response(_validity_service().reactivate_current_plan(_seller_id()))


# UPGRADE
@blp_plan_validity.route("/upgrade", methods=["POST"])
class UpgradePlan(MethodView):

    @token_required
    @blp_plan_validity.arguments(PlanUpgradeSchema, location="json")
    def post(self, item_data):
        """Purchase entry point: free plans, top-ups and switching to held plans."""
        return outcome_response(_validity_service().upgrade_plan(_seller_id(), item_data["plan_id"]))


@blp_plan_validity.route("/remaining", methods=["GET"])
class RemainingValidity(MethodView):

    @token_required
    def get(self):
        return outcome_response(_validity_service().get_remaining_validity(_seller_id()))


# USAGE
@blp_plan_validity.route("/usage", methods=["GET"])
class PlanUsageSummary(MethodView):

    @token_required
    def get(self):
        """Aggregate limits and usage across the seller's plans."""
        return outcome_response(_usage_service().usage_summary(_seller_id()))


@blp_plan_validity.route("/usage/check", methods=["GET"])
class PlanUsageCheck(MethodView):

    @token_required
    @blp_plan_validity.arguments(UsageCheckQuerySchema, location="query")
    def get(self, query_data):
        outcome = _usage_service().can_add(_seller_id(), query_data["type"], query_data["count"])
        return outcome_response(outcome)
