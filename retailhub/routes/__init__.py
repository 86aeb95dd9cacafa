#Blueprints for the seller API
from ..resources import blp_plan_validity


def register_routes(app, api):
    api.register_blueprint(blp_plan_validity, url_prefix="/api/v1/plan-validity")
