from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from marshmallow import ValidationError
from flask_smorest import Api

from .extensions import db, redis_connection, cors
from .config import load_config
from .routes import register_routes
from .utils.error_handlers import (
    handle_permission_error, handle_validation_error, handle_type_error,
)
from .utils.logger import Log
from .models.plan_model import Plan
from .models.plan_order_model import PlanOrder
from .models.sync_tracking_model import SyncTracking
from .services.sync_notifier import SyncNotifier
from .services.plan.gateway import MongoPlanGateway
from .services.plan.seller_lock import build_seller_lock
from .services.plan.plan_validity_service import PlanValidityService
from .services.plan.plan_usage_service import PlanUsageService


def setup_plan_indexes():
    Plan.create_indexes()
    PlanOrder.create_indexes()
    SyncTracking.create_indexes()


def init_plan_services(app, gateway=None, seller_lock=None, notifier=None, clock=None):
    """Wire the plan engine into app.extensions; tests pass in-memory collaborators."""
    gateway = gateway or MongoPlanGateway(use_transactions=app.config.get("PLAN_USE_TRANSACTIONS", True))
    seller_lock = seller_lock or build_seller_lock(app)
    notifier = notifier or SyncNotifier()

    options = {"clock": clock} if clock else {}
    app.extensions["plan_validity_service"] = PlanValidityService(gateway, seller_lock, notifier, **options)
    app.extensions["plan_usage_service"] = PlanUsageService(
        gateway, seller_lock, notifier,
        limits_disabled=app.config.get("DISABLE_PLAN_LIMITS", False),
        **options,
    )


def create_app(config_name=None):
    app = Flask(__name__)

    #get actual client IP
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)

    # Load configuration (must not override Flask-Smorest keys)
    load_config(app, config_name)

    app.config["API_TITLE"] = "RetailHub Seller API"
    app.config["API_VERSION"] = "v1"
    app.config["OPENAPI_VERSION"] = "3.0.3"
    app.config["OPENAPI_URL_PREFIX"] = "/api"
    app.config["OPENAPI_JSON_PATH"] = "openapi.json"
    app.config["OPENAPI_SWAGGER_UI_PATH"] = "/docs"
    app.config["OPENAPI_SWAGGER_UI_URL"] = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"

    api = Api(app)

    # Initialize all extensions
    db.init_app(app)
    redis_connection.init_app(app)
    cors.init_app(app)

    #Setup database indexes (skipped under test)
    if not app.config.get("TESTING"):
        with app.app_context():
            setup_plan_indexes()

    init_plan_services(app)

    # Register custom error handlers
    app.errorhandler(PermissionError)(handle_permission_error)
    app.errorhandler(ValidationError)(handle_validation_error)
    app.errorhandler(TypeError)(handle_type_error)

    register_routes(app, api)

    Log.info(f"[__init__.py][create_app] {app.config['APP_NAME']} started ({app.config['APP_ENV']})")
    return app
