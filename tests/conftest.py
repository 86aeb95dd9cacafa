import os

os.environ.setdefault("APP_LOG_TO_FILE", "false")
os.environ.setdefault("APP_ENV", "testing")

import jwt
import pytest

from retailhub import create_app, init_plan_services
from retailhub.constants.service_code import PLAN_TYPES
from retailhub.services.plan.plan_usage_service import PlanUsageService
from retailhub.services.plan.plan_validity_service import PlanValidityService
from retailhub.services.plan.seller_lock import LocalSellerLock

from tests.fakes import FakeClock, FakePlanGateway, RecordingNotifier

DAY_MS = 24 * 60 * 60 * 1000


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakePlanGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def seller_lock():
    return LocalSellerLock(wait_seconds=1)


@pytest.fixture
def plans(gateway):
    return {
        "basic": gateway.add_plan(
            "Basic", price=499, duration_days=30,
            max_customers=20, max_products=10, max_orders=None,
        ),
        "pro": gateway.add_plan(
            "Pro", price=999, duration_days=30,
            max_customers=None, max_products=None, max_orders=None,
            plan_type=PLAN_TYPES["PRO"],
        ),
        "free": gateway.add_plan(
            "Free", price=0, duration_days=14,
            max_customers=5, max_products=5, max_orders=5,
        ),
        "mini": gateway.add_plan(
            "Mini Top-up", price=99, duration_days=30,
            max_customers=3, max_products=3, max_orders=3,
            plan_type=PLAN_TYPES["MINI"],
        ),
    }


@pytest.fixture
def seller_id(gateway):
    return gateway.add_seller()


@pytest.fixture
def validity_service(gateway, seller_lock, notifier, clock):
    return PlanValidityService(gateway, seller_lock, notifier, clock=clock)


@pytest.fixture
def usage_service(gateway, seller_lock, notifier, clock):
    return PlanUsageService(gateway, seller_lock, notifier, clock=clock)


@pytest.fixture
def app(gateway, seller_lock, notifier, clock):
    app = create_app("testing")
    init_plan_services(app, gateway=gateway, seller_lock=seller_lock, notifier=notifier, clock=clock)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app, seller_id):
    token = jwt.encode({"seller_id": seller_id}, app.config["SECRET_KEY"], algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}
