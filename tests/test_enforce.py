import threading
import time

import pytest

from retailhub.auth import token_required
from retailhub.constants.service_code import PLAN_STATUS
from retailhub.utils.json_response import prepared_response
from retailhub.utils.plan.enforce import enforce_plan_usage


@pytest.fixture
def created():
    return []


@pytest.fixture
def product_app(app, created):
    @app.route("/test/products", methods=["POST"])
    @token_required
    @enforce_plan_usage("products")
    def create_product():
        return prepared_response(True, "CREATED", "Product created")

    @app.route("/test/products/rejected", methods=["POST"])
    @token_required
    @enforce_plan_usage("products", qty=2)
    def reject_product():
        return prepared_response(False, "BAD_REQUEST", "Duplicate SKU")

    @app.route("/test/products/slow", methods=["POST"])
    @token_required
    @enforce_plan_usage("products")
    def create_product_slowly():
        created.append(1)
        time.sleep(0.05)
        return prepared_response(True, "CREATED", "Product created")

    @app.route("/test/products/broken", methods=["POST"])
    @token_required
    @enforce_plan_usage("products")
    def break_product():
        raise RuntimeError("catalogue unavailable")

    return app


@pytest.fixture
def product_client(product_app):
    return product_app.test_client()


def seed_base(gateway, plans, seller_id, clock, used):
    base = gateway.add_plan_order(
        seller_id, plans["basic"], clock.now,
        status=PLAN_STATUS["ACTIVE"], last_activated_at=clock.now,
        product_current_count=used,
    )
    gateway.set_current_plan(seller_id, base)
    return base


def test_successful_view_records_usage(product_client, auth_headers, gateway, plans, seller_id, clock):
    base = seed_base(gateway, plans, seller_id, clock, used=3)

    response = product_client.post("/test/products", headers=auth_headers)

    assert response.status_code == 201
    assert gateway.order(base).product_current_count == 4


def test_full_plan_blocks_the_view(product_client, auth_headers, gateway, plans, seller_id, clock):
    base = seed_base(gateway, plans, seller_id, clock, used=10)

    response = product_client.post("/test/products", headers=auth_headers)

    assert response.status_code == 403
    assert response.get_json()["errors"] == {"kind": "InsufficientCapacity"}
    assert gateway.order(base).product_current_count == 10


def test_seller_without_plan_is_told_to_upgrade(product_client, auth_headers):
    response = product_client.post("/test/products", headers=auth_headers)

    assert response.status_code == 402
    assert response.get_json()["errors"] == {"kind": "NoPlan"}


def test_failed_view_consumes_nothing(product_client, auth_headers, gateway, plans, seller_id, clock):
    base = seed_base(gateway, plans, seller_id, clock, used=3)

    response = product_client.post("/test/products/rejected", headers=auth_headers)

    assert response.status_code == 400
    assert gateway.order(base).product_current_count == 3


def test_view_error_releases_the_reservation(product_client, auth_headers, gateway, plans, seller_id, clock):
    base = seed_base(gateway, plans, seller_id, clock, used=3)

    with pytest.raises(RuntimeError):
        product_client.post("/test/products/broken", headers=auth_headers)

    assert gateway.order(base).product_current_count == 3


def test_concurrent_requests_cannot_overrun_the_limit(
    product_app, created, auth_headers, gateway, plans, seller_id, clock
):
    base = seed_base(gateway, plans, seller_id, clock, used=9)
    codes = []

    def post():
        response = product_app.test_client().post("/test/products/slow", headers=auth_headers)
        codes.append(response.status_code)

    threads = [threading.Thread(target=post) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(codes) == [201, 403]
    assert len(created) == 1
    assert gateway.order(base).product_current_count == 10


def test_enforcement_requires_a_seller(product_client):
    assert product_client.post("/test/products").status_code == 401
