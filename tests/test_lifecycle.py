from datetime import datetime, timedelta, timezone

from retailhub.constants.service_code import PLAN_STATUS
from retailhub.models.plan_model import Plan
from retailhub.models.plan_order_model import PlanOrder
from retailhub.services.plan import lifecycle
from retailhub.utils.plan.quota import Bounded, UNLIMITED

DAY_MS = 24 * 60 * 60 * 1000
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
BASIC = Plan("Basic", duration_days=30, max_customers=20, max_products=10, max_orders=None, id="p-basic")


def order_for(plan=BASIC, **overrides):
    return PlanOrder.from_plan("seller", plan, T0, **overrides)


def test_pause_folds_active_time_into_accumulated():
    order = order_for(status=PLAN_STATUS["ACTIVE"], last_activated_at=T0, accumulated_used_ms=DAY_MS)

    assert lifecycle.pause(order, T0 + timedelta(days=10)) is True
    assert order.status == PLAN_STATUS["PAUSED"]
    assert order.last_activated_at is None
    assert order.accumulated_used_ms == 11 * DAY_MS


def test_pause_on_paused_order_changes_nothing():
    order = order_for(status=PLAN_STATUS["PAUSED"], accumulated_used_ms=DAY_MS)
    assert lifecycle.pause(order, T0 + timedelta(days=3)) is False
    assert order.accumulated_used_ms == DAY_MS


def test_pause_keeps_expired_status():
    order = order_for(status=PLAN_STATUS["EXPIRED"])
    lifecycle.pause(order, T0)
    assert order.status == PLAN_STATUS["EXPIRED"]


def test_refresh_sets_expiry_from_remaining_time():
    order = order_for(status=PLAN_STATUS["PAUSED"])
    lifecycle.refresh(order, T0, 5 * DAY_MS)
    assert order.expiry_date == T0 + timedelta(days=5)
    assert order.status == PLAN_STATUS["PAUSED"]


def test_refresh_with_no_time_left_expires_the_order():
    order = order_for(
        status=PLAN_STATUS["ACTIVE"],
        last_activated_at=T0,
        expiry_date=T0 + timedelta(days=30),
    )
    now = T0 + timedelta(days=31)

    assert lifecycle.refresh(order, now, 0) is True
    assert order.status == PLAN_STATUS["EXPIRED"]
    assert order.expiry_date == now
    assert order.last_activated_at is None
    assert order.accumulated_used_ms == 30 * DAY_MS


def test_refresh_never_moves_a_past_expiry():
    past = T0 - timedelta(days=2)
    order = order_for(status=PLAN_STATUS["PAUSED"], expiry_date=past)
    lifecycle.refresh(order, T0, 0)
    assert order.expiry_date == past


def test_expired_order_is_immutable_under_repeated_refresh():
    order = order_for(status=PLAN_STATUS["EXPIRED"], expiry_date=T0)
    for days in (1, 10, 100):
        assert lifecycle.refresh(order, T0 + timedelta(days=days), 5 * DAY_MS) is False
        assert order.expiry_date == T0
        assert order.status == PLAN_STATUS["EXPIRED"]


def test_activate_starts_the_clock_and_refreshes_expiry():
    order = order_for(status=PLAN_STATUS["PAUSED"], accumulated_used_ms=10 * DAY_MS)
    remaining = lifecycle.activate(order, T0)

    assert remaining == 20 * DAY_MS
    assert order.status == PLAN_STATUS["ACTIVE"]
    assert order.last_activated_at == T0
    assert order.expiry_date == T0 + timedelta(days=20)


def test_activate_on_running_order_keeps_used_time():
    order = order_for(status=PLAN_STATUS["ACTIVE"], last_activated_at=T0)
    remaining = lifecycle.activate(order, T0 + timedelta(days=4))

    assert order.accumulated_used_ms == 4 * DAY_MS
    assert remaining == 26 * DAY_MS


def test_apply_plan_limits_fills_only_missing_fields():
    order = PlanOrder("seller", BASIC.id, plan=BASIC, product_limit=Bounded(50), product_current_count=7)

    assert lifecycle.apply_plan_limits(order) is True
    assert order.product_limit == Bounded(50)
    assert order.product_current_count == 7
    assert order.customer_limit == Bounded(20)
    assert order.customer_current_count == 0
    assert order.order_limit == UNLIMITED
    assert order.order_current_count == 0

    assert lifecycle.apply_plan_limits(order) is False


def test_describe_reports_formatted_remaining():
    order = order_for(status=PLAN_STATUS["PAUSED"], expiry_date=T0 + timedelta(days=30))
    data = lifecycle.describe(order, T0)

    assert data["plan_order_id"] == order.id
    assert data["plan_name"] == "Basic"
    assert data["remaining_ms"] == 30 * DAY_MS
    assert data["remaining"]["days"] == 30
    assert data["expiry_date"] == (T0 + timedelta(days=30)).isoformat()
