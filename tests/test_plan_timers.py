from datetime import datetime, timedelta, timezone

from retailhub.constants.service_code import PLAN_STATUS
from retailhub.models.plan_model import Plan
from retailhub.models.plan_order_model import PlanOrder
from retailhub.utils.plan.plan_timers import (
    compute_remaining_ms,
    elapsed_ms,
    format_remaining,
    get_plan_duration_ms,
)

DAY_MS = 24 * 60 * 60 * 1000
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_order(plan, **overrides):
    return PlanOrder.from_plan("seller", plan, T0, **overrides)


def test_plan_duration_in_ms():
    assert get_plan_duration_ms(Plan("Basic", duration_days=30)) == 30 * DAY_MS
    assert get_plan_duration_ms(Plan("Half", duration_days=0.5)) == DAY_MS // 2


def test_plan_duration_invalid_values_are_zero():
    assert get_plan_duration_ms(None) == 0
    assert get_plan_duration_ms(Plan("x", duration_days=None)) == 0
    assert get_plan_duration_ms(Plan("x", duration_days="30")) == 0
    assert get_plan_duration_ms(Plan("x", duration_days=-3)) == 0
    assert get_plan_duration_ms(Plan("x", duration_days=True)) == 0


def test_remaining_for_paused_order_uses_only_accumulated_time():
    plan = Plan("Basic", duration_days=30)
    order = make_order(plan, status=PLAN_STATUS["PAUSED"], accumulated_used_ms=10 * DAY_MS)
    assert compute_remaining_ms(order, plan, T0 + timedelta(days=365)) == 20 * DAY_MS


def test_remaining_for_active_order_counts_live_elapsed_time():
    plan = Plan("Basic", duration_days=30)
    order = make_order(
        plan,
        status=PLAN_STATUS["ACTIVE"],
        last_activated_at=T0,
        accumulated_used_ms=5 * DAY_MS,
    )
    assert compute_remaining_ms(order, plan, T0 + timedelta(days=3)) == 22 * DAY_MS


def test_remaining_is_clamped_at_zero():
    plan = Plan("Basic", duration_days=30)
    order = make_order(plan, status=PLAN_STATUS["ACTIVE"], last_activated_at=T0)
    assert compute_remaining_ms(order, plan, T0 + timedelta(days=45)) == 0


def test_activation_in_the_future_adds_no_elapsed_time():
    plan = Plan("Basic", duration_days=30)
    order = make_order(plan, status=PLAN_STATUS["ACTIVE"], last_activated_at=T0 + timedelta(days=2))
    assert compute_remaining_ms(order, plan, T0) == 30 * DAY_MS


def test_override_caps_remaining_time():
    plan = Plan("Basic", duration_days=30)
    order = make_order(plan, remaining_ms_override=DAY_MS)
    assert compute_remaining_ms(order, plan, T0) == DAY_MS

    generous = make_order(plan, remaining_ms_override=90 * DAY_MS)
    assert compute_remaining_ms(generous, plan, T0) == 30 * DAY_MS


def test_missing_plan_or_order_has_no_time_left():
    plan = Plan("Basic", duration_days=30)
    assert compute_remaining_ms(None, plan, T0) == 0
    assert compute_remaining_ms(make_order(plan), None, T0) == 0


def test_elapsed_ms():
    assert elapsed_ms(None, T0) == 0
    assert elapsed_ms(T0, T0 + timedelta(seconds=1, milliseconds=500)) == 1500


def test_format_remaining_floors_each_unit():
    ms = 2 * DAY_MS + 3 * 3600 * 1000 + 4 * 60 * 1000 + 5 * 1000 + 999
    assert format_remaining(ms) == {"days": 2, "hours": 3, "minutes": 4, "seconds": 5}
    assert format_remaining(0) == {"days": 0, "hours": 0, "minutes": 0, "seconds": 0}
    assert format_remaining(None) == {"days": 0, "hours": 0, "minutes": 0, "seconds": 0}
