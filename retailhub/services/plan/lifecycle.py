# retailhub/services/plan/lifecycle.py
"""
Status transitions of a single plan order.

pause / refresh / activate only touch the order they are given; callers
decide which siblings move and persist the result through a unit of work.
"""
from datetime import datetime, timezone

from ...constants.service_code import PLAN_STATUS
from ...utils.plan.limits_map import USAGE_RULES
from ...utils.plan.plan_timers import (
    add_ms,
    compute_remaining_ms,
    elapsed_ms,
    format_remaining,
    get_plan_duration_ms,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _fold_active_time(plan_order, now):
    if plan_order.status == PLAN_STATUS["ACTIVE"] and plan_order.last_activated_at:
        plan_order.accumulated_used_ms += max(0, elapsed_ms(plan_order.last_activated_at, now))
    plan_order.last_activated_at = None


def remaining_ms(plan_order, now):
    return compute_remaining_ms(plan_order, plan_order.plan, now)


def pause(plan_order, now):
    """Bank time used since the last activation and park the order. Returns True if it changed."""
    before = (plan_order.status, plan_order.last_activated_at, plan_order.accumulated_used_ms)

    _fold_active_time(plan_order, now)
    if plan_order.status != PLAN_STATUS["EXPIRED"]:
        plan_order.status = PLAN_STATUS["PAUSED"]

    return before != (plan_order.status, plan_order.last_activated_at, plan_order.accumulated_used_ms)


def refresh(plan_order, now, remaining):
    """Recompute expiry from `remaining`; an expired order is left exactly as it is."""
    if plan_order.status == PLAN_STATUS["EXPIRED"]:
        return False

    before = (
        plan_order.status,
        plan_order.expiry_date,
        plan_order.last_activated_at,
        plan_order.accumulated_used_ms,
    )

    if remaining <= 0:
        plan_order.status = PLAN_STATUS["EXPIRED"]
        # never move an expiry that already lies in the past
        if plan_order.expiry_date is None or plan_order.expiry_date > now:
            plan_order.expiry_date = now
        plan_order.last_activated_at = None
        plan_order.accumulated_used_ms = get_plan_duration_ms(plan_order.plan)
    else:
        plan_order.expiry_date = add_ms(now, remaining)

    return before != (
        plan_order.status,
        plan_order.expiry_date,
        plan_order.last_activated_at,
        plan_order.accumulated_used_ms,
    )


def activate(plan_order, now):
    """Start the clock on the order and return its remaining time."""
    # an order that is already running keeps the time it has used so far
    _fold_active_time(plan_order, now)
    plan_order.status = PLAN_STATUS["ACTIVE"]
    plan_order.last_activated_at = now
    remaining = remaining_ms(plan_order, now)
    refresh(plan_order, now, remaining)
    return remaining


def apply_plan_limits(plan_order):
    """
    Copy missing limits and counters from the template. Values already set
    on the order are kept. Returns True if anything was filled in.
    """
    plan = plan_order.plan
    if plan is None:
        return False

    changed = False
    for rule in USAGE_RULES.values():
        if getattr(plan_order, rule.limit_field) is None:
            setattr(plan_order, rule.limit_field, plan.quota_for(rule.plan_field))
            changed = True
        if getattr(plan_order, rule.usage_field) is None:
            setattr(plan_order, rule.usage_field, 0)
            changed = True
    return changed


def creation_key(plan_order):
    return (plan_order.created_at or _EPOCH, plan_order.id or "")


def _iso(value):
    return value.isoformat() if value else None


def describe(plan_order, now, remaining=None):
    """Response payload for a single plan order."""
    if remaining is None:
        remaining = remaining_ms(plan_order, now)
    plan = plan_order.plan
    return {
        "plan_order_id": plan_order.id,
        "plan_id": plan_order.plan_id,
        "plan_name": plan.name if plan else None,
        "plan_type": plan.plan_type if plan else plan_order.plan_type,
        "status": plan_order.status,
        "payment_status": plan_order.payment_status,
        "remaining_ms": remaining,
        "remaining": format_remaining(remaining),
        "expiry_date": _iso(plan_order.expiry_date),
        "last_activated_at": _iso(plan_order.last_activated_at),
    }
