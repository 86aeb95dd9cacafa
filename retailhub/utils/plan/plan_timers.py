# retailhub/utils/plan/plan_timers.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from ...constants.service_code import MS_IN_DAY, PLAN_STATUS


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start: Optional[datetime], end: datetime) -> int:
    """Whole milliseconds from start to end; negative when end precedes start."""
    if start is None:
        return 0
    return int((end - start) / timedelta(milliseconds=1))


def add_ms(moment: datetime, ms: int) -> datetime:
    return moment + timedelta(milliseconds=ms)


def get_plan_duration_ms(plan) -> int:
    """
    Nominal validity of a plan template in milliseconds.

    Returns 0 when the template is missing or its duration_days is not a
    non-negative number.
    """
    if plan is None:
        return 0
    days = getattr(plan, "duration_days", None)
    if isinstance(days, bool) or not isinstance(days, (int, float)):
        return 0
    if days <= 0:
        return 0
    return int(days * MS_IN_DAY)


def compute_remaining_ms(plan_order, plan, now: datetime) -> int:
    """
    Remaining validity of a plan order at `now`.

    Purely timestamp based: time accrued while active is derived from
    last_activated_at, so the figure stays correct across process downtime.
    """
    if plan_order is None or plan is None:
        return 0

    duration_ms = get_plan_duration_ms(plan)
    if duration_ms <= 0:
        return 0

    consumed_ms = plan_order.accumulated_used_ms or 0

    if plan_order.status == PLAN_STATUS["ACTIVE"] and plan_order.last_activated_at:
        consumed_ms += max(0, elapsed_ms(plan_order.last_activated_at, now))

    remaining = max(0, duration_ms - consumed_ms)

    override = plan_order.remaining_ms_override
    if override is not None:
        return max(0, min(remaining, int(override)))

    return remaining


def format_remaining(remaining_ms: Optional[int]) -> dict:
    total_seconds = max(0, int(remaining_ms or 0)) // 1000
    return {
        "days": total_seconds // 86400,
        "hours": (total_seconds % 86400) // 3600,
        "minutes": (total_seconds % 3600) // 60,
        "seconds": total_seconds % 60,
    }
