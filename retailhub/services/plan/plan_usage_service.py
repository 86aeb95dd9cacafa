# retailhub/services/plan/plan_usage_service.py
"""
Usage quotas across all of a seller's valid plan orders.

A base plan and any number of paid top-ups each carry their own limit and
counter per resource type; capacity is the sum of what they have left.
"""
from datetime import datetime, timezone

from ...constants.service_code import PAYMENT_STATUS, PLAN_STATUS, SYNC_DATA_TYPES
from ...models.plan_order_model import PlanOrder
from ...utils.plan.limits_map import USAGE_RULES, USAGE_TYPES
from ...utils.plan.outcome import PlanErrorKind, PlanOutcome
from ...utils.plan.plan_timers import get_plan_duration_ms, utc_now
from ...utils.plan.quota import ZERO
from . import lifecycle
from .unit_of_work import SellerScopedService

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _priority_key(order):
    """Running orders first, then the ones that expire soonest, then the oldest."""
    return (
        0 if order.is_active else 1,
        order.expiry_date or _FAR_FUTURE,
    ) + lifecycle.creation_key(order)


def _is_whole_number(value):
    return isinstance(value, int) and not isinstance(value, bool)


class PlanUsageService(SellerScopedService):

    def __init__(self, gateway, seller_lock, notifier=None, clock=utc_now, limits_disabled=False):
        super().__init__(gateway, seller_lock, notifier=notifier, clock=clock)
        self.limits_disabled = limits_disabled

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _eligible(orders, now):
        eligible = []
        for order in orders:
            if not order.is_paid or order.plan is None or order.is_expired:
                continue
            if lifecycle.remaining_ms(order, now) <= 0:
                continue
            lifecycle.apply_plan_limits(order)
            eligible.append(order)
        return eligible

    @staticmethod
    def _validate_type(usage_type):
        if usage_type not in USAGE_RULES:
            return PlanOutcome.fail(
                PlanErrorKind.INVALID_REQUEST,
                f"Unknown usage type: {usage_type}. Expected one of {', '.join(USAGE_TYPES)}",
            )
        return None

    # ------------------------------------------------------------------
    # capacity check
    # ------------------------------------------------------------------
    def can_add(self, seller_id, usage_type, count=1):
        log_tag = f"[plan_usage_service.py][can_add][{seller_id}][{usage_type}]"

        invalid = self._validate_type(usage_type)
        if invalid:
            return invalid
        if not _is_whole_number(count) or count < 0:
            return PlanOutcome.fail(PlanErrorKind.INVALID_REQUEST, "count must be a non-negative integer")

        def work(uow):
            seller = self.gateway.get_seller(seller_id)
            if seller is None:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Seller not found")

            if self.limits_disabled:
                return PlanOutcome.ok(
                    "Plan limits are disabled",
                    data={"can_add": True, "unlimited": True, "available_capacity": None},
                )

            eligible = self._eligible(self.gateway.find_plan_orders(seller.id), uow.now)
            if not eligible:
                return PlanOutcome.fail(PlanErrorKind.NO_PLAN, "No active plans found. Please upgrade your plan.")

            rule = USAGE_RULES[usage_type]
            available = 0
            for order in eligible:
                spare = getattr(order, rule.limit_field).spare(getattr(order, rule.usage_field))
                if spare is None:
                    return PlanOutcome.ok(
                        f"Unlimited {usage_type} available",
                        data={"can_add": True, "unlimited": True, "available_capacity": None},
                    )
                available += spare

            if available >= count:
                return PlanOutcome.ok(
                    f"{usage_type} can be added",
                    data={"can_add": True, "unlimited": False, "available_capacity": available},
                )

            return PlanOutcome.fail(
                PlanErrorKind.INSUFFICIENT_CAPACITY,
                f"You've reached the limit across all your plans. Total available capacity: {available}. "
                f"Please upgrade your plan to add more {usage_type}.",
                data={
                    "can_add": False,
                    "available_capacity": available,
                    "requested": count,
                    "shortfall": count - available,
                },
            )

        return self._execute(seller_id, log_tag, work, locked=False)

    # ------------------------------------------------------------------
    # allocation
    # ------------------------------------------------------------------
    def adjust_usage(self, seller_id, usage_type, delta):
        """
        Consume (delta > 0) or release (delta < 0) units of `usage_type`.
        A consumption that does not fit is rejected without changing anything.
        """
        log_tag = f"[plan_usage_service.py][adjust_usage][{seller_id}][{usage_type}]"

        invalid = self._validate_type(usage_type)
        if invalid:
            return invalid
        if not _is_whole_number(delta):
            return PlanOutcome.fail(PlanErrorKind.INVALID_REQUEST, "delta must be an integer")
        if delta == 0:
            return PlanOutcome.ok("Nothing to adjust", data={"delta_applied": 0})

        def work(uow):
            seller = self.gateway.get_seller(seller_id)
            if seller is None:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Seller not found")
            now = uow.now

            orders = self.gateway.find_plan_orders(seller.id)
            eligible = self._eligible(orders, now)
            bootstrapped = []

            if not eligible:
                if delta < 0:
                    return PlanOutcome.ok("No plan usage to release", data={"delta_applied": 0})
                bootstrapped = self._bootstrap(seller, orders, now)
                if not bootstrapped:
                    return PlanOutcome.fail(PlanErrorKind.NO_PLAN, "No active plans found. Please upgrade your plan.")
                eligible = [bootstrapped[0]]
                if bootstrapped[0] not in orders:
                    orders.append(bootstrapped[0])

            eligible.sort(key=_priority_key)
            rule = USAGE_RULES[usage_type]
            touched = []
            pending = delta

            if delta > 0:
                for order in eligible:
                    if pending <= 0:
                        break
                    used = getattr(order, rule.usage_field) or 0
                    spare = getattr(order, rule.limit_field).spare(used)
                    take = pending if spare is None else min(pending, spare)
                    if take <= 0:
                        continue
                    setattr(order, rule.usage_field, used + take)
                    touched.append(order)
                    pending -= take
            else:
                for order in reversed(eligible):
                    if pending >= 0:
                        break
                    used = getattr(order, rule.usage_field) or 0
                    give_back = min(used, -pending)
                    if give_back <= 0:
                        continue
                    setattr(order, rule.usage_field, used - give_back)
                    touched.append(order)
                    pending += give_back

            if delta > 0 and pending > 0:
                # nothing is registered, so nothing is written
                applicable = delta - pending
                return PlanOutcome.fail(
                    PlanErrorKind.INSUFFICIENT_CAPACITY,
                    f"You've reached the limit across all your plans. Total available capacity: {applicable}. "
                    f"Please upgrade your plan to add more {usage_type}.",
                    data={
                        "delta_applied": 0,
                        "available_capacity": applicable,
                        "requested": delta,
                        "shortfall": pending,
                    },
                )

            for order in bootstrapped:
                uow.register_plan_order(order)
            if bootstrapped:
                uow.register_seller(seller)
            for order in touched:
                uow.register_plan_order(order)
            uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])

            data = {"delta_applied": delta - pending}
            data.update(self._summarize(uow, orders))
            return PlanOutcome.ok(f"{usage_type} usage updated", data=data)

        return self._execute(seller_id, log_tag, work)

    def _bootstrap(self, seller, orders, now):
        """
        Give a seller with nothing to consume against a running plan: the
        most recent paid base plan gets a fresh window, or else a new order
        on the default free template. Returns the records to persist with
        the bootstrapped order first, or [] when nothing can be given time.
        """
        revivable = [
            o for o in orders
            if o.is_paid and o.plan is not None and not o.is_mini and get_plan_duration_ms(o.plan) > 0
        ]
        if revivable:
            target = max(revivable, key=lifecycle.creation_key)
            target.accumulated_used_ms = 0
            target.remaining_ms_override = None
            target.status = PLAN_STATUS["PAUSED"]
            target.last_activated_at = None
        else:
            plan = self.gateway.find_active_free_template()
            if plan is None or get_plan_duration_ms(plan) <= 0:
                return []
            target = PlanOrder.from_plan(
                seller.id, plan, now,
                status=PLAN_STATUS["PAUSED"],
                payment_status=PAYMENT_STATUS["COMPLETED"],
            )

        lifecycle.apply_plan_limits(target)
        if lifecycle.activate(target, now) <= 0:
            return []

        touched = [target]
        for order in orders:
            if order is target:
                continue
            if lifecycle.pause(order, now):
                touched.append(order)

        seller.current_plan_id = target.id
        return touched

    # ------------------------------------------------------------------
    # reporting
    # ------------------------------------------------------------------
    def usage_summary(self, seller_id):
        log_tag = f"[plan_usage_service.py][usage_summary][{seller_id}]"

        def work(uow):
            seller = self.gateway.get_seller(seller_id)
            if seller is None:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Seller not found")
            orders = self.gateway.find_plan_orders(seller.id)
            data = self._summarize(uow, orders)
            if uow.has_changes:
                uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
            return PlanOutcome.ok("Plan usage retrieved", data=data)

        return self._execute(seller_id, log_tag, work)

    @staticmethod
    def _summarize(uow, orders):
        now = uow.now
        totals = {usage_type: {"limit": ZERO, "used": 0} for usage_type in USAGE_TYPES}
        details = []

        for order in orders:
            if not order.is_paid or order.plan is None:
                continue
            lifecycle.apply_plan_limits(order)

            remaining = lifecycle.remaining_ms(order, now)
            is_expired = order.is_expired or remaining <= 0
            if is_expired and not order.is_expired:
                lifecycle.refresh(order, now, 0)
                uow.register_plan_order(order)

            limits = {}
            for usage_type, rule in USAGE_RULES.items():
                quota = getattr(order, rule.limit_field)
                used = getattr(order, rule.usage_field) or 0
                limits[usage_type] = {"limit": quota.to_value(), "used": used}
                if not is_expired:
                    totals[usage_type]["limit"] = totals[usage_type]["limit"] + quota
                    totals[usage_type]["used"] += used

            detail = lifecycle.describe(order, now, 0 if is_expired else remaining)
            detail["is_expired"] = is_expired
            detail["usage"] = limits
            details.append(detail)

        summary = {}
        for usage_type, total in totals.items():
            spare = total["limit"].spare(total["used"])
            summary[usage_type] = {
                "limit": total["limit"].to_value(),
                "used": total["used"],
                "remaining": spare,
                "unlimited": total["limit"].is_unlimited,
            }

        return {"summary": summary, "plan_details": details}
