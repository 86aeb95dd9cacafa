# retailhub/services/plan/plan_validity_service.py
"""
Plan validity: which of a seller's plan orders is running, and for how long.

Every public method returns a PlanOutcome. Methods prefixed with an
underscore expect the caller to hold the seller lock and to own the unit
of work; the public ones acquire both.
"""
from ...constants.service_code import PAYMENT_STATUS, PLAN_STATUS, SYNC_DATA_TYPES
from ...models.plan_order_model import PlanOrder
from ...utils.logger import Log
from ...utils.plan.outcome import PlanErrorKind, PlanOutcome
from ...utils.plan.plan_timers import add_ms, get_plan_duration_ms
from . import lifecycle
from .unit_of_work import SellerScopedService


class PlanValidityService(SellerScopedService):

    # ------------------------------------------------------------------
    # activation
    # ------------------------------------------------------------------
    def set_active_plan(self, seller_id, plan_id=None, plan_order_id=None, allow_create=False):
        log_tag = f"[plan_validity_service.py][set_active_plan][{seller_id}]"

        def work(uow):
            seller, orders, failure = self._load(seller_id)
            if failure:
                return failure
            outcome, _ = self._set_active_plan(
                uow, seller, orders,
                plan_id=plan_id,
                plan_order_id=plan_order_id,
                allow_create=allow_create,
            )
            return outcome

        return self._execute(seller_id, log_tag, work)

    def activate(self, seller_id, plan_id=None, plan_order_id=None):
        """Activate a plan order, creating one for a free or mini template when needed."""
        return self.set_active_plan(seller_id, plan_id=plan_id, plan_order_id=plan_order_id, allow_create=True)

    def switch(self, seller_id, plan_id=None, plan_order_id=None):
        """Switch to a plan order the seller already holds."""
        return self.set_active_plan(seller_id, plan_id=plan_id, plan_order_id=plan_order_id, allow_create=False)

    def _load(self, seller_id):
        seller = self.gateway.get_seller(seller_id)
        if seller is None:
            return None, [], PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Seller not found")
        return seller, self.gateway.find_plan_orders(seller.id), None

    def _set_active_plan(self, uow, seller, orders, plan_id=None, plan_order_id=None, allow_create=False):
        """
        Make one plan order the running one. Returns (outcome, target); target
        is None when no plan order could be resolved.
        """
        now = uow.now

        if plan_order_id:
            target = next((o for o in orders if o.id == str(plan_order_id)), None)
            if target is None:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan order not found for this seller"), None
            if target.plan is None:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan not found"), None
        elif plan_id:
            target, failure = self._resolve_by_template(seller, orders, str(plan_id), allow_create, now)
            if failure:
                return failure, None
        else:
            return PlanOutcome.fail(PlanErrorKind.INVALID_REQUEST, "plan_id or plan_order_id is required"), None

        lifecycle.apply_plan_limits(target)

        if not target.is_paid:
            if not target.is_mini:
                return PlanOutcome.fail(
                    PlanErrorKind.PAYMENT_REQUIRED,
                    "Payment is required before this plan can be activated",
                    data={"plan_order_id": target.id, "plan_id": target.plan_id},
                ), target

            # unpaid top-up: persist it, leave every other order alone
            if target.is_new:
                uow.register_plan_order(target)
                uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
            data = lifecycle.describe(target, now)
            data["requires_payment"] = True
            return PlanOutcome.ok("Payment is required to activate this top-up", data=data, status_code="ACCEPTED"), target

        if target.is_active and seller.current_plan_id == target.id:
            remaining = lifecycle.remaining_ms(target, now)
            if lifecycle.refresh(target, now, remaining) or target.is_new:
                uow.register_plan_order(target)
                uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
            if remaining > 0:
                return PlanOutcome.ok("Plan is already active", data=lifecycle.describe(target, now, remaining)), target
            return PlanOutcome.fail(PlanErrorKind.EXPIRED, "Plan has expired", data=lifecycle.describe(target, now, 0)), target

        self._pause_others(uow, orders, target)

        if target.is_new:
            uow.register_plan_order(target)
        uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])

        remaining = lifecycle.remaining_ms(target, now)
        if remaining <= 0:
            lifecycle.refresh(target, now, remaining)
            uow.register_plan_order(target)
            return PlanOutcome.fail(PlanErrorKind.EXPIRED, "Plan has expired", data=lifecycle.describe(target, now, 0)), target

        remaining = lifecycle.activate(target, now)
        uow.register_plan_order(target)

        if target.is_mini:
            message = "Top-up plan activated"
        else:
            seller.current_plan_id = target.id
            uow.register_seller(seller)
            message = "Plan activated successfully"

        return PlanOutcome.ok(message, data=lifecycle.describe(target, now, remaining)), target

    def _resolve_by_template(self, seller, orders, plan_id, allow_create, now):
        plan = self.gateway.get_plan(plan_id)

        if plan is not None and not plan.is_mini:
            existing = [o for o in orders if o.plan_id == plan_id]
            if existing:
                target = max(existing, key=lifecycle.creation_key)
                if target.plan is None:
                    target.plan = plan
                if lifecycle.remaining_ms(target, now) > 0 or not allow_create:
                    return target, None
                # used up: a fresh order takes its place

        if not allow_create:
            return None, PlanOutcome.fail(PlanErrorKind.NOT_ASSIGNED, "Plan is not assigned to this seller")

        if plan is None:
            return None, PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan not found")

        return self._new_plan_order(seller, plan, now)

    def _new_plan_order(self, seller, plan, now):
        if plan.is_mini:
            payment_status = PAYMENT_STATUS["COMPLETED"] if plan.is_free else PAYMENT_STATUS["PENDING"]
            target = PlanOrder.from_plan(
                seller.id, plan, now,
                status=PLAN_STATUS["ACTIVE"],
                payment_status=payment_status,
            )
            return target, None

        if not plan.is_free:
            return None, PlanOutcome.fail(
                PlanErrorKind.PAYMENT_REQUIRED,
                "Payment is required to subscribe to this plan",
                data={"plan_id": plan.id, "price": plan.price},
            )

        target = PlanOrder.from_plan(
            seller.id, plan, now,
            status=PLAN_STATUS["PAUSED"],
            payment_status=PAYMENT_STATUS["COMPLETED"],
        )
        return target, None

    @staticmethod
    def _pause_others(uow, orders, target):
        for order in orders:
            if order is target or order.id == target.id:
                continue
            if lifecycle.pause(order, uow.now):
                uow.register_plan_order(order)

    # ------------------------------------------------------------------
    # switching back to something valid
    # ------------------------------------------------------------------
    def switch_to_valid_plan(self, seller_id):
        log_tag = f"[plan_validity_service.py][switch_to_valid_plan][{seller_id}]"

        def work(uow):
            seller, orders, failure = self._load(seller_id)
            if failure:
                return failure
            now = uow.now

            primary = self._find(orders, seller.current_plan_id)
            if primary is not None and primary.plan is not None:
                remaining = lifecycle.remaining_ms(primary, now)
                if remaining > 0 and not primary.is_expired:
                    return PlanOutcome.fail(
                        PlanErrorKind.STILL_VALID,
                        "Current plan is still valid",
                        data=lifecycle.describe(primary, now, remaining),
                    )
                if lifecycle.refresh(primary, now, remaining):
                    uow.register_plan_order(primary)
                    uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])

            candidates = []
            for order in orders:
                if order is primary or order.plan is None or order.is_mini:
                    continue
                if not order.is_paid or order.is_expired:
                    continue
                remaining = lifecycle.remaining_ms(order, now)
                if remaining > 0:
                    candidates.append((remaining, order))

            if not candidates:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "No valid plan available to switch to")

            # most time left wins; the oldest order breaks ties
            candidates.sort(key=lambda item: (-item[0],) + lifecycle.creation_key(item[1]))
            best = candidates[0][1]

            outcome, _ = self._set_active_plan(uow, seller, orders, plan_order_id=best.id, allow_create=False)
            return outcome

        return self._execute(seller_id, log_tag, work)

    # ------------------------------------------------------------------
    # resuming the primary plan
    # ------------------------------------------------------------------
    def reactivate_current_plan(self, seller_id):
        log_tag = f"[plan_validity_service.py][reactivate_current_plan][{seller_id}]"

        def work(uow):
            seller, orders, failure = self._load(seller_id)
            if failure:
                return failure
            now = uow.now

            primary = self._find(orders, seller.current_plan_id)
            if primary is None or primary.plan is None:
                return PlanOutcome.fail(PlanErrorKind.NO_PRIMARY_PLAN, "No current plan to reactivate")

            lifecycle.apply_plan_limits(primary)

            if not primary.is_paused:
                return PlanOutcome.fail(
                    PlanErrorKind.NOT_PAUSED,
                    f"Current plan is {primary.status}, not paused",
                    data=lifecycle.describe(primary, now),
                )

            remaining = lifecycle.remaining_ms(primary, now)
            if remaining <= 0:
                lifecycle.refresh(primary, now, remaining)
                uow.register_plan_order(primary)
                uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
                return PlanOutcome.fail(PlanErrorKind.EXPIRED, "Plan has expired", data=lifecycle.describe(primary, now, 0))

            self._pause_others(uow, orders, primary)
            remaining = lifecycle.activate(primary, now)
            uow.register_plan_order(primary)
            uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
            return PlanOutcome.ok("Plan reactivated successfully", data=lifecycle.describe(primary, now, remaining))

        return self._execute(seller_id, log_tag, work)

    # ------------------------------------------------------------------
    # reporting
    # ------------------------------------------------------------------
    def get_remaining_validity(self, seller_id):
        log_tag = f"[plan_validity_service.py][get_remaining_validity][{seller_id}]"

        def work(uow):
            seller, orders, failure = self._load(seller_id)
            if failure:
                return failure
            now = uow.now

            entries = []
            changed = False
            for order in orders:
                if order.plan is None:
                    entries.append(lifecycle.describe(order, now, 0))
                    continue
                remaining = lifecycle.remaining_ms(order, now)
                if lifecycle.refresh(order, now, remaining):
                    uow.register_plan_order(order)
                    changed = True
                entries.append(lifecycle.describe(order, now, remaining))

            if changed:
                uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])

            return PlanOutcome.ok(
                "Remaining validity retrieved",
                data={"current_plan_id": seller.current_plan_id, "plan_orders": entries},
            )

        return self._execute(seller_id, log_tag, work)

    # ------------------------------------------------------------------
    # purchase flow
    # ------------------------------------------------------------------
    def upgrade_plan(self, seller_id, plan_id):
        log_tag = f"[plan_validity_service.py][upgrade_plan][{seller_id}][{plan_id}]"

        def work(uow):
            seller, orders, failure = self._load(seller_id)
            if failure:
                return failure
            now = uow.now

            plan = self.gateway.get_plan(plan_id)
            if plan is None:
                return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan not found")
            if not plan.is_active:
                return PlanOutcome.fail(PlanErrorKind.NOT_ELIGIBLE, "Plan is not active")

            if plan.is_free and not plan.is_mini:
                primary = self._find(orders, seller.current_plan_id)
                if primary is None or primary.plan is None:
                    return PlanOutcome.fail(
                        PlanErrorKind.NOT_ELIGIBLE,
                        "Free plans require an active current plan. Please upgrade to a paid plan first.",
                    )
                if primary.is_expired or lifecycle.remaining_ms(primary, now) <= 0:
                    return PlanOutcome.fail(
                        PlanErrorKind.NOT_ELIGIBLE,
                        "Your current plan has expired. Free plans require an active current plan.",
                    )

            if plan.is_mini:
                has_base_plan = any(
                    not o.is_mini and o.status in (PLAN_STATUS["ACTIVE"], PLAN_STATUS["PAUSED"])
                    for o in orders
                )
                if not has_base_plan:
                    return PlanOutcome.fail(
                        PlanErrorKind.NOT_ELIGIBLE,
                        "Mini plans require at least one non-mini plan. Please purchase a Standard or Pro plan first.",
                    )
            else:
                existing = [o for o in orders if o.plan_id == plan.id]
                if plan.is_free and existing:
                    latest = max(existing, key=lifecycle.creation_key)
                    if latest.plan is None:
                        latest.plan = plan
                    if latest.is_paid and lifecycle.remaining_ms(latest, now) <= 0:
                        return PlanOutcome.fail(
                            PlanErrorKind.NOT_ELIGIBLE,
                            "You have already claimed the free plan. Please choose a paid plan to continue.",
                        )

            outcome, target = self._set_active_plan(uow, seller, orders, plan_id=plan.id, allow_create=True)
            if not outcome.success:
                return outcome

            is_new_order = plan.is_mini or (target is not None and target.is_new)
            uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
            uow.add_event(seller.id, SYNC_DATA_TYPES["PLANS"])

            if plan.is_mini:
                message = f"Successfully topped up with {plan.name}"
            elif is_new_order:
                message = f"Successfully upgraded to {plan.name}"
            else:
                message = outcome.message

            data = dict(outcome.data or {})
            data.update({"is_new_order": is_new_order, "price": plan.price, "plan_name": plan.name})
            return PlanOutcome.ok(message, data=data, status_code=outcome.status_code)

        return self._execute(seller_id, log_tag, work)

    def complete_plan_payment(self, seller_id, plan_order_id=None, plan_id=None):
        """
        Apply a verified payment. With `plan_order_id` the pending order is
        settled; with only `plan_id` a paid order is created from the template.
        The payment stays recorded even when the plan cannot be activated.
        """
        log_tag = f"[plan_validity_service.py][complete_plan_payment][{seller_id}][{plan_order_id or plan_id}]"

        def work(uow):
            seller, orders, failure = self._load(seller_id)
            if failure:
                return failure
            now = uow.now

            if plan_order_id:
                target = self._find(orders, plan_order_id)
                if target is None:
                    return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan order not found for this seller")
                if target.plan is None:
                    return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan not found")
                if target.is_paid:
                    return PlanOutcome.ok("Payment already completed", data=lifecycle.describe(target, now))
            elif plan_id:
                plan = self.gateway.get_plan(plan_id)
                if plan is None:
                    return PlanOutcome.fail(PlanErrorKind.NOT_FOUND, "Plan not found")
                target = PlanOrder.from_plan(
                    seller.id, plan, now,
                    status=PLAN_STATUS["PAUSED"],
                    payment_status=PAYMENT_STATUS["PENDING"],
                )
                orders.append(target)
            else:
                return PlanOutcome.fail(PlanErrorKind.INVALID_REQUEST, "plan_id or plan_order_id is required")

            target.payment_status = PAYMENT_STATUS["COMPLETED"]
            target.accumulated_used_ms = 0
            target.remaining_ms_override = None
            lifecycle.apply_plan_limits(target)
            uow.register_plan_order(target)
            uow.add_event(seller.id, SYNC_DATA_TYPES["PLAN_ORDERS"])
            uow.add_event(seller.id, SYNC_DATA_TYPES["PLANS"])

            if target.is_mini:
                target.status = PLAN_STATUS["ACTIVE"]
                target.last_activated_at = now
                duration_ms = get_plan_duration_ms(target.plan)
                target.expiry_date = add_ms(now, duration_ms)
                return PlanOutcome.ok(
                    "Payment completed and top-up activated",
                    data=lifecycle.describe(target, now),
                )

            outcome, _ = self._set_active_plan(uow, seller, orders, plan_order_id=target.id, allow_create=False)
            if not outcome.success:
                Log.error(f"{log_tag} payment recorded but activation failed: {outcome.message}")
                data = lifecycle.describe(target, now)
                data["activation_error"] = {"kind": outcome.kind.value, "message": outcome.message}
                return PlanOutcome.ok("Payment completed but the plan could not be activated", data=data)
            return PlanOutcome.ok("Payment completed and plan activated", data=outcome.data)

        return self._execute(seller_id, log_tag, work)

    @staticmethod
    def _find(orders, plan_order_id):
        if not plan_order_id:
            return None
        return next((o for o in orders if o.id == str(plan_order_id)), None)
