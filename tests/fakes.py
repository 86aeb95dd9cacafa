"""In-memory stand-ins for the MongoDB-backed stores, the clock and the sync notifier."""
import copy
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from bson import ObjectId

from retailhub.constants.service_code import PAYMENT_STATUS, PLAN_STATUS
from retailhub.models.plan_model import Plan, id_str
from retailhub.models.plan_order_model import ConcurrentUpdateError, PlanOrder
from retailhub.models.seller_model import Seller


def new_id():
    return str(ObjectId())


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakePlanGateway:
    """
    Same surface as MongoPlanGateway. Plan orders are stored as documents
    so every load goes through from_doc, and saves enforce the version check.
    """

    def __init__(self):
        self.plans = {}
        self.sellers = {}
        self.plan_order_docs = {}
        self.saves = 0
        self.commits = 0
        self.fail_on_save = None

    # ---- seeding ----
    def add_plan(self, name, **fields):
        plan = Plan(name=name, id=new_id(), **fields)
        self.plans[plan.id] = plan
        return plan

    def add_seller(self, current_plan_id=None, name="Seller"):
        seller_id = new_id()
        self.sellers[seller_id] = {"_id": seller_id, "current_plan_id": current_plan_id, "name": name}
        return seller_id

    def set_current_plan(self, seller_id, plan_order_id):
        self.sellers[seller_id]["current_plan_id"] = plan_order_id

    def add_plan_order(self, seller_id, plan, created_at, **overrides):
        fields = {
            "status": PLAN_STATUS["PAUSED"],
            "payment_status": PAYMENT_STATUS["COMPLETED"],
        }
        fields.update(overrides)
        order = PlanOrder.from_plan(seller_id, plan, created_at, **fields)
        self._store(order, version=1)
        return order.id

    def _store(self, order, version):
        doc = order.to_doc()
        doc["_id"] = order.id
        doc["version"] = version
        self.plan_order_docs[order.id] = doc

    # ---- inspection ----
    def order(self, plan_order_id):
        doc = self.plan_order_docs.get(plan_order_id)
        if doc is None:
            return None
        return PlanOrder.from_doc(copy.deepcopy(doc), self.plans.get(id_str(doc.get("plan_id"))))

    def orders_for(self, seller_id):
        return self.find_plan_orders(seller_id)

    def seller(self, seller_id):
        return self.get_seller(seller_id)

    # ---- gateway surface ----
    def get_seller(self, seller_id):
        doc = self.sellers.get(str(seller_id))
        return Seller.from_doc(copy.deepcopy(doc)) if doc else None

    def save_seller(self, seller, now, session=None):
        self._maybe_fail("seller")
        doc = self.sellers.get(seller.id)
        if doc is None:
            return False
        doc["current_plan_id"] = seller.current_plan_id
        doc["updated_at"] = now
        self.saves += 1
        return True

    def get_plan(self, plan_id):
        return self.plans.get(str(plan_id))

    def find_active_free_template(self):
        candidates = [p for p in self.plans.values() if p.is_active and p.is_free and not p.is_mini]
        if not candidates:
            return None
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        candidates.sort(key=lambda p: (p.created_at or epoch), reverse=True)
        candidates.sort(key=lambda p: (p.duration_days or 0), reverse=True)
        candidates.sort(key=lambda p: p.price)
        return candidates[0]

    def find_plan_orders(self, seller_id):
        docs = [d for d in self.plan_order_docs.values() if id_str(d.get("seller_id")) == str(seller_id)]
        docs.sort(key=lambda d: d["created_at"])
        return [
            PlanOrder.from_doc(copy.deepcopy(d), self.plans.get(id_str(d.get("plan_id"))))
            for d in docs
        ]

    def get_plan_order(self, plan_order_id):
        return self.order(str(plan_order_id))

    def save_plan_order(self, plan_order, now, session=None):
        self._maybe_fail("plan_order")
        plan_order.updated_at = now
        if plan_order.is_new:
            if plan_order.created_at is None:
                plan_order.created_at = now
            self._store(plan_order, version=1)
            plan_order.mark_persisted(1)
        else:
            stored = self.plan_order_docs.get(plan_order.id)
            if stored is None or stored["version"] != plan_order.version:
                raise ConcurrentUpdateError(plan_order.id, plan_order.version)
            self._store(plan_order, version=plan_order.version + 1)
            plan_order.mark_persisted(plan_order.version + 1)
        self.saves += 1
        return plan_order.id

    def _maybe_fail(self, kind):
        if self.fail_on_save and self.fail_on_save[0] == kind:
            raise self.fail_on_save[1]

    @contextmanager
    def transaction(self):
        snapshot = (copy.deepcopy(self.sellers), copy.deepcopy(self.plan_order_docs))
        try:
            yield None
        except Exception:
            self.sellers, self.plan_order_docs = snapshot
            raise
        self.commits += 1


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    def notify(self, seller_id, data_type, record_count=None):
        self.calls.append((seller_id, data_type))
        return True


class FailingTracker:
    """SyncTracking stand-in whose writes always fail."""

    @classmethod
    def update_latest_time(cls, seller_id, data_type, record_count=None, now=None):
        raise RuntimeError("sync tracking unavailable")


class RecordingTracker:
    calls = []

    @classmethod
    def update_latest_time(cls, seller_id, data_type, record_count=None, now=None):
        cls.calls.append((seller_id, data_type, record_count))
