# retailhub/models/plan_order_model.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from ..extensions.db import db
from ..constants.service_code import PLAN_STATUS, PAYMENT_STATUS, PLAN_TYPES
from ..utils.plan.quota import Quota
from ..utils.logger import Log
from .plan_model import Plan, as_object_id, id_str


class ConcurrentUpdateError(Exception):
    """The stored plan order changed since it was loaded."""

    def __init__(self, plan_order_id, expected_version):
        super().__init__(
            f"Plan order {plan_order_id} was modified concurrently (expected version {expected_version})"
        )
        self.plan_order_id = plan_order_id
        self.expected_version = expected_version


class PlanOrder:
    """
    A seller's subscription: one instance of a plan template carrying its
    own time accounting and per-resource usage counters.

    Limit fields hold a Quota once backfilled; None means "not yet copied
    from the template". Counter fields are None until backfilled as well.
    """

    collection_name = "plan_orders"

    def __init__(
        self,
        seller_id: str,
        plan_id: str,
        expiry_date: Optional[datetime] = None,
        duration_days: Any = None,
        price: float = 0,
        status: str = PLAN_STATUS["PAUSED"],
        last_activated_at: Optional[datetime] = None,
        accumulated_used_ms: int = 0,
        remaining_ms_override: Optional[int] = None,
        payment_status: str = PAYMENT_STATUS["PENDING"],
        plan_type: Optional[str] = None,
        customer_limit: Optional[Quota] = None,
        product_limit: Optional[Quota] = None,
        order_limit: Optional[Quota] = None,
        customer_current_count: Optional[int] = None,
        product_current_count: Optional[int] = None,
        order_current_count: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        version: int = 0,
        id: Optional[str] = None,
        plan: Optional[Plan] = None,
    ):
        self.id = id
        self.seller_id = seller_id
        self.plan_id = plan_id
        self.plan = plan
        self.expiry_date = expiry_date
        self.duration_days = duration_days
        self.price = price or 0
        self.status = status
        self.last_activated_at = last_activated_at
        self.accumulated_used_ms = int(accumulated_used_ms or 0)
        self.remaining_ms_override = remaining_ms_override
        self.payment_status = payment_status
        self.plan_type = plan_type
        self.customer_limit = customer_limit
        self.product_limit = product_limit
        self.order_limit = order_limit
        self.customer_current_count = customer_current_count
        self.product_current_count = product_current_count
        self.order_current_count = order_current_count
        self.created_at = created_at
        self.updated_at = updated_at
        self.version = version
        self._persisted = False

    @classmethod
    def from_plan(cls, seller_id: str, plan: Plan, now: datetime, **overrides) -> "PlanOrder":
        """New plan order seeded from a template: limits copied, counters at zero."""
        fields = dict(
            seller_id=seller_id,
            plan_id=plan.id,
            plan=plan,
            duration_days=plan.duration_days,
            price=plan.price,
            plan_type=plan.plan_type,
            customer_limit=plan.max_customers,
            product_limit=plan.max_products,
            order_limit=plan.max_orders,
            customer_current_count=0,
            product_current_count=0,
            order_current_count=0,
            accumulated_used_ms=0,
            created_at=now,
            id=str(ObjectId()),
        )
        fields.update(overrides)
        return cls(**fields)

    # -----------------------------
    # Convenience
    # -----------------------------
    @property
    def is_new(self) -> bool:
        return not self._persisted

    def mark_persisted(self, version: int):
        self.version = version
        self._persisted = True

    @property
    def is_mini(self) -> bool:
        if self.plan is not None:
            return self.plan.is_mini
        return self.plan_type == PLAN_TYPES["MINI"]

    @property
    def is_active(self) -> bool:
        return self.status == PLAN_STATUS["ACTIVE"]

    @property
    def is_paused(self) -> bool:
        return self.status == PLAN_STATUS["PAUSED"]

    @property
    def is_expired(self) -> bool:
        return self.status == PLAN_STATUS["EXPIRED"]

    @property
    def is_paid(self) -> bool:
        return (self.payment_status or "").lower() == PAYMENT_STATUS["COMPLETED"]

    # -----------------------------
    # Document mapping
    # -----------------------------
    @staticmethod
    def _quota_or_absent(value) -> Optional[Quota]:
        # null is indistinguishable from "never copied"; the engine backfills it from the template
        if value is None:
            return None
        return Quota.from_value(value)

    @staticmethod
    def _count_or_absent(value) -> Optional[int]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return max(0, int(value))

    @classmethod
    def from_doc(cls, doc: Optional[Dict[str, Any]], plan: Optional[Plan] = None) -> Optional["PlanOrder"]:
        if not doc:
            return None
        order = cls(
            id=id_str(doc.get("_id")),
            seller_id=id_str(doc.get("seller_id")),
            plan_id=id_str(doc.get("plan_id")),
            plan=plan,
            expiry_date=doc.get("expiry_date"),
            duration_days=doc.get("duration_days"),
            price=doc.get("price") or 0,
            status=doc.get("status") or PLAN_STATUS["PAUSED"],
            last_activated_at=doc.get("last_activated_at"),
            accumulated_used_ms=doc.get("accumulated_used_ms") or 0,
            remaining_ms_override=doc.get("remaining_ms_override"),
            payment_status=doc.get("payment_status") or PAYMENT_STATUS["PENDING"],
            plan_type=doc.get("plan_type"),
            customer_limit=cls._quota_or_absent(doc.get("customer_limit")),
            product_limit=cls._quota_or_absent(doc.get("product_limit")),
            order_limit=cls._quota_or_absent(doc.get("order_limit")),
            customer_current_count=cls._count_or_absent(doc.get("customer_current_count")),
            product_current_count=cls._count_or_absent(doc.get("product_current_count")),
            order_current_count=cls._count_or_absent(doc.get("order_current_count")),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
            version=int(doc.get("version") or 0),
        )
        order.mark_persisted(order.version)
        return order

    def to_doc(self) -> Dict[str, Any]:
        def quota_value(q):
            return q.to_value() if q is not None else None

        return {
            "seller_id": as_object_id(self.seller_id),
            "plan_id": as_object_id(self.plan_id),
            "expiry_date": self.expiry_date,
            "duration_days": self.duration_days,
            "price": self.price,
            "status": self.status,
            "last_activated_at": self.last_activated_at,
            "accumulated_used_ms": self.accumulated_used_ms,
            "remaining_ms_override": self.remaining_ms_override,
            "payment_status": self.payment_status,
            "plan_type": self.plan_type,
            "customer_limit": quota_value(self.customer_limit),
            "product_limit": quota_value(self.product_limit),
            "order_limit": quota_value(self.order_limit),
            "customer_current_count": self.customer_current_count or 0,
            "product_current_count": self.product_current_count or 0,
            "order_current_count": self.order_current_count or 0,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    # -----------------------------
    # Queries
    # -----------------------------
    @classmethod
    def _attach_plans(cls, docs) -> List["PlanOrder"]:
        docs = list(docs)
        plans = Plan.get_many(id_str(d.get("plan_id")) for d in docs)
        return [cls.from_doc(d, plans.get(id_str(d.get("plan_id")))) for d in docs]

    @classmethod
    def find_by_seller(cls, seller_id) -> List["PlanOrder"]:
        """All of a seller's plan orders, oldest first, with templates resolved."""
        col = db.get_collection(cls.collection_name)
        cursor = col.find({"seller_id": as_object_id(seller_id)}).sort("created_at", ASCENDING)
        return cls._attach_plans(cursor)

    @classmethod
    def get_by_id(cls, plan_order_id) -> Optional["PlanOrder"]:
        if not plan_order_id or not ObjectId.is_valid(str(plan_order_id)):
            return None
        col = db.get_collection(cls.collection_name)
        doc = col.find_one({"_id": ObjectId(str(plan_order_id))})
        if not doc:
            return None
        return cls._attach_plans([doc])[0]

    def save(self, now: datetime, session=None) -> str:
        """
        Insert or update with an optimistic version check. Raises
        ConcurrentUpdateError when another writer saved this order first.
        """
        col = db.get_collection(self.collection_name)
        self.updated_at = now
        doc = self.to_doc()

        if self.is_new:
            if self.id:
                doc["_id"] = ObjectId(self.id)
            doc["created_at"] = self.created_at or now
            doc["version"] = 1
            result = col.insert_one(doc, session=session)
            self.id = str(result.inserted_id)
            self.created_at = doc["created_at"]
            self.mark_persisted(1)
            return self.id

        expected = self.version
        doc["version"] = expected + 1
        # documents written before versioning have no version field
        version_filter = expected if expected else {"$in": [0, None]}
        result = col.update_one(
            {"_id": ObjectId(self.id), "version": version_filter},
            {"$set": doc},
            session=session,
        )
        if result.matched_count == 0:
            raise ConcurrentUpdateError(self.id, expected)
        self.mark_persisted(expected + 1)
        return self.id

    @classmethod
    def create_indexes(cls):
        col = db.get_collection(cls.collection_name)
        col.create_index([("seller_id", ASCENDING), ("created_at", DESCENDING)])
        col.create_index([("seller_id", ASCENDING), ("payment_status", ASCENDING)])
        Log.info("[PlanOrder][create_indexes] plan_orders indexes ensured")
