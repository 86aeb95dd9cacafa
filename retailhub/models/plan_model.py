# retailhub/models/plan_model.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from ..extensions.db import db
from ..constants.service_code import PLAN_TYPES
from ..utils.plan.quota import Quota
from ..utils.logger import Log


def as_object_id(value):
    """ObjectId for valid 24-hex ids, the raw value otherwise."""
    if isinstance(value, ObjectId):
        return value
    if value is not None and ObjectId.is_valid(str(value)):
        return ObjectId(str(value))
    return value


def id_str(value) -> Optional[str]:
    return str(value) if value is not None else None


class Plan:
    """
    Plan template from the catalog: price, duration and resource limits.

    Templates are read-only for the plan engine. Limits are held as Quota
    values (null in MongoDB means unlimited).
    """

    collection_name = "plans"

    def __init__(
        self,
        name: str,
        price: float = 0,
        duration_days: Any = 30,
        max_customers: Any = None,
        max_products: Any = None,
        max_orders: Any = None,
        plan_type: str = PLAN_TYPES["STANDARD"],
        is_active: bool = True,
        description: Optional[str] = None,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.description = description
        self.price = price or 0
        self.duration_days = duration_days
        self.max_customers = max_customers if isinstance(max_customers, Quota) else Quota.from_value(max_customers)
        self.max_products = max_products if isinstance(max_products, Quota) else Quota.from_value(max_products)
        self.max_orders = max_orders if isinstance(max_orders, Quota) else Quota.from_value(max_orders)
        self.plan_type = plan_type or PLAN_TYPES["STANDARD"]
        self.is_active = bool(is_active)
        self.created_at = created_at

    @property
    def is_mini(self) -> bool:
        return self.plan_type == PLAN_TYPES["MINI"]

    @property
    def is_free(self) -> bool:
        return not self.price or self.price <= 0

    def quota_for(self, plan_field: str) -> Quota:
        return getattr(self, plan_field)

    # -----------------------------
    # Document mapping
    # -----------------------------
    @classmethod
    def from_doc(cls, doc: Optional[Dict[str, Any]]) -> Optional["Plan"]:
        if not doc:
            return None
        return cls(
            id=id_str(doc.get("_id")),
            name=doc.get("name") or "",
            description=doc.get("description"),
            price=doc.get("price") or 0,
            duration_days=doc.get("duration_days"),
            max_customers=doc.get("max_customers"),
            max_products=doc.get("max_products"),
            max_orders=doc.get("max_orders"),
            plan_type=doc.get("plan_type"),
            is_active=doc.get("is_active", True),
            created_at=doc.get("created_at"),
        )

    def to_doc(self) -> Dict[str, Any]:
        doc = {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "duration_days": self.duration_days,
            "max_customers": self.max_customers.to_value(),
            "max_products": self.max_products.to_value(),
            "max_orders": self.max_orders.to_value(),
            "plan_type": self.plan_type,
            "is_active": self.is_active,
            "created_at": self.created_at or datetime.now(timezone.utc),
        }
        if self.id:
            doc["_id"] = as_object_id(self.id)
        return doc

    # -----------------------------
    # Queries
    # -----------------------------
    @classmethod
    def get_by_id(cls, plan_id) -> Optional["Plan"]:
        if not plan_id or not ObjectId.is_valid(str(plan_id)):
            return None
        col = db.get_collection(cls.collection_name)
        return cls.from_doc(col.find_one({"_id": ObjectId(str(plan_id))}))

    @classmethod
    def get_many(cls, plan_ids) -> Dict[str, "Plan"]:
        oids = [as_object_id(pid) for pid in set(plan_ids) if pid]
        if not oids:
            return {}
        col = db.get_collection(cls.collection_name)
        plans = (cls.from_doc(doc) for doc in col.find({"_id": {"$in": oids}}))
        return {plan.id: plan for plan in plans}

    @classmethod
    def find_active_free_template(cls) -> Optional["Plan"]:
        """
        Default plan handed out when a seller has nothing to consume against:
        the active, free, non-mini template with the longest validity.
        """
        col = db.get_collection(cls.collection_name)
        doc = col.find_one(
            {
                "is_active": True,
                "price": {"$lte": 0},
                "plan_type": {"$ne": PLAN_TYPES["MINI"]},
            },
            sort=[("price", ASCENDING), ("duration_days", DESCENDING), ("created_at", DESCENDING)],
        )
        return cls.from_doc(doc)

    @classmethod
    def create_indexes(cls):
        col = db.get_collection(cls.collection_name)
        col.create_index([("is_active", ASCENDING), ("price", ASCENDING)])
        Log.info("[Plan][create_indexes] plans indexes ensured")
