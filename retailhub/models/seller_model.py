# retailhub/models/seller_model.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from ..extensions.db import db
from .plan_model import as_object_id, id_str


class Seller:
    """
    The tenant. The plan engine only reads the seller and moves its
    current_plan_id pointer; every other field belongs to other subsystems.
    """

    collection_name = "sellers"

    def __init__(self, id: str, current_plan_id: Optional[str] = None, name: str = "", email: Optional[str] = None):
        self.id = id
        self.current_plan_id = current_plan_id
        self.name = name
        self.email = email

    @classmethod
    def from_doc(cls, doc: Optional[Dict[str, Any]]) -> Optional["Seller"]:
        if not doc:
            return None
        return cls(
            id=id_str(doc.get("_id")),
            current_plan_id=id_str(doc.get("current_plan_id")),
            name=doc.get("name") or "",
            email=doc.get("email"),
        )

    @classmethod
    def get_by_id(cls, seller_id) -> Optional["Seller"]:
        if not seller_id or not ObjectId.is_valid(str(seller_id)):
            return None
        col = db.get_collection(cls.collection_name)
        return cls.from_doc(col.find_one({"_id": ObjectId(str(seller_id))}))

    def save(self, now: datetime, session=None) -> bool:
        col = db.get_collection(self.collection_name)
        result = col.update_one(
            {"_id": as_object_id(self.id)},
            {"$set": {"current_plan_id": as_object_id(self.current_plan_id), "updated_at": now}},
            session=session,
        )
        return result.matched_count > 0
