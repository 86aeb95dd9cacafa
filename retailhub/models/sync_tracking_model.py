# retailhub/models/sync_tracking_model.py

from datetime import datetime, timezone

from pymongo import ASCENDING

from ..extensions.db import db
from ..utils.logger import Log
from .plan_model import as_object_id


class SyncTracking:
    """
    One document per seller recording when each data type last changed.
    Offline clients compare these timestamps to decide what to pull.
    """

    collection_name = "sync_tracking"

    @classmethod
    def update_latest_time(cls, seller_id, data_type, record_count=None, now=None):
        now = now or datetime.now(timezone.utc)
        fields = {f"{data_type}_latest_update_time": now, "updated_at": now}
        if record_count is not None:
            fields[f"{data_type}_record_count"] = int(record_count)

        col = db.get_collection(cls.collection_name)
        col.update_one(
            {"seller_id": as_object_id(seller_id)},
            {"$set": fields, "$setOnInsert": {"created_at": now}},
            upsert=True,
        )

    @classmethod
    def get_by_seller(cls, seller_id):
        col = db.get_collection(cls.collection_name)
        return col.find_one({"seller_id": as_object_id(seller_id)})

    @classmethod
    def create_indexes(cls):
        col = db.get_collection(cls.collection_name)
        col.create_index([("seller_id", ASCENDING)], unique=True)
        Log.info("[SyncTracking][create_indexes] sync_tracking indexes ensured")
