# retailhub/services/sync_notifier.py

from ..models.sync_tracking_model import SyncTracking
from ..utils.logger import Log


class SyncNotifier:
    """Best-effort signal to the delta-sync subsystem that seller data changed."""

    def __init__(self, tracker=SyncTracking):
        self._tracker = tracker

    def notify(self, seller_id, data_type, record_count=None):
        log_tag = f"[sync_notifier.py][notify][{seller_id}][{data_type}]"
        try:
            self._tracker.update_latest_time(seller_id, data_type, record_count=record_count)
            Log.info(f"{log_tag} sync tracking updated")
            return True
        except Exception as e:
            # never allowed to fail the operation that triggered it
            Log.error(f"{log_tag} error updating sync tracking: {str(e)}")
            return False
