# retailhub/services/plan/seller_lock.py

import threading
from contextlib import contextmanager

from redis.exceptions import LockError

from ...utils.logger import Log


class SellerLockTimeout(Exception):
    """Another writer held the seller's plan lock for longer than we could wait."""

    def __init__(self, seller_id):
        super().__init__(f"Timed out waiting for plan lock of seller {seller_id}")
        self.seller_id = seller_id


class RedisSellerLock:
    """Cross-process lock per seller backed by redis-py's Lock."""

    def __init__(self, redis_client, timeout_seconds=10, wait_seconds=5, prefix="plan-lock"):
        self._redis = redis_client
        self._timeout = timeout_seconds
        self._wait = wait_seconds
        self._prefix = prefix

    def key_for(self, seller_id):
        return f"{self._prefix}:{seller_id}"

    @contextmanager
    def hold(self, seller_id):
        lock = self._redis.lock(
            self.key_for(seller_id),
            timeout=self._timeout,
            blocking_timeout=self._wait,
        )
        if not lock.acquire():
            raise SellerLockTimeout(seller_id)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError as e:
                # expired before release; the work already finished
                Log.warning(f"[seller_lock.py][hold][{seller_id}] lock release failed: {str(e)}")


class LocalSellerLock:
    """
    In-process lock registry for single-process deployments and tests.
    An entry lives only while some thread holds or waits for it.
    """

    def __init__(self, wait_seconds=5):
        self._wait = wait_seconds
        self._locks = {}
        self._guard = threading.Lock()

    def _checkout(self, seller_id):
        with self._guard:
            entry = self._locks.get(seller_id)
            if entry is None:
                entry = self._locks[seller_id] = [threading.Lock(), 0]
            entry[1] += 1
            return entry

    def _checkin(self, seller_id, entry):
        with self._guard:
            entry[1] -= 1
            if entry[1] == 0:
                self._locks.pop(seller_id, None)

    @contextmanager
    def hold(self, seller_id):
        key = str(seller_id)
        entry = self._checkout(key)
        try:
            lock = entry[0]
            if not lock.acquire(timeout=self._wait):
                raise SellerLockTimeout(seller_id)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key, entry)


def build_seller_lock(app):
    backend = (app.config.get("PLAN_LOCK_BACKEND") or "redis").lower()
    wait = float(app.config.get("PLAN_LOCK_WAIT_SECONDS", 5))
    if backend == "local":
        return LocalSellerLock(wait_seconds=wait)
    return RedisSellerLock(
        app.redis,
        timeout_seconds=float(app.config.get("PLAN_LOCK_TIMEOUT_SECONDS", 10)),
        wait_seconds=wait,
    )
