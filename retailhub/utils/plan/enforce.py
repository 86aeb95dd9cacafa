# retailhub/utils/plan/enforce.py
from functools import wraps

from flask import current_app, g

from ..json_response import outcome_response, prepared_response
from ..logger import Log


def _status_of(rv):
    if isinstance(rv, tuple) and len(rv) > 1 and isinstance(rv[1], int):
        return rv[1]
    return getattr(rv, "status_code", 200)


def _release(usage_service, seller_id, usage_type, qty, view_name):
    released = usage_service.adjust_usage(seller_id, usage_type, -qty)
    if not released.success:
        Log.error(
            f"[enforce.py][{view_name}][{seller_id}] failed to release {qty} {usage_type}: {released.message}"
        )


def enforce_plan_usage(usage_type, qty=1, seller_id_resolver=None):
    """
    Gate a resource-creating view on the seller's plan capacity.

    seller_id_resolver: optional callable (args, kwargs) -> seller_id
      - If not provided, defaults to g.current_user["seller_id"]

    `qty` units are reserved under the seller lock before the view runs and
    released again when the view raises or answers with a non-2xx status.
    Nothing in this package creates customers, products or orders; the
    routes that do are expected to wear this decorator.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = g.get("current_user", {}) or {}

            if callable(seller_id_resolver):
                seller_id = seller_id_resolver(args, kwargs)
            else:
                seller_id = user.get("seller_id")

            if not seller_id:
                return prepared_response(False, "UNAUTHORIZED", "Authentication required.")

            seller_id = str(seller_id)
            usage_service = current_app.extensions["plan_usage_service"]

            # rejects sellers with nothing to consume against before a bootstrap could kick in
            check = usage_service.can_add(seller_id, usage_type, qty)
            if not check.success:
                return outcome_response(check)

            if usage_service.limits_disabled:
                return fn(*args, **kwargs)

            reserved = usage_service.adjust_usage(seller_id, usage_type, qty)
            if not reserved.success:
                return outcome_response(reserved)

            try:
                rv = fn(*args, **kwargs)
            except Exception:
                _release(usage_service, seller_id, usage_type, qty, fn.__name__)
                raise

            if not 200 <= _status_of(rv) < 300:
                _release(usage_service, seller_id, usage_type, qty, fn.__name__)
            return rv
        return wrapper
    return decorator
