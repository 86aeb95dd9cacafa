# retailhub/services/plan/gateway.py

from contextlib import contextmanager

from ...extensions.db import db
from ...models.plan_model import Plan
from ...models.plan_order_model import PlanOrder
from ...models.seller_model import Seller


class MongoPlanGateway:
    """
    Data access used by the plan engine: the seller, plan template and
    plan order stores plus the transaction their writes share.
    """

    def __init__(self, use_transactions=True):
        self.use_transactions = use_transactions

    # ---- sellers ----
    def get_seller(self, seller_id):
        return Seller.get_by_id(seller_id)

    def save_seller(self, seller, now, session=None):
        return seller.save(now, session=session)

    # ---- plan templates ----
    def get_plan(self, plan_id):
        return Plan.get_by_id(plan_id)

    def find_active_free_template(self):
        return Plan.find_active_free_template()

    # ---- plan orders ----
    def find_plan_orders(self, seller_id):
        return PlanOrder.find_by_seller(seller_id)

    def get_plan_order(self, plan_order_id):
        return PlanOrder.get_by_id(plan_order_id)

    def save_plan_order(self, plan_order, now, session=None):
        return plan_order.save(now, session=session)

    @contextmanager
    def transaction(self):
        """Yield a session inside a multi-document transaction, or None when disabled."""
        if not self.use_transactions:
            yield None
            return
        with db.client.start_session() as session, session.start_transaction():
            yield session
