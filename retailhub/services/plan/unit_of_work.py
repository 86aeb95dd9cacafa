# retailhub/services/plan/unit_of_work.py

from pymongo.errors import AutoReconnect, ExecutionTimeout, NetworkTimeout, ServerSelectionTimeoutError

from ...constants.service_code import ERROR_MESSAGES
from ...models.plan_order_model import ConcurrentUpdateError
from ...utils.logger import Log
from ...utils.plan.outcome import PlanErrorKind, PlanOutcome
from ...utils.plan.plan_timers import utc_now
from .seller_lock import SellerLockTimeout


# failures a caller can simply try again
RETRYABLE_ERRORS = (
    ConcurrentUpdateError,
    SellerLockTimeout,
    AutoReconnect,
    NetworkTimeout,
    ServerSelectionTimeoutError,
    ExecutionTimeout,
)


class PlanUnitOfWork:
    """
    Collects the records an operation mutated and writes them in one
    transaction. Sync events are queued and only released after commit.
    """

    def __init__(self, gateway, now):
        self._gateway = gateway
        self.now = now
        self._plan_orders = {}
        self._sellers = {}
        self._events = []
        self.committed = False

    def register_plan_order(self, plan_order):
        self._plan_orders[plan_order.id] = plan_order

    def register_seller(self, seller):
        self._sellers[seller.id] = seller

    def add_event(self, seller_id, data_type):
        event = (str(seller_id), data_type)
        if event not in self._events:
            self._events.append(event)

    @property
    def has_changes(self):
        return bool(self._plan_orders or self._sellers)

    @property
    def events(self):
        return list(self._events)

    def commit(self):
        if self.has_changes:
            with self._gateway.transaction() as session:
                # plan orders first so the seller never points at an unsaved order
                for plan_order in self._plan_orders.values():
                    self._gateway.save_plan_order(plan_order, self.now, session=session)
                for seller in self._sellers.values():
                    self._gateway.save_seller(seller, self.now, session=session)
        self.committed = True

    def publish(self, notifier):
        if not self.committed or notifier is None:
            return
        for seller_id, data_type in self._events:
            notifier.notify(seller_id, data_type)


class SellerScopedService:
    """
    Base for plan engine services: every operation runs under the seller's
    lock inside a unit of work and comes back as a PlanOutcome.
    """

    def __init__(self, gateway, seller_lock, notifier=None, clock=utc_now):
        self.gateway = gateway
        self.seller_lock = seller_lock
        self.notifier = notifier
        self.clock = clock

    def _execute(self, seller_id, log_tag, work, locked=True):
        """
        Run `work(uow)` and commit what it registered. `work` returns a
        PlanOutcome; whatever it registered is committed even when the
        outcome is a business failure.
        """
        uow = None
        try:
            if locked:
                with self.seller_lock.hold(str(seller_id)):
                    uow = PlanUnitOfWork(self.gateway, self.clock())
                    outcome = work(uow)
                    uow.commit()
            else:
                uow = PlanUnitOfWork(self.gateway, self.clock())
                outcome = work(uow)
                uow.commit()
        except RETRYABLE_ERRORS as e:
            Log.error(f"{log_tag} retryable failure: {str(e)}")
            return PlanOutcome.fail(PlanErrorKind.RETRYABLE, ERROR_MESSAGES["RETRY_LATER"])
        except Exception as e:
            Log.error(f"{log_tag} unexpected error: {str(e)}", exc_info=True)
            return PlanOutcome.fail(PlanErrorKind.INTERNAL, ERROR_MESSAGES["SERVER_ERROR"])

        uow.publish(self.notifier)

        if outcome.success:
            Log.info(f"{log_tag} {outcome.message}")
        else:
            Log.info(f"{log_tag} {outcome.kind.value}: {outcome.message}")
        return outcome
