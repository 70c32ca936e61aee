# app/client/queue.py
"""
Durable queue of user actions the server has not confirmed yet.

replay() sends queued actions oldest first. An action is claimed in an
in-flight set before it is sent, so two replays running at the same time
never submit the same action twice. A CHECKOUT the server answers with a
reconciliation or rejection is not retried: depending on the policy it is
parked for the user (SURFACE) or dropped with its provisional order
cancelled (DROP).
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
import threading
import time
from typing import Any, Callable, Dict, List
import uuid

from app.client.errors import StorefrontClientError
from app.client.models import ActionStatus, ActionType, PendingAction, provisional_order_id
from app.client.store import ORDERS, PENDING_ACTIONS, LocalStore
from app.domain.outcomes import Created, Duplicate, NeedsReconciliation, Rejected
from app.domain.schemas import ReconciliationDelta
from app.utils.settings import RECONCILIATION_POLICY
from app.utils.logging import get_logger

logger = get_logger(__name__)

ReconciliationListener = Callable[[PendingAction, ReconciliationDelta], None]


class ReconciliationPolicy(str, Enum):
    SURFACE = "surface"
    DROP = "drop"


@dataclass
class ReplayReport:
    confirmed: List[str] = field(default_factory=list)
    retained: List[str] = field(default_factory=list)
    needs_reconciliation: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    awaiting_decision: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.confirmed) + len(self.needs_reconciliation) + len(self.dropped)


def create_action(action_type: ActionType, payload: Dict[str, Any], action_id: str | None = None) -> PendingAction:
    return PendingAction(
        id=action_id or str(uuid.uuid4()),
        type=ActionType(action_type),
        payload=dict(payload),
        timestamp=time.time(),
    )


def apply_delta_to_order(order_data: Dict[str, Any], delta: ReconciliationDelta) -> Dict[str, Any]:
    """Order payload with the server's corrections applied and the total recomputed."""
    adjusted = {a.product_id: a for a in delta.adjusted_items}
    removed = {r.product_id for r in delta.removed_items}

    lines = []
    for line in order_data.get("lineItems", []):
        line = dict(line)
        if line["productId"] in removed:
            continue
        change = adjusted.get(line["productId"])
        if change is not None:
            if change.adjusted_quantity is not None:
                line["quantity"] = change.adjusted_quantity
            line["price"] = float(change.new_price)
        if line["quantity"] > 0:
            lines.append(line)

    total = sum((Decimal(str(l["price"])) * l["quantity"] for l in lines), Decimal("0.00"))
    return {**order_data, "lineItems": lines, "totalPrice": float(total)}


class ActionQueue:
    def __init__(self, store: LocalStore, api, policy: ReconciliationPolicy | str | None = None):
        self.store = store
        self.api = api
        self.policy = ReconciliationPolicy(policy or RECONCILIATION_POLICY)
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()
        self._listeners: List[ReconciliationListener] = []

    def enqueue(self, action: PendingAction, tx=None) -> PendingAction:
        """Persist an action, inside the caller's transaction when one is given."""
        (tx or self.store).put(PENDING_ACTIONS, action.id, action.to_record())
        logger.info(f"Queued {action.type.value} action {action.id}")
        return action

    def pending(self) -> List[PendingAction]:
        actions = [PendingAction.model_validate(r) for r in self.store.get_all(PENDING_ACTIONS)]
        return sorted(actions, key=lambda a: a.timestamp)

    def get(self, action_id: str) -> PendingAction | None:
        record = self.store.get(PENDING_ACTIONS, action_id)
        return PendingAction.model_validate(record) if record else None

    def remove(self, action_id: str) -> None:
        self.store.delete(PENDING_ACTIONS, action_id)

    def subscribe_reconciliation(self, listener: ReconciliationListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _claim(self, action_id: str) -> bool:
        with self._lock:
            if action_id in self._in_flight:
                return False
            self._in_flight.add(action_id)
            return True

    def _release(self, action_id: str) -> None:
        with self._lock:
            self._in_flight.discard(action_id)

    def replay(self) -> ReplayReport:
        report = ReplayReport()
        actions = self.pending()
        if not actions:
            logger.info("No pending actions to replay")
            return report

        logger.info(f"Replaying {len(actions)} pending actions")
        for action in actions:
            if action.status == ActionStatus.NEEDS_RECONCILIATION:
                report.awaiting_decision.append(action.id)
                continue
            if not self._claim(action.id):
                report.skipped.append(action.id)
                continue
            try:
                # a concurrent replay may have finished it since pending() was read
                current = self.get(action.id)
                if current is None or current.status != ActionStatus.QUEUED:
                    report.skipped.append(action.id)
                    continue
                self._dispatch(current, report)
            except StorefrontClientError as e:
                logger.warning(f"Action {action.id} stays queued: {e}")
                report.retained.append(action.id)
            finally:
                self._release(action.id)

        logger.info(
            f"Replay done: {len(report.confirmed)} confirmed, {len(report.retained)} retained, "
            f"{len(report.needs_reconciliation)} need reconciliation, {len(report.dropped)} dropped"
        )
        return report

    def _dispatch(self, action: PendingAction, report: ReplayReport) -> None:
        if action.type != ActionType.CHECKOUT:
            # cart edits are already applied locally, nothing to send
            self.remove(action.id)
            report.confirmed.append(action.id)
            return

        outcome = self.api.create_order(action.payload)
        if isinstance(outcome, (Created, Duplicate)):
            self._confirm(action, outcome.order)
            report.confirmed.append(action.id)
        elif isinstance(outcome, NeedsReconciliation):
            self._park_or_drop(action, outcome.delta, report)
        elif isinstance(outcome, Rejected):
            logger.warning(f"Order {action.id} rejected: {outcome.reason}")
            self._park_or_drop(action, outcome.as_delta(), report)

    def _confirm(self, action: PendingAction, order: Dict[str, Any]) -> None:
        temp_id = provisional_order_id(action.payload.get("clientActionId", action.id))
        with self.store.transaction() as tx:
            tx.put(ORDERS, order["id"], order)
            tx.delete(ORDERS, temp_id)
            tx.delete(PENDING_ACTIONS, action.id)
        logger.info(f"Offline order {temp_id} confirmed as {order['id']}")

    def _park_or_drop(self, action: PendingAction, delta: ReconciliationDelta, report: ReplayReport) -> None:
        temp_id = provisional_order_id(action.payload.get("clientActionId", action.id))
        delta_record = delta.model_dump(mode="json", by_alias=True)

        with self.store.transaction() as tx:
            order = tx.get(ORDERS, temp_id)
            if self.policy == ReconciliationPolicy.DROP:
                tx.delete(PENDING_ACTIONS, action.id)
                if order:
                    order.update(status="cancelled", reconciliation=delta_record)
                    tx.put(ORDERS, temp_id, order)
            else:
                action.status = ActionStatus.NEEDS_RECONCILIATION
                action.reconciliation = delta_record
                tx.put(PENDING_ACTIONS, action.id, action.to_record())
                if order:
                    order.update(needsReconciliation=True, reconciliation=delta_record)
                    tx.put(ORDERS, temp_id, order)

        if self.policy == ReconciliationPolicy.DROP:
            logger.warning(f"Offline order {temp_id} dropped after server corrections")
            report.dropped.append(action.id)
        else:
            logger.warning(f"Offline order {temp_id} needs reconciliation")
            report.needs_reconciliation.append(action.id)
        self._notify(action, delta)

    def _notify(self, action: PendingAction, delta: ReconciliationDelta) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(action, delta)
            except Exception:
                logger.exception("Reconciliation listener failed")

    def resolve(self, action_id: str, resubmit: bool) -> PendingAction | None:
        """
        User decision on a parked checkout.

        resubmit=True requeues it with the corrections applied, under the
        same clientActionId; a rejection that carries no corrections cannot
        be resubmitted. Otherwise, or when nothing is left to order, the
        action is discarded and its provisional order cancelled.
        """
        action = self.get(action_id)
        if action is None:
            raise ValueError("Pending action not found")
        if action.status != ActionStatus.NEEDS_RECONCILIATION:
            raise ValueError("Action is not waiting for a reconciliation decision")

        delta = ReconciliationDelta.model_validate(action.reconciliation or {})
        if resubmit and delta.is_empty():
            raise ValueError("Order was rejected without corrections and can only be discarded")
        temp_id = provisional_order_id(action.payload.get("clientActionId", action.id))

        if resubmit:
            payload = apply_delta_to_order(action.payload, delta)
            if payload["lineItems"]:
                action.payload = payload
                action.status = ActionStatus.QUEUED
                action.reconciliation = None
                with self.store.transaction() as tx:
                    tx.put(PENDING_ACTIONS, action.id, action.to_record())
                    order = tx.get(ORDERS, temp_id)
                    if order:
                        order.update(
                            lineItems=payload["lineItems"],
                            totalPrice=payload["totalPrice"],
                            needsReconciliation=False,
                        )
                        order.pop("reconciliation", None)
                        tx.put(ORDERS, temp_id, order)
                logger.info(f"Action {action.id} requeued with corrections")
                return action

        with self.store.transaction() as tx:
            tx.delete(PENDING_ACTIONS, action.id)
            order = tx.get(ORDERS, temp_id)
            if order:
                order.update(status="cancelled", needsReconciliation=False)
                tx.put(ORDERS, temp_id, order)
        logger.info(f"Action {action.id} discarded, order {temp_id} cancelled")
        return None
