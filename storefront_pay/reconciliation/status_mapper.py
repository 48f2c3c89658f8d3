"""
Maps Sepay payment statuses onto order state and applies them to the order store.

Payment state machine::

    unpaid --success|paid--> paid      (order: processing)
    unpaid --failed--------> failed    (order: cancelled)
    unpaid --expired-------> expired   (order: cancelled)

paid / failed / expired are terminal. A repeated delivery of the status an
order already has is a no-op; a different terminal status is refused unless
terminal enforcement is switched off.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol

from ..observability.logging import get_logger
from ..providers.sepay.schemas import WebhookEvent

logger = get_logger(__name__)


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    CANCELLED = "cancelled"


TERMINAL_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.EXPIRED})
TERMINAL_VALUES = frozenset(s.value for s in TERMINAL_PAYMENT_STATUSES)
NON_TERMINAL_VALUES = frozenset({PaymentStatus.UNPAID.value})


@dataclass(frozen=True)
class OrderTransition:
    payment_status: PaymentStatus
    order_status: OrderStatus


class ReconcileAction(str, Enum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    PENDING = "pending"
    UNKNOWN_STATUS = "unknown_status"
    ORDER_NOT_FOUND = "order_not_found"
    TERMINAL_CONFLICT = "terminal_conflict"


@dataclass(frozen=True)
class ReconcileOutcome:
    action: ReconcileAction
    order_id: str
    transition: Optional[OrderTransition] = None


_TRANSITIONS: Dict[str, OrderTransition] = {
    "success": OrderTransition(PaymentStatus.PAID, OrderStatus.PROCESSING),
    "paid": OrderTransition(PaymentStatus.PAID, OrderStatus.PROCESSING),
    "failed": OrderTransition(PaymentStatus.FAILED, OrderStatus.CANCELLED),
    "expired": OrderTransition(PaymentStatus.EXPIRED, OrderStatus.CANCELLED),
}


def _normalize(status: Optional[str]) -> str:
    return (status or "").strip().lower()


def resolve_transition(status: Optional[str]) -> Optional[OrderTransition]:
    """Target order state for a gateway status, or None when nothing should change."""
    return _TRANSITIONS.get(_normalize(status))


def build_order_patch(event: WebhookEvent, transition: OrderTransition) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "payment_status": transition.payment_status.value,
        "status": transition.order_status.value,
    }
    if transition.payment_status is PaymentStatus.PAID:
        fields["transaction_id"] = event.transaction_id
        fields["paid_at"] = event.paid_at or datetime.now(timezone.utc).isoformat()
    elif transition.payment_status is PaymentStatus.FAILED:
        fields["transaction_id"] = event.transaction_id
        fields["failed_reason"] = event.reason
    return fields


class OrderStore(Protocol):
    async def find_order_by_order_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def patch_order(self, order_id: str, fields: Dict[str, Any]) -> None:
        ...

    # Conditional write: only while payment_status is one of from_payment_statuses (None = always).
    async def apply_payment_update(
        self,
        order_id: str,
        fields: Dict[str, Any],
        from_payment_statuses: Optional[Iterable[str]] = None,
    ) -> bool:
        ...


class WebhookReconciler:
    def __init__(self, store: OrderStore, enforce_terminal_states: bool = True):
        self.store = store
        self.enforce_terminal_states = enforce_terminal_states

    def _conflict(self, order_id: str, current: str, transition: OrderTransition) -> ReconcileOutcome:
        logger.warning(
            "sepay_webhook_terminal_conflict",
            order_id=order_id,
            current=current,
            requested=transition.payment_status.value,
        )
        return ReconcileOutcome(ReconcileAction.TERMINAL_CONFLICT, order_id, transition)

    async def handle(self, event: WebhookEvent) -> ReconcileOutcome:
        """
        Apply a verified webhook event to its order.

        Unknown statuses and unknown orders are logged and acknowledged without
        touching the store. The write itself is conditional on the order still
        being unpaid, so of two concurrent deliveries only one can move it to a
        terminal state. Store errors propagate to the caller.
        """
        order_id = event.order_id
        if _normalize(event.status) == "pending":
            return ReconcileOutcome(ReconcileAction.PENDING, order_id)

        transition = resolve_transition(event.status)
        if transition is None:
            logger.warning("sepay_webhook_unknown_status", order_id=order_id, status=event.status)
            return ReconcileOutcome(ReconcileAction.UNKNOWN_STATUS, order_id)

        order = await self.store.find_order_by_order_id(order_id)
        if not order:
            logger.warning("sepay_webhook_order_not_found", order_id=order_id, status=event.status)
            return ReconcileOutcome(ReconcileAction.ORDER_NOT_FOUND, order_id, transition)

        current = order.get("payment_status") or PaymentStatus.UNPAID.value
        if current == transition.payment_status.value:
            logger.info("sepay_webhook_duplicate", order_id=order_id, payment_status=current)
            return ReconcileOutcome(ReconcileAction.ALREADY_APPLIED, order_id, transition)

        if self.enforce_terminal_states and current in TERMINAL_VALUES:
            return self._conflict(order_id, current, transition)

        guard = NON_TERMINAL_VALUES if self.enforce_terminal_states else None
        written = await self.store.apply_payment_update(
            order_id, build_order_patch(event, transition), from_payment_statuses=guard
        )
        if not written:
            # another delivery got there between the read and the write
            latest = await self.store.find_order_by_order_id(order_id)
            if not latest:
                logger.warning("sepay_webhook_order_not_found", order_id=order_id, status=event.status)
                return ReconcileOutcome(ReconcileAction.ORDER_NOT_FOUND, order_id, transition)
            current = latest.get("payment_status") or PaymentStatus.UNPAID.value
            if current == transition.payment_status.value:
                logger.info("sepay_webhook_duplicate", order_id=order_id, payment_status=current)
                return ReconcileOutcome(ReconcileAction.ALREADY_APPLIED, order_id, transition)
            return self._conflict(order_id, current, transition)

        logger.info(
            "sepay_order_updated",
            order_id=order_id,
            payment_status=transition.payment_status.value,
            order_status=transition.order_status.value,
            transaction_id=event.transaction_id,
            reason=event.reason,
        )
        return ReconcileOutcome(ReconcileAction.APPLIED, order_id, transition)
