"""
Settlement reconciler for checkout webhook deliveries.

Flow for one delivery:
1. Verify the signature over the raw body
2. Classify the event
3. Guard: only completed, paid, one-time payments settle an order
4. Read the order; skip if already processing/completed, else mark processing

Deliveries are at-least-once. Step 4 makes a redelivery, or a second
event for an already reconciled session, a no-op.
"""
from typing import Optional

import structlog

from .exceptions import OrderBackendError, ReconciliationError
from .models import (
    SETTLED_STATUSES,
    CheckoutMode,
    EventType,
    OrderStatus,
    PaymentEvent,
    PaymentStatus,
    ReconcileOutcome,
)
from .ports import OrderBackend, PaymentProvider

logger = structlog.get_logger(__name__)


class SettlementReconciler:
    """
    Turns verified payment events into order status transitions.

    Holds no state between deliveries; the order backend is the only
    source of truth for whether an order was already settled.
    """

    def __init__(self, provider: PaymentProvider, order_backend: OrderBackend):
        """
        Initialize the reconciler.

        Args:
            provider: Payment provider used to verify and parse deliveries
            order_backend: Backend owning the order records
        """
        self.provider = provider
        self.order_backend = order_backend

    async def handle_event(
        self, raw_payload: bytes, signature_header: Optional[str]
    ) -> ReconcileOutcome:
        """
        Verify and reconcile one webhook delivery.

        Args:
            raw_payload: Request body exactly as received
            signature_header: Provider signature header value

        Returns:
            ReconcileOutcome: What was done for this delivery

        Raises:
            SignatureInvalidError: If verification fails (reject, do not retry)
            ReconciliationError: If the order backend failed (ask for redelivery)
        """
        event = self.verify(raw_payload, signature_header)
        return await self.reconcile(event)

    def verify(self, raw_payload: bytes, signature_header: Optional[str]) -> PaymentEvent:
        """
        Verify a delivery and parse it into a PaymentEvent.

        Raises:
            SignatureInvalidError: If verification fails
        """
        return self.provider.verify_and_parse_event(raw_payload, signature_header or "")

    async def reconcile(self, event: PaymentEvent) -> ReconcileOutcome:
        """Apply the settlement decision for an already verified event."""
        if event.event_type is EventType.EXPIRED:
            logger.info(
                "checkout_session_expired",
                event_id=event.event_id,
                order_id=event.order_id,
                session_id=event.session_id,
            )
            return ReconcileOutcome.NOTED

        if event.event_type is not EventType.COMPLETED:
            return self._ignore(event, "unhandled_event_type")

        if event.mode is not CheckoutMode.PAYMENT:
            return self._ignore(event, "not_payment_mode")
        if event.payment_status is not PaymentStatus.PAID:
            return self._ignore(event, "not_paid")
        if event.order_id is None:
            return self._ignore(event, "missing_order_reference")

        return await self._settle(event.order_id, event)

    async def _settle(self, order_id: int, event: PaymentEvent) -> ReconcileOutcome:
        try:
            current = str(await self.order_backend.fetch_order_status(order_id) or "")
            if current in SETTLED_STATUSES:
                logger.info(
                    "order_already_settled",
                    order_id=order_id,
                    status=current,
                    event_id=event.event_id,
                )
                return ReconcileOutcome.ALREADY_SETTLED

            applied = await self.order_backend.update_order_status(
                order_id, OrderStatus.PROCESSING.value, expected_status=current
            )
        except OrderBackendError as e:
            logger.error(
                "order_reconciliation_failed",
                order_id=order_id,
                event_id=event.event_id,
                status_code=e.status_code,
                error=str(e),
            )
            raise ReconciliationError(
                f"Order backend unavailable for order {order_id}: {e}", order_id=order_id
            ) from e

        if not applied:
            # A concurrent delivery moved the order first.
            logger.info(
                "order_already_settled",
                order_id=order_id,
                status="changed_concurrently",
                event_id=event.event_id,
            )
            return ReconcileOutcome.ALREADY_SETTLED

        logger.info(
            "order_settled",
            order_id=order_id,
            previous_status=current,
            status=OrderStatus.PROCESSING.value,
            event_id=event.event_id,
        )
        return ReconcileOutcome.SETTLED

    @staticmethod
    def _ignore(event: PaymentEvent, reason: str) -> ReconcileOutcome:
        logger.info(
            "webhook_event_ignored",
            event_id=event.event_id,
            event_type=event.raw_type,
            reason=reason,
        )
        return ReconcileOutcome.IGNORED
