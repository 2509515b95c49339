"""
Domain models for checkout and settlement.

All models are immutable. Provider enums fall back to an "other" member
for values the provider may introduce later, so new event types and modes
are routed to ``Ignored`` instead of failing validation.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class EventType(str, Enum):
    """Checkout events the relay reacts to."""

    COMPLETED = "checkout.session.completed"
    EXPIRED = "checkout.session.expired"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "EventType":
        return cls.OTHER


class CheckoutMode(str, Enum):
    """Checkout session mode."""

    PAYMENT = "payment"
    OTHER = "other"  # setup, subscription, ...

    @classmethod
    def _missing_(cls, value: object) -> "CheckoutMode":
        return cls.OTHER


class PaymentStatus(str, Enum):
    """Payment status reported on a checkout session."""

    PAID = "paid"
    UNPAID = "unpaid"
    NO_PAYMENT_REQUIRED = "no_payment_required"

    @classmethod
    def _missing_(cls, value: object) -> "PaymentStatus":
        # Anything unrecognised is treated as not paid.
        return cls.UNPAID


class OrderStatus(str, Enum):
    """WooCommerce order statuses observed by the relay."""

    PENDING = "pending"
    ON_HOLD = "on-hold"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FAILED = "failed"


# Orders in these states are never written again.
SETTLED_STATUSES = frozenset({OrderStatus.PROCESSING.value, OrderStatus.COMPLETED.value})


class ReconcileOutcome(str, Enum):
    """Result of handling one verified webhook delivery."""

    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    IGNORED = "ignored"
    NOTED = "noted"


class CheckoutRequest(BaseModel):
    """Validated request to open a hosted checkout for an order."""

    model_config = ConfigDict(frozen=True)

    order_id: int
    amount_minor_units: int

    @property
    def idempotency_key(self) -> str:
        """Stable provider idempotency key; one session per order."""
        return f"order-{self.order_id}"

    @property
    def correlation_id(self) -> str:
        """Token the provider echoes back in later events."""
        return str(self.order_id)


class SessionParams(BaseModel):
    """Provider-neutral parameters for opening a hosted checkout session."""

    model_config = ConfigDict(frozen=True)

    idempotency_key: str
    correlation_id: str
    amount_minor_units: int
    currency: str
    product_name: str
    success_url: str
    cancel_url: str
    expires_at: Optional[int] = None


class CheckoutSession(BaseModel):
    """Hosted checkout session issued by the provider."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    url: str
    order_id: str


class SessionSummary(BaseModel):
    """Provider-side view of a checkout session, for status lookups."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    order_id: Optional[int] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    payment_status: Optional[str] = None
    status: Optional[str] = None


class PaymentEvent(BaseModel):
    """A verified checkout event from the payment provider."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    event_type: EventType
    raw_type: str
    mode: CheckoutMode = CheckoutMode.OTHER
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    order_id: Optional[int] = None
    session_id: Optional[str] = None


def parse_order_reference(token: Optional[str]) -> Optional[int]:
    """
    Parse the correlation token echoed back by the provider.

    Returns the order id, or None when the token is missing, not a
    base-10 integer, or not positive.
    """
    if token is None:
        return None
    token = str(token).strip()
    if not (token.isascii() and token.isdigit()):
        return None
    order_id = int(token)
    return order_id if order_id > 0 else None
