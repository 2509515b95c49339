"""
Stripe Checkout client.

Implements:
- Idempotent hosted checkout session creation
- Checkout session lookup
- Webhook signature verification over the raw request body
- Error classification (transient vs permanent)
"""
import asyncio
import json
from typing import Any, Dict, Optional

import stripe
import structlog

from ..config import Settings
from ..core.exceptions import (
    ProviderError,
    SessionCreationError,
    SessionNotFoundError,
    SignatureInvalidError,
)
from ..core.models import (
    CheckoutMode,
    CheckoutSession,
    EventType,
    PaymentEvent,
    PaymentStatus,
    SessionParams,
    SessionSummary,
    parse_order_reference,
)

logger = structlog.get_logger(__name__)


class StripeClient:
    """
    Stripe implementation of the payment provider interface.

    Credentials come from the injected settings and are passed per request,
    so the global ``stripe`` module state is never touched.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Stripe client."""
        self.settings = settings
        self._api_key = settings.stripe_secret_key.get_secret_value()
        self._webhook_secret = settings.stripe_webhook_secret.get_secret_value()

        logger.info(
            "stripe_client_initialized",
            api_version=settings.stripe_api_version,
            test_mode=settings.is_test_mode,
        )

    def _request_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self._api_key}
        if self.settings.stripe_api_version:
            options["stripe_version"] = self.settings.stripe_api_version
        return options

    @staticmethod
    def _is_retryable(error: stripe.StripeError) -> bool:
        """
        Classify Stripe error for the caller's retry decision.

        Args:
            error: Stripe error

        Returns:
            bool: True if retrying later may succeed
        """
        if isinstance(error, (stripe.RateLimitError, stripe.APIConnectionError, stripe.APIError)):
            return True
        elif isinstance(
            error,
            (
                stripe.InvalidRequestError,
                stripe.AuthenticationError,
                stripe.PermissionError,
                stripe.IdempotencyError,
                stripe.CardError,
            ),
        ):
            return False
        else:
            # Unknown errors are treated as transient
            return True

    @staticmethod
    def _error_message(error: stripe.StripeError) -> str:
        return getattr(error, "user_message", None) or str(error) or type(error).__name__

    async def create_checkout_session(self, params: SessionParams) -> CheckoutSession:
        """
        Create a Stripe Checkout session in payment mode.

        Args:
            params: Session parameters built by the issuer

        Returns:
            CheckoutSession: Created (or idempotently replayed) session

        Raises:
            SessionCreationError: If session creation fails
        """
        request: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": params.currency,
                        "unit_amount": params.amount_minor_units,
                        "product_data": {"name": params.product_name},
                    },
                    "quantity": 1,
                }
            ],
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "client_reference_id": params.correlation_id,
            "metadata": {"order_id": params.correlation_id},
        }
        if params.expires_at is not None:
            request["expires_at"] = params.expires_at

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                idempotency_key=params.idempotency_key,
                **self._request_options(),
                **request,
            )
        except stripe.StripeError as e:
            retryable = self._is_retryable(e)
            logger.error(
                "stripe_api_error",
                operation="create_checkout_session",
                retryable=retryable,
                error_code=getattr(e, "code", None),
                error_message=self._error_message(e),
            )
            raise SessionCreationError(self._error_message(e), retryable=retryable) from e

        if not session.id or not session.url:
            raise SessionCreationError("Stripe returned a session without an id or URL")

        return CheckoutSession(
            session_id=session.id,
            url=session.url,
            order_id=params.correlation_id,
        )

    async def retrieve_checkout_session(self, session_id: str) -> SessionSummary:
        """
        Retrieve a Checkout session by ID.

        Raises:
            SessionNotFoundError: If Stripe has no such session
            ProviderError: If retrieval fails
        """
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve, session_id, **self._request_options()
            )
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing":
                raise SessionNotFoundError(session_id) from e
            raise ProviderError(self._error_message(e), retryable=False) from e
        except stripe.StripeError as e:
            logger.error(
                "stripe_api_error",
                operation="retrieve_checkout_session",
                error_code=getattr(e, "code", None),
                error_message=self._error_message(e),
            )
            raise ProviderError(self._error_message(e), retryable=self._is_retryable(e)) from e

        reference = getattr(session, "client_reference_id", None)
        metadata = getattr(session, "metadata", None)
        if not reference and metadata and "order_id" in metadata:
            reference = metadata["order_id"]

        return SessionSummary(
            session_id=session.id,
            order_id=parse_order_reference(reference),
            amount_total=getattr(session, "amount_total", None),
            currency=getattr(session, "currency", None),
            payment_status=getattr(session, "payment_status", None),
            status=getattr(session, "status", None),
        )

    def verify_and_parse_event(self, payload: bytes, signature_header: str) -> PaymentEvent:
        """
        Verify webhook signature and parse the event.

        Verification runs on the body bytes exactly as received; the payload
        is only decoded as JSON after the signature checks out.

        Args:
            payload: Raw request body as bytes
            signature_header: Stripe-Signature header value

        Returns:
            PaymentEvent: Verified event

        Raises:
            SignatureInvalidError: If verification fails or the body is malformed
        """
        if not signature_header:
            logger.warning("webhook_signature_missing")
            raise SignatureInvalidError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            stripe.WebhookSignature.verify_header(
                body,
                signature_header,
                self._webhook_secret,
                tolerance=self.settings.webhook_tolerance_seconds,
            )
        except UnicodeDecodeError as e:
            logger.warning("webhook_payload_not_utf8")
            raise SignatureInvalidError("Webhook payload is not valid UTF-8") from e
        except stripe.SignatureVerificationError as e:
            logger.warning("webhook_signature_verification_failed", error=str(e))
            raise SignatureInvalidError(f"Invalid webhook signature: {e}") from e

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            logger.warning("webhook_payload_malformed", error=str(e))
            raise SignatureInvalidError("Webhook payload is not valid JSON") from e
        if not isinstance(data, dict):
            raise SignatureInvalidError("Webhook payload is not a JSON object")

        event = self.parse_event(data)
        logger.info(
            "webhook_signature_verified",
            event_id=event.event_id,
            event_type=event.raw_type,
        )
        return event

    @staticmethod
    def parse_event(data: Dict[str, Any]) -> PaymentEvent:
        """Map a Stripe event object onto a PaymentEvent."""
        raw_type = str(data.get("type") or "")
        event_type = EventType(raw_type)
        obj = (data.get("data") or {}).get("object") or {}

        fields: Dict[str, Any] = {}
        if isinstance(obj, dict) and obj.get("object") == "checkout.session":
            metadata: Optional[Dict[str, Any]] = obj.get("metadata") or {}
            fields = {
                "mode": CheckoutMode(obj.get("mode")),
                "payment_status": PaymentStatus(obj.get("payment_status")),
                "order_id": parse_order_reference(
                    obj.get("client_reference_id") or metadata.get("order_id")
                ),
                "session_id": obj.get("id"),
            }

        return PaymentEvent(
            event_id=str(data.get("id") or ""),
            event_type=event_type,
            raw_type=raw_type,
            **fields,
        )
