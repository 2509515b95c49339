"""
Capability interfaces the core depends on.

The issuer and reconciler only see these protocols; the Stripe and
WooCommerce clients implement them, and tests substitute in-memory fakes.
"""
from typing import Optional, Protocol

from .models import CheckoutSession, PaymentEvent, SessionParams, SessionSummary


class PaymentProvider(Protocol):
    """Interface for the hosted-checkout payment provider."""

    async def create_checkout_session(self, params: SessionParams) -> CheckoutSession:
        """
        Create a hosted checkout session.

        Calls sharing ``params.idempotency_key`` must resolve to the same
        provider session.

        Raises:
            SessionCreationError: On any provider-side failure
        """
        ...

    async def retrieve_checkout_session(self, session_id: str) -> SessionSummary:
        """
        Look up an existing session.

        Raises:
            SessionNotFoundError: If the provider does not know the session
            ProviderError: On any other provider-side failure
        """
        ...

    def verify_and_parse_event(self, payload: bytes, signature_header: str) -> PaymentEvent:
        """
        Verify a webhook delivery against the raw body and parse it.

        Raises:
            SignatureInvalidError: If the signature is missing, stale or wrong
        """
        ...


class OrderBackend(Protocol):
    """Interface for the order backend that owns order status."""

    async def fetch_order_status(self, order_id: int) -> str:
        """Return the current status of an order."""
        ...

    async def update_order_status(
        self, order_id: int, status: str, expected_status: Optional[str] = None
    ) -> bool:
        """
        Set an order's status.

        Backends that support conditional writes only apply the update while
        the order is still in ``expected_status`` and return False otherwise.
        Backends without conditional writes apply it unconditionally and
        return True.
        """
        ...

    async def ping(self) -> None:
        """Raise if the backend is unreachable or rejects our credentials."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
