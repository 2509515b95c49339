"""
Checkout session issuer.

Opens one hosted checkout session per order:
1. Validate input (no provider call on bad input)
2. Derive the idempotency key from the order id
3. Build redirect URLs and the single line item
4. Ask the provider for the session
"""
import time
from typing import Any, Callable, Optional

import structlog

from ..config import Settings
from .exceptions import InvalidInputError, ProviderError, SessionCreationError
from .models import CheckoutRequest, CheckoutSession, SessionParams, SessionSummary
from .ports import PaymentProvider

logger = structlog.get_logger(__name__)

# Placeholder the provider replaces with the session id on redirect.
SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


class CheckoutSessionIssuer:
    """
    Issues hosted checkout sessions for orders.

    Retry-safe: every call for the same order carries the same idempotency
    key, so the provider returns the original session instead of opening a
    second charge opportunity.
    """

    def __init__(
        self,
        settings: Settings,
        provider: PaymentProvider,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the issuer.

        Args:
            settings: Application settings
            provider: Payment provider used to create sessions
            clock: Source of the current UNIX time (for session expiry)
        """
        self.settings = settings
        self.provider = provider
        self.clock = clock

    @staticmethod
    def _validate_checkout_request(order_id: Any, amount_minor_units: Any) -> CheckoutRequest:
        """
        Validate checkout request parameters.

        Raises:
            InvalidInputError: If validation fails
        """
        # bool is an int subclass; True must not become order 1.
        if not isinstance(order_id, int) or isinstance(order_id, bool) or order_id <= 0:
            raise InvalidInputError("orderId must be a positive integer")

        if (
            not isinstance(amount_minor_units, int)
            or isinstance(amount_minor_units, bool)
            or amount_minor_units <= 0
        ):
            raise InvalidInputError("amountMinorUnits must be a positive integer")

        return CheckoutRequest(order_id=order_id, amount_minor_units=amount_minor_units)

    def _build_params(self, request: CheckoutRequest) -> SessionParams:
        base_url = self.settings.app_base_url.rstrip("/")
        success_url = (
            f"{base_url}{self.settings.success_path}"
            f"?order_id={request.order_id}&session_id={SESSION_ID_PLACEHOLDER}"
        )
        cancel_url = f"{base_url}{self.settings.cancel_path}?order_id={request.order_id}"

        expires_at: Optional[int] = None
        if self.settings.checkout_expiry_hours:
            expires_at = int(self.clock()) + self.settings.checkout_expiry_hours * 3600

        return SessionParams(
            idempotency_key=request.idempotency_key,
            correlation_id=request.correlation_id,
            amount_minor_units=request.amount_minor_units,
            currency=self.settings.currency,
            product_name=self.settings.product_name_template.format(order_id=request.order_id),
            success_url=success_url,
            cancel_url=cancel_url,
            expires_at=expires_at,
        )

    async def create_session(self, order_id: int, amount_minor_units: int) -> CheckoutSession:
        """
        Create (or re-fetch) the hosted checkout session for an order.

        Args:
            order_id: Order identifier in the order backend
            amount_minor_units: Amount in the currency's smallest unit

        Returns:
            CheckoutSession: Session id and hosted page URL

        Raises:
            InvalidInputError: If the input is rejected
            SessionCreationError: If the provider call fails
        """
        request = self._validate_checkout_request(order_id, amount_minor_units)
        params = self._build_params(request)

        logger.info(
            "creating_checkout_session",
            order_id=request.order_id,
            amount_minor_units=request.amount_minor_units,
            currency=params.currency,
            idempotency_key=params.idempotency_key,
        )

        try:
            session = await self.provider.create_checkout_session(params)
        except SessionCreationError:
            logger.error("checkout_session_creation_failed", order_id=request.order_id)
            raise

        logger.info(
            "checkout_session_created",
            order_id=request.order_id,
            session_id=session.session_id,
        )
        return session

    async def describe_session(self, session_id: str) -> SessionSummary:
        """
        Look up a checkout session for status display.

        Raises:
            InvalidInputError: If the session id is empty
            SessionNotFoundError: If the provider does not know the session
            ProviderError: On other provider failures
        """
        if not isinstance(session_id, str) or not session_id.strip():
            raise InvalidInputError("session id is required")

        try:
            return await self.provider.retrieve_checkout_session(session_id.strip())
        except ProviderError as e:
            logger.warning(
                "checkout_session_lookup_failed",
                session_id=session_id,
                error=str(e),
            )
            raise
