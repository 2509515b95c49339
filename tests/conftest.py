"""
Pytest configuration and fixtures.

Network collaborators are replaced by in-memory fakes. Webhook signatures
are real Stripe v1 signatures so verification runs through the Stripe SDK.
"""
import hashlib
import hmac
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from checkout_relay.api.main import create_app
from checkout_relay.config import Settings
from checkout_relay.core.exceptions import (
    OrderBackendError,
    SessionCreationError,
    SessionNotFoundError,
)
from checkout_relay.core.models import CheckoutSession, SessionParams, SessionSummary
from checkout_relay.integrations.stripe_client import StripeClient

WEBHOOK_SECRET = "whsec_test_fake_secret"


class FakeStripe(StripeClient):
    """StripeClient with in-memory sessions; webhook verification is the real one."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.calls: List[SessionParams] = []
        self.sessions_by_key: Dict[str, CheckoutSession] = {}
        self.summaries: Dict[str, SessionSummary] = {}
        self.fail_with: Optional[Exception] = None

    async def create_checkout_session(self, params: SessionParams) -> CheckoutSession:
        self.calls.append(params)
        if self.fail_with is not None:
            raise self.fail_with

        # Stripe replays the original response for a reused idempotency key.
        if params.idempotency_key not in self.sessions_by_key:
            session_id = f"cs_test_{len(self.sessions_by_key) + 1:04d}"
            self.sessions_by_key[params.idempotency_key] = CheckoutSession(
                session_id=session_id,
                url=f"https://checkout.stripe.com/c/pay/{session_id}",
                order_id=params.correlation_id,
            )
            self.summaries[session_id] = SessionSummary(
                session_id=session_id,
                order_id=int(params.correlation_id),
                amount_total=params.amount_minor_units,
                currency=params.currency,
                payment_status="unpaid",
                status="open",
            )
        return self.sessions_by_key[params.idempotency_key]

    async def retrieve_checkout_session(self, session_id: str) -> SessionSummary:
        if session_id not in self.summaries:
            raise SessionNotFoundError(session_id)
        return self.summaries[session_id]


class FakeOrderBackend:
    """In-memory order backend with conditional writes."""

    def __init__(self, statuses: Optional[Dict[int, str]] = None) -> None:
        self.statuses: Dict[int, str] = dict(statuses or {})
        self.fetches: List[int] = []
        self.updates: List[Tuple[int, str]] = []
        self.fail_fetch = False
        self.fail_update = False
        self.reachable = True
        self.closed = False

    async def fetch_order_status(self, order_id: int) -> str:
        self.fetches.append(order_id)
        if self.fail_fetch:
            raise OrderBackendError(f"WooCommerce GET /orders/{order_id} failed: 502", 502)
        if order_id not in self.statuses:
            raise OrderBackendError(f"WooCommerce GET /orders/{order_id} failed: 404", 404)
        return self.statuses[order_id]

    async def update_order_status(
        self, order_id: int, status: str, expected_status: Optional[str] = None
    ) -> bool:
        if self.fail_update:
            raise OrderBackendError(f"WooCommerce PUT /orders/{order_id} failed: 500", 500)
        if expected_status is not None and self.statuses.get(order_id) != expected_status:
            return False
        self.updates.append((order_id, status))
        self.statuses[order_id] = status
        return True

    async def ping(self) -> None:
        if not self.reachable:
            raise OrderBackendError("WooCommerce GET /orders failed: ConnectError")

    async def close(self) -> None:
        self.closed = True


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header (scheme v1) for a payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def build_event(
    event_type: str = "checkout.session.completed",
    client_reference_id: Optional[str] = "1042",
    mode: str = "payment",
    payment_status: str = "paid",
    event_id: str = "evt_test_0001",
) -> bytes:
    """Build a Stripe event body as raw bytes."""
    session: Dict[str, Any] = {
        "id": "cs_test_0001",
        "object": "checkout.session",
        "mode": mode,
        "payment_status": payment_status,
        "client_reference_id": client_reference_id,
        "amount_total": 5980,
        "currency": "jpy",
        "metadata": {},
    }
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": session},
    }
    return json.dumps(event).encode("utf-8")


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        stripe_secret_key="sk_test_fake_key_for_testing",
        stripe_webhook_secret=WEBHOOK_SECRET,
        app_base_url="https://shop.example.com/",
        wc_base_url="https://shop.example.com",
        wc_consumer_key="ck_test_key",
        wc_consumer_secret="cs_test_secret",
        app_name="checkout-relay-test",
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture
def stripe_fake(test_settings: Settings) -> FakeStripe:
    return FakeStripe(test_settings)


@pytest.fixture
def order_backend() -> FakeOrderBackend:
    return FakeOrderBackend({1042: "pending"})


@pytest.fixture
def signed_event() -> Callable[..., Tuple[bytes, str]]:
    """Factory returning (payload, signature header) for an event."""

    def _make(**kwargs: Any) -> Tuple[bytes, str]:
        payload = build_event(**kwargs)
        return payload, sign_payload(payload)

    return _make


@pytest.fixture
def app(test_settings: Settings, stripe_fake: FakeStripe, order_backend: FakeOrderBackend) -> Any:
    return create_app(test_settings, provider=stripe_fake, order_backend=order_backend)


@pytest_asyncio.fixture
async def client(app: Any) -> Any:
    """Create test HTTP client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
