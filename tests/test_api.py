"""
Tests for the HTTP surface, served in-process over ASGITransport.
"""
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from checkout_relay.api.main import create_app
from checkout_relay.core.exceptions import SessionCreationError

from conftest import sign_payload


class TestCheckoutEndpoints:
    """Session creation and lookup."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_session(self, client: AsyncClient) -> None:
        response = await client.post(
            "/checkout/sessions", json={"orderId": 1042, "amountMinorUnits": 5980}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["url"].startswith("https://checkout.stripe.com/")
        assert data["sessionId"].startswith("cs_test_")
        assert "X-Request-ID" in response.headers

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_session_twice_returns_same_session(self, client: AsyncClient) -> None:
        body = {"orderId": 1042, "amountMinorUnits": 5980}

        first = await client.post("/checkout/sessions", json=body)
        second = await client.post("/checkout/sessions", json=body)

        assert first.json()["sessionId"] == second.json()["sessionId"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"orderId": 0, "amountMinorUnits": 5980},
            {"orderId": 1042, "amountMinorUnits": -1},
            {"orderId": 1042, "amountMinorUnits": 59.8},
            {"orderId": "1042", "amountMinorUnits": 5980},
            {"orderId": 1042},
        ],
    )
    async def test_invalid_input(self, client: AsyncClient, stripe_fake: Any, body: dict) -> None:
        response = await client.post("/checkout/sessions", json=body)

        assert response.status_code == 400
        assert stripe_fake.calls == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_provider_failure(self, client: AsyncClient, stripe_fake: Any) -> None:
        stripe_fake.fail_with = SessionCreationError("Invalid currency: xyz", retryable=False)

        response = await client.post(
            "/checkout/sessions", json={"orderId": 1042, "amountMinorUnits": 5980}
        )

        assert response.status_code == 502
        assert "Invalid currency" in response.json()["detail"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_session_status(self, client: AsyncClient) -> None:
        created = await client.post(
            "/checkout/sessions", json={"orderId": 1042, "amountMinorUnits": 5980}
        )
        session_id = created.json()["sessionId"]

        response = await client.get(f"/checkout/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json() == {
            "orderId": 1042,
            "amount": 5980,
            "currency": "jpy",
            "paymentStatus": "unpaid",
            "status": "open",
        }

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_session_status(self, client: AsyncClient) -> None:
        response = await client.get("/checkout/sessions/cs_test_missing")

        assert response.status_code == 404


class TestInternalApiKey:
    """Session creation is protected when an internal key is configured."""

    @pytest.fixture
    def protected_app(self, test_settings: Any, stripe_fake: Any, order_backend: Any) -> Any:
        # model_copy skips validation, so the key is wrapped here
        settings = test_settings.model_copy(update={"internal_api_key": SecretStr("relay-key")})
        return create_app(settings, provider=stripe_fake, order_backend=order_backend)

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"X-API-Key": "wrong"}])
    async def test_rejected_without_valid_key(
        self, protected_app: Any, stripe_fake: Any, headers: dict
    ) -> None:
        async with AsyncClient(transport=ASGITransport(app=protected_app), base_url="http://test") as ac:
            response = await ac.post(
                "/checkout/sessions",
                json={"orderId": 1042, "amountMinorUnits": 5980},
                headers=headers,
            )

        assert response.status_code == 401
        assert stripe_fake.calls == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_accepted_with_key(self, protected_app: Any) -> None:
        async with AsyncClient(transport=ASGITransport(app=protected_app), base_url="http://test") as ac:
            response = await ac.post(
                "/checkout/sessions",
                json={"orderId": 1042, "amountMinorUnits": 5980},
                headers={"X-API-Key": "relay-key"},
            )

        assert response.status_code == 201


class TestStripeWebhook:
    """Webhook endpoint status-code contract."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_paid_session_settles_order(
        self, client: AsyncClient, order_backend: Any, signed_event: Any
    ) -> None:
        payload, header = signed_event()

        response = await client.post(
            "/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": header, "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True, "outcome": "settled"}
        assert order_backend.updates == [(1042, "processing")]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_redelivery_acknowledged_without_write(
        self, client: AsyncClient, order_backend: Any, signed_event: Any
    ) -> None:
        payload, header = signed_event()
        headers = {"Stripe-Signature": header}

        await client.post("/webhooks/stripe", content=payload, headers=headers)
        response = await client.post("/webhooks/stripe", content=payload, headers=headers)

        assert response.status_code == 200
        assert response.json()["outcome"] == "already_settled"
        assert len(order_backend.updates) == 1

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(
        self, client: AsyncClient, signed_event: Any
    ) -> None:
        payload, header = signed_event(event_type="payment_intent.created")

        response = await client.post(
            "/webhooks/stripe", content=payload, headers={"Stripe-Signature": header}
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_bad_signature_is_client_error(
        self, client: AsyncClient, order_backend: Any, signed_event: Any
    ) -> None:
        payload, _ = signed_event()

        response = await client.post(
            "/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload, secret="whsec_wrong")},
        )

        assert response.status_code == 400
        assert order_backend.fetches == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_signature_is_client_error(
        self, client: AsyncClient, signed_event: Any
    ) -> None:
        payload, _ = signed_event()

        response = await client.post("/webhooks/stripe", content=payload)

        assert response.status_code == 400

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_backend_outage_requests_redelivery(
        self, client: AsyncClient, order_backend: Any, signed_event: Any
    ) -> None:
        order_backend.fail_fetch = True
        payload, header = signed_event()

        response = await client.post(
            "/webhooks/stripe", content=payload, headers={"Stripe-Signature": header}
        )

        assert response.status_code == 503
        assert "ck_test_key" not in response.text
        assert "cs_test_secret" not in response.text


class TestMonitoringEndpoints:
    """Health and metrics."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_readiness(self, client: AsyncClient, order_backend: Any) -> None:
        assert (await client.get("/health/ready")).status_code == 200

        order_backend.reachable = False
        response = await client.get("/health/ready")

        assert response.status_code == 503

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client: AsyncClient, signed_event: Any) -> None:
        payload, header = signed_event()
        await client.post("/webhooks/stripe", content=payload, headers={"Stripe-Signature": header})

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "webhook_outcomes_total" in response.text
