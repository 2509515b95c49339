"""
API routes for checkout sessions, Stripe webhooks and monitoring.
"""
import hmac
import time

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..config import Settings
from ..core.exceptions import (
    InvalidInputError,
    ProviderError,
    ReconciliationError,
    SessionCreationError,
    SessionNotFoundError,
    SignatureInvalidError,
    UnauthorizedError,
)
from ..core.issuer import CheckoutSessionIssuer
from ..core.reconciler import SettlementReconciler
from ..monitoring.health import HealthCheck
from ..monitoring.metrics import metrics
from .schemas import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    HealthCheckResponse,
    SessionStatusResponse,
    WebhookResponse,
)

logger = structlog.get_logger(__name__)

checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])
monitoring_router = APIRouter(tags=["monitoring"])


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_issuer(request: Request) -> CheckoutSessionIssuer:
    return request.app.state.issuer


def get_reconciler(request: Request) -> SettlementReconciler:
    return request.app.state.reconciler


def get_health_check(request: Request) -> HealthCheck:
    return request.app.state.health_check


def require_internal_api_key(
    request: Request, settings: Settings = Depends(get_settings_dependency)
) -> None:
    """
    Enforce the internal API key when one is configured.

    Raises:
        UnauthorizedError: If the key is missing or wrong
    """
    if settings.internal_api_key is None:
        return

    provided = request.headers.get(settings.api_key_header, "")
    expected = settings.internal_api_key.get_secret_value()
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        metrics.record_checkout_session("unauthorized")
        logger.warning("api_key_rejected", header=settings.api_key_header)
        raise UnauthorizedError("Missing or invalid API key")


@checkout_router.post(
    "/sessions",
    response_model=CreateCheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a checkout session",
    description="Create (or idempotently re-fetch) the hosted checkout session for an order",
    dependencies=[Depends(require_internal_api_key)],
)
async def create_checkout_session(
    request: CreateCheckoutSessionRequest,
    issuer: CheckoutSessionIssuer = Depends(get_issuer),
) -> CreateCheckoutSessionResponse:
    """
    Create a checkout session.

    Idempotent per order: repeated requests return the same session.
    """
    try:
        session = await issuer.create_session(request.order_id, request.amount_minor_units)

    except InvalidInputError as e:
        metrics.record_checkout_session("invalid")
        logger.warning("api_create_session_validation_error", error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except SessionCreationError as e:
        metrics.record_checkout_session("failed")
        logger.error("api_create_session_error", order_id=request.order_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Checkout session creation failed: {e}",
        )

    metrics.record_checkout_session("created")
    return CreateCheckoutSessionResponse(url=session.url, session_id=session.session_id)


@checkout_router.get(
    "/sessions/{session_id}",
    response_model=SessionStatusResponse,
    summary="Get checkout session status",
    description="Look up the provider-side status of a checkout session",
)
async def get_checkout_session_status(
    session_id: str,
    issuer: CheckoutSessionIssuer = Depends(get_issuer),
) -> SessionStatusResponse:
    """Get checkout session status by ID."""
    try:
        summary = await issuer.describe_session(session_id)

    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except SessionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")

    except ProviderError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Session lookup failed: {e}",
        )

    return SessionStatusResponse(
        order_id=summary.order_id,
        amount=summary.amount_total,
        currency=summary.currency,
        payment_status=summary.payment_status,
        status=summary.status,
    )


@webhook_router.post(
    "/stripe",
    response_model=WebhookResponse,
    summary="Stripe webhook endpoint",
    description="Verify a Stripe delivery and settle the order it refers to",
)
async def stripe_webhook(
    request: Request,
    reconciler: SettlementReconciler = Depends(get_reconciler),
) -> WebhookResponse:
    """
    Handle Stripe webhook events.

    Invalid signatures get a 400 (permanent rejection). Order backend
    failures get a 503 so Stripe redelivers later.
    """
    start_time = time.time()

    # Signature verification needs the body bytes exactly as sent.
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = reconciler.verify(body, signature)
        metrics.record_webhook_event(event.raw_type or "unknown")

        logger.info(
            "api_webhook_received",
            event_id=event.event_id,
            event_type=event.raw_type,
        )

        outcome = await reconciler.reconcile(event)

    except SignatureInvalidError as e:
        metrics.record_webhook_outcome("signature_invalid", time.time() - start_time)
        logger.warning("api_webhook_rejected", error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except ReconciliationError as e:
        metrics.record_webhook_outcome("failed", time.time() - start_time)
        logger.error("api_webhook_reconciliation_failed", order_id=e.order_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Webhook Error: {e}",
        )

    metrics.record_webhook_outcome(outcome.value, time.time() - start_time)
    return WebhookResponse(received=True, outcome=outcome.value)


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
    description="Check that the application is running",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> dict:
    """Liveness probe endpoint."""
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    description="Check that the order backend is reachable",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> dict:
    """Readiness probe endpoint."""
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
