"""FastAPI application and routes."""
from .main import create_app
from .schemas import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    SessionStatusResponse,
    WebhookResponse,
)

__all__ = [
    "create_app",
    "CreateCheckoutSessionRequest",
    "CreateCheckoutSessionResponse",
    "SessionStatusResponse",
    "WebhookResponse",
]
