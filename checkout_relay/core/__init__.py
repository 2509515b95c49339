"""Core checkout and settlement logic."""
from .exceptions import (
    InvalidInputError,
    OrderBackendError,
    ProviderError,
    ReconciliationError,
    RelayError,
    SessionCreationError,
    SessionNotFoundError,
    SignatureInvalidError,
    UnauthorizedError,
)
from .issuer import CheckoutSessionIssuer
from .models import CheckoutSession, PaymentEvent, ReconcileOutcome, SessionSummary
from .reconciler import SettlementReconciler

__all__ = [
    "CheckoutSession",
    "CheckoutSessionIssuer",
    "InvalidInputError",
    "OrderBackendError",
    "PaymentEvent",
    "ProviderError",
    "ReconcileOutcome",
    "ReconciliationError",
    "RelayError",
    "SessionCreationError",
    "SessionNotFoundError",
    "SessionSummary",
    "SettlementReconciler",
    "SignatureInvalidError",
    "UnauthorizedError",
]
