"""
Error taxonomy for the checkout relay.

Permanent rejections (never worth redelivering):
- InvalidInputError
- SignatureInvalidError
- UnauthorizedError

Dependency failures (the caller may retry later):
- SessionCreationError / ProviderError
- OrderBackendError / ReconciliationError

Messages never include secrets or credentials.
"""
from typing import Optional


class RelayError(Exception):
    """Base exception for checkout relay errors."""

    pass


class InvalidInputError(RelayError):
    """Raised when caller input is rejected before any external call."""

    pass


class SignatureInvalidError(RelayError):
    """Raised when a webhook payload fails signature verification."""

    pass


class UnauthorizedError(RelayError):
    """Raised when the internal API credential is missing or wrong."""

    pass


class ProviderError(RelayError):
    """Raised when a payment provider call fails."""

    def __init__(self, message: str, retryable: bool = True):
        """
        Initialize provider error.

        Args:
            message: Provider error message
            retryable: Whether the failure is transient
        """
        super().__init__(message)
        self.retryable = retryable


class SessionCreationError(ProviderError):
    """Raised when the provider refuses or fails to create a checkout session."""

    pass


class SessionNotFoundError(ProviderError):
    """Raised when the provider does not know a checkout session."""

    def __init__(self, session_id: str):
        super().__init__(f"Checkout session not found: {session_id}", retryable=False)
        self.session_id = session_id


class OrderBackendError(RelayError):
    """Raised by order backends when a read or write fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """
        Initialize order backend error.

        Args:
            message: Error message (without credentials)
            status_code: HTTP status returned by the backend, if any
        """
        super().__init__(message)
        self.status_code = status_code


class ReconciliationError(RelayError):
    """Raised when the order backend could not be read or updated."""

    def __init__(self, message: str, order_id: Optional[int] = None):
        super().__init__(message)
        self.order_id = order_id
