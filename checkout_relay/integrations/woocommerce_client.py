"""
WooCommerce REST API (v3) client used as the order backend.

Authenticates with a consumer key/secret pair sent as query parameters.
URLs are therefore never logged or put into error messages with their
query string.
"""
from typing import Any, Dict, Optional

import httpx
import structlog

from ..config import Settings
from ..core.exceptions import OrderBackendError
from ..monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

API_PREFIX = "/wp-json/wc/v3"

# Longest slice of a backend error body carried into error messages.
ERROR_BODY_LIMIT = 200


class WooCommerceClient:
    """WooCommerce implementation of the order backend interface."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize WooCommerce client.

        Args:
            settings: Application settings
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings
        self.client = httpx.AsyncClient(
            base_url=f"{settings.wc_base_url.rstrip('/')}{API_PREFIX}",
            params={
                "consumer_key": settings.wc_consumer_key.get_secret_value(),
                "consumer_secret": settings.wc_consumer_secret.get_secret_value(),
            },
            headers={"Accept": "application/json"},
            timeout=settings.order_backend_timeout_seconds,
            transport=transport,
        )

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self.client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            metrics.record_order_backend_error(operation)
            logger.error(
                "order_backend_unreachable",
                operation=operation,
                method=method,
                path=path,
                error_type=type(e).__name__,
            )
            raise OrderBackendError(
                f"WooCommerce {method} {path} failed: {type(e).__name__}"
            ) from e

        if not response.is_success:
            metrics.record_order_backend_error(operation)
            body = response.text[:ERROR_BODY_LIMIT]
            logger.error(
                "order_backend_error_response",
                operation=operation,
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise OrderBackendError(
                f"WooCommerce {method} {path} failed: {response.status_code} {body}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            metrics.record_order_backend_error(operation)
            raise OrderBackendError(
                f"WooCommerce {method} {path} returned a non-JSON body",
                status_code=response.status_code,
            ) from e

    async def fetch_order(self, order_id: int) -> Dict[str, Any]:
        """
        Get an order by ID.

        Raises:
            OrderBackendError: If the request fails
        """
        order = await self._request("fetch", "GET", f"/orders/{order_id}")
        if not isinstance(order, dict):
            raise OrderBackendError(f"WooCommerce GET /orders/{order_id} returned no order")
        return order

    async def fetch_order_status(self, order_id: int) -> str:
        """Return the order's current status string."""
        order = await self.fetch_order(order_id)
        return str(order.get("status") or "")

    async def update_order_status(
        self, order_id: int, status: str, expected_status: Optional[str] = None
    ) -> bool:
        """
        Set the order status.

        WooCommerce has no conditional update, so ``expected_status`` is only
        logged and the write is always applied.

        Raises:
            OrderBackendError: If the request fails
        """
        await self._request("update", "PUT", f"/orders/{order_id}", json={"status": status})
        logger.info(
            "order_status_updated",
            order_id=order_id,
            status=status,
            expected_status=expected_status,
        )
        return True

    async def ping(self) -> None:
        """Check connectivity and credentials with a minimal order listing."""
        await self._request("ping", "GET", "/orders", params={"per_page": 1})

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
