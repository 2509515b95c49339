"""
Health checks for liveness/readiness probes.

Checks:
- Order backend reachability and credentials
"""
from typing import Any, Dict

import structlog

from ..core.exceptions import OrderBackendError
from ..core.ports import OrderBackend

logger = structlog.get_logger(__name__)


class HealthCheck:
    """Health check service for the relay's dependencies."""

    def __init__(self, order_backend: OrderBackend) -> None:
        """Initialize health check service."""
        self.order_backend = order_backend

    async def check_order_backend(self) -> Dict[str, Any]:
        """
        Check order backend connectivity.

        Returns:
            Dict[str, Any]: Order backend health status
        """
        try:
            await self.order_backend.ping()
        except OrderBackendError as e:
            logger.error("order_backend_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "service": "order_backend",
                "error": str(e),
            }

        return {
            "status": "healthy",
            "service": "order_backend",
            "message": "Order backend reachable",
        }

    async def liveness(self) -> Dict[str, Any]:
        """
        Liveness probe.

        Does not check external dependencies.
        """
        return {
            "status": "healthy",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        """
        Readiness probe.

        Returns:
            Dict[str, Any]: Overall status plus individual checks
        """
        checks = {"order_backend": await self.check_order_backend()}
        all_healthy = all(check["status"] == "healthy" for check in checks.values())
        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }
