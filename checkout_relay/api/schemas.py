"""
Pydantic schemas for API request/response models.

Public JSON uses camelCase field names.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for creating a checkout session."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"examples": [{"orderId": 1042, "amountMinorUnits": 5980}]},
    )

    # Positivity is checked by the issuer so it maps to the same 400 as other input errors.
    order_id: StrictInt = Field(..., alias="orderId", description="Order ID in the order backend")
    amount_minor_units: StrictInt = Field(
        ..., alias="amountMinorUnits", description="Amount in the currency's smallest unit"
    )


class CreateCheckoutSessionResponse(BaseModel):
    """Response schema for checkout session creation."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="Hosted checkout page URL")
    session_id: str = Field(..., alias="sessionId", description="Checkout session ID")


class SessionStatusResponse(BaseModel):
    """Response schema for checkout session status lookups."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: Optional[int] = Field(default=None, alias="orderId", description="Order ID")
    amount: Optional[int] = Field(default=None, description="Amount in minor units")
    currency: Optional[str] = Field(default=None, description="Currency code")
    payment_status: Optional[str] = Field(
        default=None, alias="paymentStatus", description="paid / unpaid / no_payment_required"
    )
    status: Optional[str] = Field(default=None, description="open / complete / expired")


class WebhookResponse(BaseModel):
    """Response schema for webhook processing."""

    received: bool = Field(default=True, description="Delivery accepted")
    outcome: str = Field(..., description="Reconciliation outcome")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")
