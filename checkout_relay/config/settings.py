"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(..., description="Stripe secret API key (sk_test_...)")
    stripe_webhook_secret: SecretStr = Field(..., description="Stripe webhook signing secret")
    stripe_api_version: Optional[str] = Field(
        default=None, description="Pinned Stripe API version (account default if unset)"
    )
    webhook_tolerance_seconds: int = Field(
        default=300, gt=0, description="Maximum age of a webhook signature (seconds)"
    )

    # Checkout Configuration
    currency: str = Field(default="jpy", description="Settlement currency (ISO 4217)")
    product_name_template: str = Field(
        default="Order #{order_id}", description="Line item label shown on the hosted page"
    )
    checkout_expiry_hours: Optional[int] = Field(
        default=None, ge=1, le=24, description="Hosted session expiry (hours, optional)"
    )
    app_base_url: str = Field(..., description="Public base URL used for redirects")
    success_path: str = Field(default="/checkout/success", description="Success redirect path")
    cancel_path: str = Field(default="/checkout/cancel", description="Cancel redirect path")

    # Order Backend (WooCommerce) Configuration
    wc_base_url: str = Field(..., description="WooCommerce site root URL")
    wc_consumer_key: SecretStr = Field(..., description="WooCommerce REST consumer key")
    wc_consumer_secret: SecretStr = Field(..., description="WooCommerce REST consumer secret")
    order_backend_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Order backend request timeout (seconds)"
    )

    # Application Configuration
    app_name: str = Field(default="checkout-relay", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")
    allowed_origins: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    # Security
    internal_api_key: Optional[SecretStr] = Field(
        default=None, description="Internal key required to create checkout sessions"
    )
    api_key_header: str = Field(default="X-API-Key", description="API key header name")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("stripe_secret_key")
    @classmethod
    def validate_stripe_key(cls, v: SecretStr) -> SecretStr:
        """Validate Stripe secret key format."""
        if not v.get_secret_value().startswith(("sk_test_", "sk_live_", "rk_test_", "rk_live_")):
            raise ValueError(
                "Invalid Stripe secret key format. Must start with 'sk_test_' or 'sk_live_'"
            )
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Stripe expects lower-case ISO currency codes."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be a 3-letter ISO code")
        return v.lower()

    @field_validator("app_base_url", "wc_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL without a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def is_test_mode(self) -> bool:
        """Check if using Stripe test mode."""
        return "_test_" in self.stripe_secret_key.get_secret_value()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
