"""External integrations: Stripe (payment provider) and WooCommerce (order backend)."""
from .stripe_client import StripeClient
from .woocommerce_client import WooCommerceClient

__all__ = ["StripeClient", "WooCommerceClient"]
