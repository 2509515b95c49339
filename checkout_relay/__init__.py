"""
Checkout relay between Stripe Checkout and a WooCommerce order backend.

Creates hosted checkout sessions for orders and settles orders when
Stripe reports a paid session.
"""

__version__ = "0.1.0"
