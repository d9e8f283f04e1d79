"""
Flask route blueprints for FabStorefront.

This module contains all route handlers organized by functionality:
- cart: Cart read, optimistic edit and removal
- checkout: Checkout entry point
- api: Quote links, event status polling, health check

Each blueprint is registered with the Flask app in create_app().
"""

from .cart import cart_bp
from .checkout import checkout_bp
from .api import api_bp

__all__ = [
    "cart_bp",
    "checkout_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(cart_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(api_bp)
