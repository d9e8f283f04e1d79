"""
FabStorefront - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration and logging
2. Creates the HTTP clients for the cart and order services
3. Creates the per-session cart store and its sync service
4. Starts the status event subscriber (separate thread, if Redis is set)
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (cart edits, checkout)
    └── Cleanup on shutdown

    Events Thread (background)
    └── Redis pub/sub listener -> reconcilers -> CartStateStore

The CartStateStore is the only state shared between the two threads and it
serialises every mutation behind one lock.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.cart_client import CartAPIClient
from core.exceptions import StorefrontError
from core.order_client import OrderServiceClient
from services.cart_store import CartStateStore
from services.cart_service import CartSyncService
from services.checkout_service import CheckoutService
from services.order_composer import OrderComposer
from services.reconciler import EventSubscriber
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: the directory containing the executable
    In development: the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    cart_client: Optional[CartAPIClient] = None,
    order_client: Optional[OrderServiceClient] = None,
    event_subscriber: Optional[EventSubscriber] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        cart_client: Pre-built cart client (tests pass a mock)
        order_client: Pre-built order client (tests pass a mock)
        event_subscriber: Pre-built subscriber; it is not started here

    Returns:
        Configured Flask application
    """
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting FabStorefront in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # EXTERNAL CLIENTS
    # =========================================================================

    timeout = app.config.get("HTTP_TIMEOUT_SECONDS", 15.0)

    if cart_client is None:
        cart_client = CartAPIClient(
            app.config["CART_SERVICE_URL"],
            session_cookie_name=app.config["STOREFRONT_SESSION_COOKIE"],
            timeout_seconds=timeout,
            logger=get_logger("core.cart_client"),
        )

    checkout_enabled = bool(app.config.get("CHECKOUT_ENABLED"))
    if order_client is None and app.config.get("ORDER_SERVICE_URL"):
        order_client = OrderServiceClient(
            app.config["ORDER_SERVICE_URL"],
            access_token=app.config.get("ORDER_SERVICE_TOKEN", ""),
            timeout_seconds=timeout,
            logger=get_logger("core.order_client"),
        )
    if order_client is None and checkout_enabled:
        logger.error("CHECKOUT_ENABLED is set but ORDER_SERVICE_URL is empty; checkout stays disabled")
        checkout_enabled = False

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    cart_store = CartStateStore()
    app.config["CART_STORE"] = cart_store
    sweep_interval = app.config.get("SESSION_SWEEP_INTERVAL_SECONDS", 60.0)
    app.config["CART_SYNC"] = CartSyncService(
        cart_store,
        cart_client,
        session_ttl_seconds=app.config.get("SESSION_IDLE_TTL_SECONDS", 3600.0),
        sweep_interval_seconds=sweep_interval,
    )

    composer = OrderComposer(order_client)
    app.config["CHECKOUT_SERVICE"] = CheckoutService(cart_client, composer, enabled=checkout_enabled)

    started_here = False
    if event_subscriber is None and app.config.get("REDIS_URL"):
        event_subscriber = EventSubscriber(
            app.config["REDIS_URL"],
            channel=app.config.get("EVENT_CHANNEL", "file.statusUpdate"),
            sweep_interval_seconds=sweep_interval,
        )
        event_subscriber.start()
        started_here = True
        logger.info("Event subscriber started")
    elif event_subscriber is None:
        logger.warning("REDIS_URL not set - realtime status updates disabled")
    app.config["EVENT_SUBSCRIBER"] = event_subscriber

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        if started_here and event_subscriber:
            event_subscriber.stop()

        for client in (cart_client, order_client):
            close = getattr(client, "close", None)
            if callable(close):
                close()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e: StorefrontError):
        if e.http_status >= 500:
            logger.error(f"{e.kind}: {e}")
        else:
            logger.info(f"{e.kind}: {e.message}")
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found", "kind": "not_found"}), 404

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description, "kind": "http_error"}), e.code
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred. Please try again.",
            "kind": "internal_error",
        }), 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
