"""
Configuration for FabStorefront.

Values come from the environment (optionally a .env file). The cart store
and the order service are external HTTP collaborators; the status event
channel is Redis pub/sub and is disabled when REDIS_URL is empty.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "fab_storefront_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = _env_flag("FLASK_DEBUG", "1")

    # Cookie carrying the storefront session identity (issued elsewhere)
    STOREFRONT_SESSION_COOKIE = os.environ.get("STOREFRONT_SESSION_COOKIE", "fab_session_id")

    # ==========================================================================
    # External collaborators
    # ==========================================================================
    # CART_SERVICE_URL: cart persistence API (fetch-all / patch / delete)
    # ORDER_SERVICE_URL: order service base URL, e.g. a shop admin API root
    # ORDER_SERVICE_TOKEN: access token sent with every order request
    # HTTP_TIMEOUT_SECONDS: applies to both clients
    # ==========================================================================
    CART_SERVICE_URL = os.environ.get("CART_SERVICE_URL", "http://localhost:3000/api")
    ORDER_SERVICE_URL = os.environ.get("ORDER_SERVICE_URL", "")
    ORDER_SERVICE_TOKEN = os.environ.get("ORDER_SERVICE_TOKEN", "")
    HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15"))

    # Status event channel (Redis pub/sub); empty URL disables the subscriber
    REDIS_URL = os.environ.get("REDIS_URL", "")
    EVENT_CHANNEL = os.environ.get("EVENT_CHANNEL", "file.statusUpdate")

    # Checkout kill-switch. Off by default: every checkout is rejected with 503
    # while the composition logic stays in place behind it.
    CHECKOUT_ENABLED = _env_flag("CHECKOUT_ENABLED", "0")

    # Carts not read or edited for SESSION_IDLE_TTL_SECONDS are evicted from
    # memory together with their event reconcilers; the sweep runs at most
    # once per SESSION_SWEEP_INTERVAL_SECONDS
    SESSION_IDLE_TTL_SECONDS = float(os.environ.get("SESSION_IDLE_TTL_SECONDS", "3600"))
    SESSION_SWEEP_INTERVAL_SECONDS = float(os.environ.get("SESSION_SWEEP_INTERVAL_SECONDS", "60"))

    # User input limits
    MAX_COMMENTS_LENGTH = 1000
    MAX_QUANTITY = 1000


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    REDIS_URL = ""
    CHECKOUT_ENABLED = True
