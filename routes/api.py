"""
API routes (AJAX endpoints).

Handles:
- /api/quote         - Shareable quote URL for the chosen order options
- /api/events/status - Reconciler counters and store version for the session
- /health            - Health check endpoint
"""

from flask import Blueprint, current_app, jsonify, request

from models.order import OrderOptions
from logging_config import get_logger
from .helpers import current_session


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/quote", methods=["GET"])
def quote():
    """
    Build a quote link for the current options.

    The link reopens the cart page with the same add-ons selected; the
    cart itself is identified by the session cookie.
    """
    options = OrderOptions.from_query(request.args)
    query = options.to_query_string()
    quote_url = f"{request.host_url.rstrip('/')}/cart"
    if query:
        quote_url = f"{quote_url}?{query}"

    return jsonify({"quoteUrl": quote_url, "options": options.to_dict()})


@api_bp.route("/api/events/status", methods=["GET"])
def events_status():
    """
    Report how the session's status events have been handled.

    The cart page polls ``version`` to decide whether to re-render.
    """
    session = current_session()
    if session is None:
        return jsonify({"error": "No session found", "kind": "session_missing"}), 401

    store = current_app.config["CART_STORE"]
    subscriber = current_app.config.get("EVENT_SUBSCRIBER")
    reconciler = subscriber.reconciler_for(session) if subscriber else None

    return jsonify({
        "version": store.version(session),
        "subscribed": reconciler is not None,
        "stats": reconciler.stats.to_dict() if reconciler else None,
    })


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Event subscriber (optional: disabled when REDIS_URL is empty)
    subscriber = current_app.config.get("EVENT_SUBSCRIBER")
    if subscriber is None:
        health_status["checks"]["events"] = "disabled"
    elif subscriber.is_running:
        health_status["checks"]["events"] = "ok"
        health_status["checks"]["event_sessions"] = len(subscriber.active_sessions())
    else:
        health_status["checks"]["events"] = "not_running"
        health_status["status"] = "degraded"

    # Checkout kill-switch
    checkout_service = current_app.config.get("CHECKOUT_SERVICE")
    if checkout_service is None:
        health_status["checks"]["checkout"] = "not_available"
        health_status["status"] = "degraded"
    else:
        health_status["checks"]["checkout"] = "enabled" if checkout_service.enabled else "disabled"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
