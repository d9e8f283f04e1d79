"""
Checkout route.

POST /api/checkout with an optional JSON body:

    {"comments": "...", "multicolor": true, "priority": false,
     "assistance": false, "testMode": false, "email": "..."}

Gate failures and order-service failures propagate as StorefrontError and
are rendered by the app-level error handler as ``{error, kind, details}``.
"""

from flask import Blueprint, current_app, jsonify, request

from models.order import OrderOptions
from logging_config import get_logger
from .helpers import current_session, sanitize_text


# Module logger
logger = get_logger(__name__)

checkout_bp = Blueprint("checkout", __name__)

MAX_EMAIL_LENGTH = 254


@checkout_bp.route("/api/checkout", methods=["POST"])
def checkout():
    """
    Create a draft order for the session's cart.

    Returns the invoice URL the browser should be redirected to.
    """
    body = request.get_json(silent=True) or {}

    max_comments = current_app.config.get("MAX_COMMENTS_LENGTH", 1000)
    options = OrderOptions.from_dict({
        "comments": sanitize_text(body.get("comments"), max_length=max_comments),
        "multicolor": body.get("multicolor"),
        "priority": body.get("priority"),
        "assistance": body.get("assistance"),
        "testMode": body.get("testMode"),
    })
    email = sanitize_text(body.get("email"), max_length=MAX_EMAIL_LENGTH) or None
    idempotency_key = request.headers.get("Idempotency-Key") or None

    checkout_service = current_app.config["CHECKOUT_SERVICE"]
    confirmation = checkout_service.checkout(
        current_session(),
        options,
        email=email,
        idempotency_key=idempotency_key,
    )

    return jsonify(confirmation.to_dict())
