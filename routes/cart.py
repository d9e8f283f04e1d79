"""
Cart routes.

Handles:
- GET    /api/cart       - Resync from the cart service and return priced items
- PATCH  /api/cart       - Optimistic quantity/color edit
- DELETE /api/cart?id=   - Optimistic removal

Every read also makes sure the session has a reconciler attached to the
event subscriber, so status updates start flowing into the store as soon
as the cart page is opened.
"""

from flask import Blueprint, current_app, jsonify, request

from models.order import OrderOptions
from modules.pricing import price_cart
from services.reconciler import RealtimeEventReconciler
from logging_config import get_logger
from .helpers import current_session, sanitize_text


# Module logger
logger = get_logger(__name__)

cart_bp = Blueprint("cart", __name__)

MAX_COLOR_LENGTH = 64


def _no_session():
    return jsonify({"error": "No session found", "kind": "session_missing"}), 401


def _cart_response(session, persisted=None, synced=None):
    """Serialize the session's current snapshot with pricing."""
    store = current_app.config["CART_STORE"]
    items = store.list(session)
    options = OrderOptions.from_query(request.args)

    body = {
        "items": [item.to_dict() for item in items],
        "pricing": price_cart(items, options).to_dict(),
        "version": store.version(session),
    }
    if persisted is not None:
        body["persisted"] = persisted
    if synced is not None:
        body["synced"] = synced
    return jsonify(body)


def _attach_reconciler(session):
    subscriber = current_app.config.get("EVENT_SUBSCRIBER")
    if subscriber is None:
        return
    if subscriber.reconciler_for(session) is None:
        store = current_app.config["CART_STORE"]
        subscriber.register(RealtimeEventReconciler(store, session))


@cart_bp.route("/api/cart", methods=["GET"])
def get_cart():
    """
    Return the session's cart.

    The store is refreshed from the cart service first. If that fails the
    last known snapshot is served with ``synced: false``.
    """
    session = current_session()
    if session is None:
        return _no_session()

    cart_sync = current_app.config["CART_SYNC"]
    synced = cart_sync.refresh(session)
    _attach_reconciler(session)

    return _cart_response(session, synced=synced)


@cart_bp.route("/api/cart", methods=["PATCH"])
def update_cart_item():
    """
    Edit an item's quantity and/or color.

    The edit is visible immediately. If the cart service rejects it the
    cart is re-fetched and the response carries ``persisted: false``.
    """
    session = current_session()
    if session is None:
        return _no_session()

    body = request.get_json(silent=True) or {}
    item_id = str(body.get("id") or "")
    if not item_id:
        return jsonify({"error": "Item id is required", "kind": "invalid_request"}), 400

    quantity = body.get("quantity")
    if quantity is not None:
        # JSON true is a bool, which is an int subclass
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return jsonify({"error": "Quantity must be a whole number", "kind": "invalid_request"}), 400

        max_quantity = current_app.config.get("MAX_QUANTITY", 1000)
        if quantity < 1 or quantity > max_quantity:
            return jsonify({
                "error": f"Quantity must be between 1 and {max_quantity}",
                "kind": "invalid_request",
            }), 400

    color = body.get("color")
    if color is not None:
        color = sanitize_text(color, max_length=MAX_COLOR_LENGTH) or None

    cart_sync = current_app.config["CART_SYNC"]
    persisted = cart_sync.update_item(session, item_id, quantity=quantity, color=color)

    return _cart_response(session, persisted=persisted)


@cart_bp.route("/api/cart", methods=["DELETE"])
def remove_cart_item():
    """Remove an item; rolled back by re-fetch if the cart service refuses."""
    session = current_session()
    if session is None:
        return _no_session()

    item_id = request.args.get("id", "")
    if not item_id:
        return jsonify({"error": "Item id is required", "kind": "invalid_request"}), 400

    cart_sync = current_app.config["CART_SYNC"]
    persisted = cart_sync.remove_item(session, item_id)

    return _cart_response(session, persisted=persisted)
