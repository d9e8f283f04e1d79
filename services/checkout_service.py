"""
Checkout entry point.

A single externally invoked operation:

    1. kill-switch: when checkout is disabled, reject before touching anything
    2. fetch the authoritative cart (not the optimistic in-memory copy)
    3. run the OrderComposer gate and build the request
    4. submit it to the order service (one request, no retry)

Checkout is a request/response exchange with no partial commit: on any
failure nothing local has changed and the customer can try again.
"""

from __future__ import annotations

from typing import Optional

from core.cart_client import CartAPIClient
from core.exceptions import CheckoutUnavailableError, SessionMissingError
from models.cart import SessionContext
from models.order import OrderConfirmation, OrderOptions
from .order_composer import OrderComposer
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class CheckoutService:
    """
    Runs the checkout flow for one session.

    Attributes:
        enabled: Kill-switch state (False rejects every attempt)
    """

    def __init__(
        self,
        cart_client: CartAPIClient,
        composer: OrderComposer,
        enabled: bool = False,
    ):
        self._cart_client = cart_client
        self._composer = composer
        self.enabled = enabled

        logger.info(f"CheckoutService initialized (enabled: {enabled})")

    def checkout(
        self,
        session: Optional[SessionContext],
        options: OrderOptions,
        email: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> OrderConfirmation:
        """
        Check out the session's cart.

        Returns:
            OrderConfirmation from the order service

        Raises:
            CheckoutUnavailableError: Kill-switch engaged
            CheckoutError: Gate failure or order creation failure
            NetworkError / CartPersistenceError: Collaborator unavailable
        """
        if not self.enabled:
            logger.info("Checkout attempt rejected: checkout is disabled")
            raise CheckoutUnavailableError()

        if session is None or not session.session_id:
            raise SessionMissingError()

        logger.info(f"Checkout started for session {session.short_id}")

        items = self._cart_client.fetch_all(session)
        confirmation = self._composer.submit(session, items, options, email, idempotency_key)

        logger.info(
            f"Checkout complete for session {session.short_id}: "
            f"order {confirmation.name} total {confirmation.total_price} {confirmation.currency}"
        )
        return confirmation
