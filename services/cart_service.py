"""
Cart synchronisation service.

Implements the two-phase edit contract between the in-memory CartStateStore
and the remote cart persistence service:

    Phase 1: apply the edit to the store immediately (optimistic)
    Phase 2: persist it remotely
             └── on any failure: re-fetch the authoritative cart and
                 replace_all(), discarding the unconfirmed edit

Failures in phase 2 are recovered silently: the caller gets the resynced
cart back, not an exception. Only a failed re-fetch leaves the store as it
was (stale until the next successful refresh).

A session whose cart is not in memory yet (first request after a restart,
or after idle eviction) is fetched before the edit is applied. If that fetch
fails the edit is still sent to the cart service, which owns the data.

Superseded edits (two quick quantity changes) are resolved last-request-wins
by the cart service; nothing here orders them.
"""

from __future__ import annotations

import time
from typing import Optional

from core.cart_client import CartAPIClient
from core.exceptions import CartPersistenceError, NetworkError
from models.cart import SessionContext
from .cart_store import CartStateStore
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class CartSyncService:
    """
    Couples optimistic local edits with remote persistence.

    Also sweeps idle sessions out of the store, at most once per
    sweep_interval_seconds, piggybacking on refresh().

    Attributes:
        store: The CartStateStore being kept in sync
        session_ttl_seconds: Idle time after which a session's cart is evicted
        sweep_interval_seconds: Minimum time between two idle sweeps
    """

    def __init__(
        self,
        store: CartStateStore,
        cart_client: CartAPIClient,
        session_ttl_seconds: float = 3600.0,
        sweep_interval_seconds: float = 60.0,
    ):
        self.store = store
        self._client = cart_client
        self.session_ttl_seconds = session_ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._last_sweep = time.monotonic()

    def refresh(self, session: SessionContext) -> bool:
        """
        Replace the session's cart with the authoritative copy.

        Returns:
            True if the fetch succeeded, False if the store was left untouched
        """
        self._maybe_sweep()

        try:
            items = self._client.fetch_all(session)
        except (NetworkError, CartPersistenceError) as e:
            logger.warning(f"Cart refresh failed for session {session.short_id}: {e}")
            return False

        self.store.replace_all(session, items)
        return True

    def update_item(
        self,
        session: SessionContext,
        item_id: str,
        quantity: Optional[int] = None,
        color: Optional[str] = None,
    ) -> bool:
        """
        Edit quantity and/or color.

        Returns:
            True if the edit was persisted, False if it was rolled back by a
            re-fetch (or the item is not in the session's cart)

        Raises:
            ValueError: If quantity is not an integer >= 1
        """
        if not self.store.has_session(session):
            self.refresh(session)

        edited = self.store.apply_optimistic_edit(session, item_id, quantity=quantity, color=color)
        if edited is None and self.store.has_session(session):
            logger.info(f"Edit for unknown item {item_id} in session {session.short_id}")
            return False

        try:
            self._client.patch_item(session, item_id, quantity=quantity, color=color)
        except (NetworkError, CartPersistenceError) as e:
            logger.warning(f"Persisting edit on {item_id} failed, resyncing: {e}")
            self.refresh(session)
            return False

        return True

    def remove_item(self, session: SessionContext, item_id: str) -> bool:
        """
        Remove an item.

        Returns:
            True if the removal was persisted, False if it was rolled back
        """
        self.store.remove(session, item_id)

        try:
            self._client.delete_item(session, item_id)
        except (NetworkError, CartPersistenceError) as e:
            logger.warning(f"Removing {item_id} failed, resyncing: {e}")
            self.refresh(session)
            return False

        return True

    def _maybe_sweep(self) -> None:
        now = time.monotonic()
        if now - self._last_sweep < self.sweep_interval_seconds:
            return
        self._last_sweep = now
        self.store.evict_idle(self.session_ttl_seconds, now=now)
