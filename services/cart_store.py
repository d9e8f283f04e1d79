"""
Per-session cart state store.

The store is the one place cart items live in memory. Three kinds of writer
go through it:

    - user edits (quantity, color, removal), applied optimistically
    - status merges from the realtime event subscriber thread
    - authoritative re-fetches that replace a session's whole cart

SERIAL MUTATION PATH:
    Every mutation runs under one lock, so an event merge can never
    interleave with an edit on the same item. Mutations are dict operations
    on frozen dataclasses; none of them performs I/O while holding the lock.

CONSISTENCY:
    Optimistic edits are not transactional. There is no field-level undo:
    when persisting an edit fails, the caller re-fetches and calls
    replace_all(), which discards every unconfirmed local change.

Usage:
    store = CartStateStore()
    store.replace_all(session, client.fetch_all(session))
    store.apply_optimistic_edit(session, item_id, quantity=3)
    store.merge_status(session, file_id, event)
    items = store.list(session)
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from models.cart import CartItem, SessionContext
from models.events import RealtimeEvent
from modules import status_machine
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Fields a user may edit from the cart page
EDITABLE_FIELDS = frozenset({"quantity", "color"})


class CartStateStore:
    """
    Authoritative in-memory mapping of item id -> CartItem, per session.

    Thread Safety:
        - One RLock guards every session's cart
        - list() returns an immutable tuple of frozen items
        - Readers never see a half-applied mutation
    """

    def __init__(self):
        self._carts: Dict[str, "OrderedDict[str, CartItem]"] = {}
        self._versions: Dict[str, int] = {}
        # Monotonic time of the last user-driven access, per session
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.RLock()

    def list(self, session: SessionContext) -> Tuple[CartItem, ...]:
        """Ordered snapshot of the session's items for display."""
        with self._lock:
            cart = self._carts.get(session.session_id)
            if cart is None:
                return ()
            self._touch(session)
            return tuple(cart.values())

    def get(self, session: SessionContext, item_id: str) -> Optional[CartItem]:
        with self._lock:
            cart = self._carts.get(session.session_id)
            return cart.get(item_id) if cart else None

    def version(self, session: SessionContext) -> int:
        """
        Monotonic mutation counter for the session.

        Bumped on every change, so a poller can tell whether anything moved
        since its last read.
        """
        with self._lock:
            return self._versions.get(session.session_id, 0)

    def has_session(self, session: SessionContext) -> bool:
        with self._lock:
            return session.session_id in self._carts

    def replace_all(self, session: SessionContext, items: Iterable[CartItem]) -> None:
        """
        Replace the session's cart with an authoritative snapshot.

        Items belonging to another session are rejected so a stale fetch
        can never leak across sessions.
        """
        fresh: "OrderedDict[str, CartItem]" = OrderedDict()
        for item in items:
            if item.session_id and item.session_id != session.session_id:
                logger.warning(
                    f"Dropping item {item.id} owned by another session during replace_all"
                )
                continue
            if not item.session_id:
                item = item.with_fields(session_id=session.session_id)
            fresh[item.id] = item

        with self._lock:
            self._carts[session.session_id] = fresh
            self._bump(session)
            self._touch(session)

        logger.debug(f"Replaced cart for session {session.short_id}: {len(fresh)} items")

    def apply_optimistic_edit(
        self,
        session: SessionContext,
        item_id: str,
        **fields,
    ) -> Optional[CartItem]:
        """
        Apply a user edit immediately, assuming it will persist.

        Args:
            session: Owning session
            item_id: Item to edit
            **fields: ``quantity`` and/or ``color``

        Returns:
            The edited item, or None if the item is not in the cart

        Raises:
            ValueError: For fields other than quantity/color, or quantity < 1
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        changes = {name: value for name, value in fields.items() if value is not None}
        if "quantity" in changes:
            quantity = changes["quantity"]
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValueError(f"Quantity must be an integer >= 1, got {quantity!r}")

        with self._lock:
            cart = self._carts.get(session.session_id)
            current = cart.get(item_id) if cart else None
            if current is None:
                logger.debug(f"Optimistic edit for unknown item {item_id} ignored")
                return None
            self._touch(session)
            if not changes:
                return current

            updated = current.with_fields(**changes)
            cart[item_id] = updated
            self._bump(session)

        logger.debug(f"Optimistic edit on {item_id}: {changes}")
        return updated

    def remove(self, session: SessionContext, item_id: str) -> bool:
        """Remove an item locally. Returns whether it was present."""
        with self._lock:
            cart = self._carts.get(session.session_id)
            if not cart or item_id not in cart:
                return False
            del cart[item_id]
            self._bump(session)
            self._touch(session)

        logger.debug(f"Optimistically removed {item_id}")
        return True

    def merge_status(
        self,
        session: SessionContext,
        file_id: str,
        event: RealtimeEvent,
    ) -> Optional[CartItem]:
        """
        Patch the embedded file view of the item that references file_id.

        Quantity, color and material are left exactly as they are, so an
        in-flight optimistic edit survives a status merge.

        Returns:
            The updated item, or None if no item references the file
        """
        with self._lock:
            cart = self._carts.get(session.session_id)
            if not cart:
                return None

            target = next((item for item in cart.values() if item.file_id == file_id), None)
            if target is None:
                return None

            new_file = status_machine.apply(target.file, event)
            if new_file is None:
                return None

            updated = target.with_fields(file=new_file)
            cart[target.id] = updated
            self._bump(session)
            return updated

    def drop_session(self, session: SessionContext) -> None:
        """Forget a session's cart (session expiry)."""
        with self._lock:
            self._carts.pop(session.session_id, None)
            self._versions.pop(session.session_id, None)
            self._last_seen.pop(session.session_id, None)
        logger.debug(f"Dropped cart state for session {session.short_id}")

    def evict_idle(self, max_idle_seconds: float, now: Optional[float] = None) -> List[str]:
        """
        Drop every session not read or edited for max_idle_seconds.

        Status merges do not count as activity, so an abandoned cart whose
        files are still being processed expires like any other.

        Args:
            max_idle_seconds: Idle time after which a session is dropped
            now: time.monotonic() reading to measure against (tests pass one)

        Returns:
            IDs of the evicted sessions
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                session_id for session_id, seen in self._last_seen.items()
                if now - seen >= max_idle_seconds
            ]
            for session_id in expired:
                self._carts.pop(session_id, None)
                self._versions.pop(session_id, None)
                del self._last_seen[session_id]

        if expired:
            logger.info(f"Evicted {len(expired)} idle cart session(s)")
        return expired

    def _touch(self, session: SessionContext) -> None:
        self._last_seen[session.session_id] = time.monotonic()

    def _bump(self, session: SessionContext) -> None:
        self._versions[session.session_id] = self._versions.get(session.session_id, 0) + 1
