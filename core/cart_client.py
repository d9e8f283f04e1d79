"""
HTTP client for the cart persistence service.

The cart service owns the durable cart rows. This client speaks its three
operations, scoped by the session credential sent as a cookie:

    GET    /cart            -> {"items": [...]}   (cart rows joined with files)
    PATCH  /cart            <- {"id", "quantity"?, "color"?}
    DELETE /cart?id=<id>

Usage:
    client = CartAPIClient(base_url, session_cookie_name="fab_session_id")
    items = client.fetch_all(session)
    client.patch_item(session, item_id, quantity=3)
    client.delete_item(session, item_id)

Errors:
    - NetworkError for timeouts and connection failures
    - CartPersistenceError for non-2xx answers
Callers recover from both by re-fetching (see CartSyncService).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from models.cart import CartItem, SessionContext
from .exceptions import CartPersistenceError, NetworkError


class CartAPIClient:
    """
    Thin wrapper around the cart service's REST endpoints.

    One httpx.Client is shared by all request threads; httpx clients are
    safe to share and pool their connections.
    """

    def __init__(
        self,
        base_url: str,
        session_cookie_name: str = "fab_session_id",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            base_url: Root of the cart API (e.g. http://localhost:3000/api)
            session_cookie_name: Cookie that carries the session identity
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (tests pass a MockTransport)
            logger: Logger instance (creates default if not provided)
        """
        self._cookie_name = session_cookie_name
        self._logger = logger or logging.getLogger("core.cart_client")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def fetch_all(self, session: SessionContext) -> List[CartItem]:
        """
        Fetch the authoritative cart for a session.

        Returns:
            Cart items in the service's order (oldest first)
        """
        response = self._request("fetch", "GET", "/cart", session)
        try:
            body = response.json()
        except ValueError:
            raise CartPersistenceError("fetch", response.status_code, "response is not JSON")

        rows = body.get("items", []) if isinstance(body, dict) else []
        items = [CartItem.from_dict(row, session_id=session.session_id) for row in rows]
        self._logger.debug(f"Fetched {len(items)} cart items for session {session.short_id}")
        return items

    def patch_item(
        self,
        session: SessionContext,
        item_id: str,
        quantity: Optional[int] = None,
        color: Optional[str] = None,
    ) -> None:
        """Persist a quantity and/or color change."""
        payload: Dict[str, Any] = {"id": item_id}
        if quantity is not None:
            payload["quantity"] = quantity
        if color is not None:
            payload["color"] = color
        self._request("patch", "PATCH", "/cart", session, json=payload)

    def delete_item(self, session: SessionContext, item_id: str) -> None:
        """Delete one cart item."""
        self._request("delete", "DELETE", "/cart", session, params={"id": item_id})

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        session: SessionContext,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {"Cookie": f"{self._cookie_name}={session.session_id}"}
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            self._logger.warning(f"Cart {operation} failed for session {session.short_id}: {e}")
            raise NetworkError(f"cart {operation}", str(e) or type(e).__name__)

        if response.is_error:
            self._logger.warning(
                f"Cart {operation} rejected for session {session.short_id}: "
                f"HTTP {response.status_code}"
            )
            raise CartPersistenceError(operation, response.status_code, response.text)

        return response
