"""
HTTP client for the external order service.

Checkout ends in exactly one draft-order creation call:

    POST {ORDER_SERVICE_URL}/draft_orders.json
    {"draft_order": {"line_items": [...], "tags": "...",
                     "note_attributes": [...], "note"?: "...", "email"?: "..."}}

    -> {"draft_order": {"id", "name", "invoice_url", "total_price", "currency"}}

The request is not retried. Each OrderRequest carries an idempotency token
which is sent as the ``Idempotency-Key`` header; whether the remote service
deduplicates on it is up to the remote service.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from models.order import OrderConfirmation, OrderRequest
from .exceptions import NetworkError, OrderCreationFailedError


class OrderServiceClient:
    """
    Creates draft orders on the external order service.

    Attributes:
        base_url: Root URL of the order service API
    """

    def __init__(
        self,
        base_url: str,
        access_token: str = "",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            base_url: Order service root (ORDER_SERVICE_URL)
            access_token: Token sent as X-Shopify-Access-Token
            timeout_seconds: Request timeout
            transport: Optional httpx transport (tests pass a MockTransport)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required - set ORDER_SERVICE_URL")

        self.base_url = base_url.rstrip("/")
        self._logger = logger or logging.getLogger("core.order_client")

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if access_token:
            headers["X-Shopify-Access-Token"] = access_token

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def create_order(self, order_request: OrderRequest) -> OrderConfirmation:
        """
        Submit one order-creation request.

        Args:
            order_request: Composed line items, tags and note attributes

        Returns:
            OrderConfirmation with the remote id, name, invoice URL and totals

        Raises:
            NetworkError: If the service could not be reached (the order may
                or may not have been created)
            OrderCreationFailedError: If the service answered with an error or
                an unreadable body
        """
        self._logger.info(
            f"Creating draft order: {len(order_request.line_items)} line items, "
            f"local total {order_request.local_total:.2f}, "
            f"key {order_request.idempotency_key[:8]}"
        )

        try:
            response = self._client.post(
                "/draft_orders.json",
                json=order_request.to_payload(),
                headers={"Idempotency-Key": order_request.idempotency_key},
            )
        except httpx.TransportError as e:
            self._logger.error(f"Order service unreachable: {e}")
            raise NetworkError("order creation", str(e) or type(e).__name__)

        if response.is_error:
            detail = self._error_detail(response)
            self._logger.error(f"Order service rejected order: HTTP {response.status_code} {detail}")
            raise OrderCreationFailedError(detail, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError:
            raise OrderCreationFailedError("order service returned an unreadable response",
                                           status_code=response.status_code)

        confirmation = OrderConfirmation.from_response(body)
        if not confirmation.order_id:
            raise OrderCreationFailedError("order service response has no order id",
                                           status_code=response.status_code)

        self._logger.info(f"Draft order {confirmation.name} created ({confirmation.order_id})")
        return confirmation

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """Pull a readable message out of an error response."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or f"HTTP {response.status_code}"

        errors = body.get("errors") if isinstance(body, dict) else None
        if isinstance(errors, str):
            return errors
        if isinstance(errors, dict):
            return "; ".join(
                f"{field}: {', '.join(map(str, msgs)) if isinstance(msgs, list) else msgs}"
                for field, msgs in errors.items()
            )
        if isinstance(errors, list):
            return "; ".join(map(str, errors))
        return f"HTTP {response.status_code}"
