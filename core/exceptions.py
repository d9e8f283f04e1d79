"""
Custom exceptions for FabStorefront.

Exception Hierarchy:
    StorefrontError (base)
    ├── CheckoutError            - Checkout gate or submission failed (surfaced)
    │   ├── SessionMissingError      - No session credential on the request
    │   ├── CartEmptyError           - Nothing in the cart
    │   ├── ItemsProcessingError     - Some files are still pending/processing
    │   ├── ItemsErroredError        - Some files failed processing
    │   ├── NoValidItemsError        - No item survived the eligibility filter
    │   ├── OrderCreationFailedError - External order service rejected the order
    │   └── CheckoutUnavailableError - Checkout kill-switch is engaged
    ├── NetworkError             - Transport failure talking to a collaborator
    ├── CartPersistenceError     - Cart store rejected a fetch/patch/delete
    └── MalformedEventError      - Push payload failed validation (never surfaced)

Usage:
    Every error carries a stable ``kind`` and an ``http_status`` so routes can
    turn it into a JSON response without knowing the concrete class.
    Nothing here is fatal: each failure ends in a retry-safe state.
"""

from typing import Optional, Dict, Any


class StorefrontError(Exception):
    """
    Base exception for all FabStorefront errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    kind = "storefront_error"
    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body returned by the API."""
        return {
            "error": self.message,
            "kind": self.kind,
            "details": self.details,
        }


# =============================================================================
# CHECKOUT ERRORS - Surfaced to the caller with a user-visible retry prompt
# =============================================================================

class CheckoutError(StorefrontError):
    """
    Base class for checkout failures.

    The precondition gate raises exactly one of these, in a fixed order,
    before anything is sent to the external order service.
    """

    kind = "checkout_error"
    http_status = 400


class SessionMissingError(CheckoutError):
    """No session credential was presented with the checkout request."""

    kind = "session_missing"
    http_status = 401

    def __init__(self, message: str = "No session found"):
        super().__init__(message)


class CartEmptyError(CheckoutError):
    """The session's cart holds no items."""

    kind = "cart_empty"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class ItemsProcessingError(CheckoutError):
    """
    One or more files have not finished processing.

    Checked before ItemsErroredError, so a cart holding both kinds of item
    always reports this one.
    """

    kind = "items_processing"

    def __init__(self, item_ids: Optional[list] = None):
        message = "Some items are still processing. Please wait for all items to complete."
        details = {"item_ids": list(item_ids or [])}
        super().__init__(message, details)
        self.item_ids = list(item_ids or [])


class ItemsErroredError(CheckoutError):
    """One or more files failed processing and must be removed first."""

    kind = "items_errored"

    def __init__(self, item_ids: Optional[list] = None):
        message = "Some items have errors. Please remove them before checkout."
        details = {"item_ids": list(item_ids or [])}
        super().__init__(message, details)
        self.item_ids = list(item_ids or [])


class NoValidItemsError(CheckoutError):
    """Every item was filtered out as ineligible for pricing."""

    kind = "no_valid_items"

    def __init__(self, message: str = "No valid items in cart"):
        super().__init__(message)


class OrderCreationFailedError(CheckoutError):
    """
    The external order service rejected or failed the order.

    No local state is mutated, so the caller may safely re-attempt checkout.
    A duplicate remote order is still possible when the remote call succeeded
    but its response was lost.
    """

    kind = "order_creation_failed"
    http_status = 502

    def __init__(self, detail: str, status_code: Optional[int] = None):
        message = f"Checkout failed: {detail}"
        details: Dict[str, Any] = {"detail": detail}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.detail = detail
        self.status_code = status_code


class CheckoutUnavailableError(CheckoutError):
    """Checkout is switched off by configuration."""

    kind = "checkout_unavailable"
    http_status = 503

    def __init__(
        self,
        message: str = "Checkout is unavailable at this time. Please try again later."
    ):
        super().__init__(message)


# =============================================================================
# COLLABORATOR ERRORS - Recovered locally where possible
# =============================================================================

class NetworkError(StorefrontError):
    """
    A collaborator could not be reached.

    Raised by the HTTP clients for timeouts and connection failures.
    The operation may or may not have reached the remote side.
    """

    kind = "network_error"
    http_status = 503

    def __init__(self, operation: str, reason: str):
        message = f"Network error during {operation}: {reason}"
        details = {
            "operation": operation,
            "reason": reason,
            "resolution": "Check connectivity to the remote service and retry",
        }
        super().__init__(message, details)
        self.operation = operation
        self.reason = reason


class CartPersistenceError(StorefrontError):
    """
    The cart store answered with a non-success status.

    Callers recover by re-fetching the authoritative cart rather than
    surfacing this to the user.
    """

    kind = "cart_persistence_failed"
    http_status = 502

    def __init__(self, operation: str, status_code: int, body: str = ""):
        message = f"Cart {operation} failed with status {status_code}"
        details = {"operation": operation, "status_code": status_code}
        if body:
            details["body"] = body[:200]
        super().__init__(message, details)
        self.operation = operation
        self.status_code = status_code


class MalformedEventError(StorefrontError):
    """
    A push payload could not be parsed into a RealtimeEvent.

    Discarded at ingress by the reconciler; never surfaced to a user.
    """

    kind = "malformed_event"
    http_status = 400

    def __init__(self, reason: str, payload: Any = None):
        message = f"Malformed status event: {reason}"
        details: Dict[str, Any] = {"reason": reason}
        if payload is not None:
            details["payload"] = repr(payload)[:200]
        super().__init__(message, details)
        self.reason = reason
