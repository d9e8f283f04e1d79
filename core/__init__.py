"""
Core module for FabStorefront.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- cart_client: HTTP client for the cart persistence service
- order_client: HTTP client for the external order service
"""

from .exceptions import (
    StorefrontError,
    CheckoutError,
    SessionMissingError,
    CartEmptyError,
    ItemsProcessingError,
    ItemsErroredError,
    NoValidItemsError,
    OrderCreationFailedError,
    CheckoutUnavailableError,
    NetworkError,
    CartPersistenceError,
    MalformedEventError,
)
from .cart_client import CartAPIClient
from .order_client import OrderServiceClient

__all__ = [
    "StorefrontError",
    "CheckoutError",
    "SessionMissingError",
    "CartEmptyError",
    "ItemsProcessingError",
    "ItemsErroredError",
    "NoValidItemsError",
    "OrderCreationFailedError",
    "CheckoutUnavailableError",
    "NetworkError",
    "CartPersistenceError",
    "MalformedEventError",
    "CartAPIClient",
    "OrderServiceClient",
]
