"""
Services layer for FabStorefront.

This module contains the stateful business services:
- CartStateStore: Per-session in-memory cart (single serial mutation path)
- CartSyncService: Optimistic edits with re-fetch rollback
- RealtimeEventReconciler / EventSubscriber: Status events -> cart store
- OrderComposer: Checkout gate and order payload
- CheckoutService: Checkout entry point behind the kill-switch

Thread Model:
    Main Thread (Flask request handling)
    └── EventSubscriber thread (Redis pub/sub listener)

Both threads write to the CartStateStore, which serialises them with one lock.
"""

from .cart_store import CartStateStore
from .cart_service import CartSyncService
from .reconciler import RealtimeEventReconciler, EventSubscriber, ReconcilerStats
from .order_composer import OrderComposer
from .checkout_service import CheckoutService

__all__ = [
    "CartStateStore",
    "CartSyncService",
    "RealtimeEventReconciler",
    "EventSubscriber",
    "ReconcilerStats",
    "OrderComposer",
    "CheckoutService",
]
