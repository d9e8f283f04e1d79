"""
Data models for FabStorefront.

This module contains immutable dataclasses for:
- UploadedFile: A 3D model and its asynchronously computed properties
- CartItem: A session's line reference to one UploadedFile
- OrderOptions: Order-level add-on choices
- OrderRequest / OrderConfirmation: One checkout exchange with the order service

and pydantic models for the push-delivered RealtimeEvent union.

All dataclasses are frozen: every change produces a new instance, so
snapshots handed out by the cart store are safe to read from any thread.
"""

from .file import FileStatus, Dimensions, UploadedFile
from .cart import CartItem, SessionContext
from .order import OrderOptions, LineItem, NoteAttribute, OrderRequest, OrderConfirmation
from .events import (
    RealtimeEvent,
    PendingEvent,
    ProcessingEvent,
    SuccessEvent,
    ErrorEvent,
    parse_event,
)

__all__ = [
    # File models
    "FileStatus",
    "Dimensions",
    "UploadedFile",
    # Cart models
    "CartItem",
    "SessionContext",
    # Order models
    "OrderOptions",
    "LineItem",
    "NoteAttribute",
    "OrderRequest",
    "OrderConfirmation",
    # Event models
    "RealtimeEvent",
    "PendingEvent",
    "ProcessingEvent",
    "SuccessEvent",
    "ErrorEvent",
    "parse_event",
]
