"""
Order data models.

These models represent a checkout as it flows through the application:
cart snapshot + OrderOptions -> OrderRequest -> OrderConfirmation.

Thread Safety:
    All classes here are frozen dataclasses. An OrderRequest is built once
    per checkout attempt and never modified afterwards.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional
from urllib.parse import urlencode

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_bool(value: Any) -> bool:
    """Accept JSON booleans as well as query-string spellings."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class OrderOptions:
    """
    Order-level add-on choices.

    Pure value object with no identity. The same options round-trip through
    a quote URL so a customer can share a priced cart configuration.
    """

    comments: Optional[str] = None
    """Free-text instructions for the print shop."""

    multicolor: bool = False
    """Request multicolor printing (flat fee)."""

    priority: bool = False
    """Jump the production queue (flat fee)."""

    assistance: bool = False
    """Ask the design team to review the models (no fee)."""

    test_mode: bool = False
    """Mark the order as a test order for downstream handling."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "comments": self.comments,
            "multicolor": self.multicolor,
            "priority": self.priority,
            "assistance": self.assistance,
            "testMode": self.test_mode,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OrderOptions":
        """
        Create from a checkout request body or query-string mapping.

        Empty comments are normalised to None.
        """
        data = data or {}
        comments = data.get("comments")
        if comments is not None:
            comments = str(comments).strip() or None
        return cls(
            comments=comments,
            multicolor=_parse_bool(data.get("multicolor")),
            priority=_parse_bool(data.get("priority")),
            assistance=_parse_bool(data.get("assistance")),
            test_mode=_parse_bool(data.get("testMode", data.get("test_mode"))),
        )

    def to_query_string(self) -> str:
        """
        Encode as a quote-link query string.

        Only non-default values are written, so an untouched cart yields
        an empty string.
        """
        params: Dict[str, str] = {}
        if self.comments:
            params["comments"] = self.comments
        for name, key in (
            ("multicolor", "multicolor"),
            ("priority", "priority"),
            ("assistance", "assistance"),
            ("test_mode", "testMode"),
        ):
            if getattr(self, name):
                params[key] = "true"
        return urlencode(params)

    @classmethod
    def from_query(cls, args: Mapping[str, Any]) -> "OrderOptions":
        """Decode options from a request's query arguments."""
        return cls.from_dict(args)


@dataclass(frozen=True)
class NoteAttribute:
    """Key/value metadata echoed to the order service."""

    name: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class LineItem:
    """
    One priced unit submitted to the order service.

    Either a cart item (with print properties) or a synthetic add-on fee.
    """

    title: str
    price: float
    quantity: int = 1
    properties: List[NoteAttribute] = field(default_factory=list)
    is_addon: bool = False

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the order-service line item shape (price as a string)."""
        data: Dict[str, Any] = {
            "title": self.title,
            "price": f"{self.price:.2f}",
            "quantity": self.quantity,
            "requires_shipping": not self.is_addon,
            "taxable": True,
        }
        if self.properties:
            data["properties"] = [p.to_dict() for p in self.properties]
        return data


@dataclass(frozen=True)
class OrderRequest:
    """
    Everything sent in one order-creation call.

    The idempotency key identifies the checkout attempt. A caller retrying
    after a lost response should reuse the key of the original attempt.
    """

    line_items: List[LineItem]
    tags: List[str] = field(default_factory=list)
    note_attributes: List[NoteAttribute] = field(default_factory=list)
    note: Optional[str] = None
    email: Optional[str] = None
    idempotency_key: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def local_total(self) -> float:
        """Sum of line totals, for logging. The remote total is authoritative."""
        return round(sum(item.line_total for item in self.line_items), 2)

    def to_payload(self) -> Dict[str, Any]:
        """Build the JSON body for the order service."""
        draft: Dict[str, Any] = {
            "line_items": [item.to_dict() for item in self.line_items],
            "tags": ", ".join(self.tags),
            "note_attributes": [attr.to_dict() for attr in self.note_attributes],
        }
        if self.note:
            draft["note"] = self.note
        if self.email:
            draft["email"] = self.email
        return {"draft_order": draft}


@dataclass(frozen=True)
class OrderConfirmation:
    """
    Result of a successful order creation.

    Totals come from the order service and are not recomputed locally:
    the remote figure includes shipping.
    """

    order_id: str
    name: str
    invoice_url: str
    total_price: str
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the checkout API response body."""
        return {
            "success": True,
            "draftOrderId": self.order_id,
            "draftOrderName": self.name,
            "invoiceUrl": self.invoice_url,
            "totalPrice": self.total_price,
            "currency": self.currency,
        }

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "OrderConfirmation":
        """
        Create from the order service's response body.

        Accepts both the wrapped ``{"draft_order": {...}}`` form and a bare
        object.
        """
        draft = data.get("draft_order", data)
        return cls(
            order_id=str(draft.get("id", "")),
            name=draft.get("name", ""),
            invoice_url=draft.get("invoice_url", ""),
            total_price=str(draft.get("total_price", "0.00")),
            currency=draft.get("currency", "USD"),
        )
