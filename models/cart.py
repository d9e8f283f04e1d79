"""
Cart data models.

A CartItem is one session's line reference to exactly one UploadedFile plus
the print configuration chosen for it. Items are owned by a session and
written only through the CartStateStore.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Any, Optional

from .file import UploadedFile


@dataclass(frozen=True)
class SessionContext:
    """
    Explicit session identity.

    Passed into every store and reconciler call instead of being read from
    a global, so several sessions can be simulated side by side in tests.
    """

    session_id: str

    @property
    def short_id(self) -> str:
        """First 8 characters, for log lines."""
        return self.session_id[:8]


@dataclass(frozen=True)
class CartItem:
    """
    A single cart line.

    Frozen: edits and status merges replace the item in the store with a
    modified copy, so list() snapshots stay stable for their reader.
    """

    id: str
    """Cart item identity."""

    session_id: str
    """Owning session."""

    file: UploadedFile
    """Embedded view of the referenced file's status and attributes."""

    quantity: int = 1
    """Number of copies (always >= 1)."""

    material: str = "PLA"
    """Filament material."""

    color: str = ""
    """Selected print color."""

    infill: int = 20
    """Infill percentage."""

    unit_price_override: Optional[float] = None
    """Per-unit price in dollars that replaces the mass-based price at checkout."""

    created_at: str = field(default="", compare=False)
    """ISO timestamp of when the item was added."""

    @property
    def file_id(self) -> str:
        return self.file.id

    def with_fields(self, **changes: Any) -> "CartItem":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dict served by the cart API."""
        data = {
            "id": self.id,
            "quantity": self.quantity,
            "material": self.material,
            "color": self.color,
            "infill": self.infill,
            "unitPriceOverride": self.unit_price_override,
            "createdAt": self.created_at,
        }
        data.update(self.file.to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], session_id: str = "") -> "CartItem":
        """
        Create from a cart-service row.

        The service stores ``unitPrice`` in cents; it is converted to dollars.
        """
        unit_price_cents = data.get("unitPrice")
        return cls(
            id=str(data.get("id", "")),
            session_id=data.get("sessionId", session_id),
            file=UploadedFile.from_dict(data),
            quantity=max(int(data.get("quantity") or 1), 1),
            material=data.get("material", "PLA"),
            color=data.get("color", ""),
            infill=int(data.get("infill") or 20),
            unit_price_override=(
                unit_price_cents / 100 if unit_price_cents else None
            ),
            created_at=data.get("createdAt", ""),
        )
