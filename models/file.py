"""
Uploaded file data models.

An UploadedFile is created when an upload is accepted and then mutated only
by status events from the processing worker (or by an authoritative re-fetch).

Invariant:
    mass_grams and dimensions are only set while status is SUCCESS; a
    success event may omit them, and such an item is not valid for checkout.
    error_message is set iff status is ERROR.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Any, Optional


class FileStatus(Enum):
    """
    Processing status of an uploaded 3D model.

    Lifecycle:
        PENDING -> PROCESSING -> (SUCCESS | ERROR)
    """

    PENDING = "pending"
    """Upload accepted, worker has not picked it up yet."""

    PROCESSING = "processing"
    """Worker is computing mass and dimensions."""

    SUCCESS = "success"
    """Mass and dimensions are known; the item can be priced."""

    ERROR = "error"
    """Worker could not process the model."""

    @property
    def is_terminal(self) -> bool:
        """Whether the worker is done with this file."""
        return self in (FileStatus.SUCCESS, FileStatus.ERROR)

    @property
    def is_in_flight(self) -> bool:
        """Whether the worker has yet to report a result."""
        return self in (FileStatus.PENDING, FileStatus.PROCESSING)


@dataclass(frozen=True)
class Dimensions:
    """Bounding box of a model in millimetres."""

    x: float
    y: float
    z: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Dimensions"]:
        """Create from an API dict; returns None when absent."""
        if not data:
            return None
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            z=float(data.get("z", 0.0)),
        )

    def display(self) -> str:
        """Format as '20.0 x 30.0 x 10.0 mm'."""
        return f"{self.x:.1f} x {self.y:.1f} x {self.z:.1f} mm"


@dataclass(frozen=True)
class UploadedFile:
    """
    View of an uploaded file as embedded in a cart item.

    This is a FROZEN dataclass. Status changes produce a new instance,
    so a snapshot handed to a route can never change underneath it.
    """

    id: str
    """File identity assigned by upload ingestion."""

    status: FileStatus = FileStatus.PENDING
    """Current processing status."""

    mass_grams: Optional[float] = None
    """Computed mass (success only)."""

    dimensions: Optional[Dimensions] = None
    """Computed bounding box (success only)."""

    error_message: Optional[str] = None
    """Worker error text (error only)."""

    file_name: str = ""
    """Original filename for display."""

    file_size: int = 0
    """Size in bytes."""

    file_url: str = ""
    """Where the uploaded model can be downloaded."""

    def with_status(
        self,
        status: FileStatus,
        mass_grams: Optional[float] = None,
        dimensions: Optional[Dimensions] = None,
        error_message: Optional[str] = None,
    ) -> "UploadedFile":
        """Return a copy with status and status-dependent fields overwritten."""
        return replace(
            self,
            status=status,
            mass_grams=mass_grams,
            dimensions=dimensions,
            error_message=error_message,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dict served by the cart API."""
        return {
            "fileId": self.id,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "fileUrl": self.file_url,
            "status": self.status.value,
            "massGrams": self.mass_grams,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
            "errorMessage": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadedFile":
        """
        Create from a cart-service row (cart item joined with its file).

        Unknown status strings fall back to PENDING so the item is shown
        as not yet ready rather than dropped.
        """
        status_str = data.get("status", "pending")
        try:
            status = FileStatus(status_str)
        except ValueError:
            status = FileStatus.PENDING

        mass = data.get("massGrams")
        return cls(
            id=str(data.get("fileId", "")),
            status=status,
            mass_grams=float(mass) if mass is not None else None,
            dimensions=Dimensions.from_dict(data.get("dimensions")),
            error_message=data.get("errorMessage"),
            file_name=data.get("fileName", ""),
            file_size=int(data.get("fileSize") or 0),
            file_url=data.get("fileUrl") or data.get("uploadthingUrl") or "",
        )
