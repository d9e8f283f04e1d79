"""
Realtime status event models.

The processing worker publishes one event kind, ``file.statusUpdate``, on a
channel shared by every session:

    {"sessionId": "...", "fileId": "...", "status": "success",
     "massGrams": 12.5, "dimensions": {"x": 20, "y": 30, "z": 10}}

Payloads are validated at ingress and parsed into a closed union keyed on
``status``. Anything that does not fit raises MalformedEventError and is
dropped by the reconciler. Events carry no sequence number or timestamp.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from core.exceptions import MalformedEventError
from .file import Dimensions, FileStatus

EVENT_NAME = "file.statusUpdate"
DEFAULT_ERROR_MESSAGE = "File processing failed"


class DimensionsPayload(BaseModel):
    """Bounding box as sent by the worker."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(ge=0)
    y: float = Field(ge=0)
    z: float = Field(ge=0)

    def to_dimensions(self) -> Dimensions:
        return Dimensions(x=self.x, y=self.y, z=self.z)


class _StatusEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    session_id: str = Field(alias="sessionId", min_length=1)
    file_id: str = Field(alias="fileId", min_length=1)

    @property
    def file_status(self) -> FileStatus:
        return FileStatus(self.status)


class PendingEvent(_StatusEvent):
    status: Literal["pending"]


class ProcessingEvent(_StatusEvent):
    status: Literal["processing"]


class SuccessEvent(_StatusEvent):
    status: Literal["success"]
    mass_grams: Optional[float] = Field(default=None, alias="massGrams", ge=0)
    dimensions: Optional[DimensionsPayload] = None


class ErrorEvent(_StatusEvent):
    status: Literal["error"]
    error_message: str = Field(default=DEFAULT_ERROR_MESSAGE, alias="errorMessage")

    @field_validator("error_message", mode="before")
    @classmethod
    def _default_blank_message(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_ERROR_MESSAGE
        return value


RealtimeEvent = Annotated[
    Union[PendingEvent, ProcessingEvent, SuccessEvent, ErrorEvent],
    Field(discriminator="status"),
]

_event_adapter: TypeAdapter = TypeAdapter(RealtimeEvent)


def parse_event(payload: Any) -> Union[PendingEvent, ProcessingEvent, SuccessEvent, ErrorEvent]:
    """
    Validate a raw payload into a RealtimeEvent.

    Args:
        payload: dict, JSON string or JSON bytes as delivered by the channel

    Returns:
        One of PendingEvent, ProcessingEvent, SuccessEvent, ErrorEvent

    Raises:
        MalformedEventError: If the payload is not JSON, lacks identities,
            has an unknown status, or carries a negative mass or dimension
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise MalformedEventError(f"invalid JSON ({e})", payload)

    if not isinstance(payload, dict):
        raise MalformedEventError("payload is not an object", payload)

    try:
        return _event_adapter.validate_python(payload)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        reason = first.get("msg", "validation failed")
        if location:
            reason = f"{location}: {reason}"
        raise MalformedEventError(reason, payload)


def build_event_payload(
    session_id: str,
    file_id: str,
    status: str,
    mass_grams: Optional[float] = None,
    dimensions: Optional[Dimensions] = None,
    error_message: Optional[str] = None,
) -> str:
    """
    Serialize a status update the way the worker publishes it.

    Mirrors the worker's wire format; handy for replaying events by hand.
    """
    payload: dict = {"sessionId": session_id, "fileId": file_id, "status": status}
    if mass_grams is not None:
        payload["massGrams"] = mass_grams
    if dimensions is not None:
        payload["dimensions"] = dimensions.to_dict()
    if error_message is not None:
        payload["errorMessage"] = error_message
    return json.dumps(payload)
