"""File processing status machine.

States:
    pending (initial) -> processing -> success | error (terminal)

Transitions are applied last-received-wins. Events have no sequence number,
so nothing here can tell a late event from a new one: a ``pending`` event
that arrives after ``success`` regresses the file. Regressions are logged at
WARNING and then applied anyway.
"""

from __future__ import annotations

import logging
from typing import Optional

from models.events import ErrorEvent, RealtimeEvent, SuccessEvent
from models.file import FileStatus, UploadedFile

logger = logging.getLogger(__name__)


def is_regression(before: FileStatus, after: FileStatus) -> bool:
    """True when a terminal status would move back to pending/processing."""
    return before.is_terminal and after.is_in_flight


def apply(current: Optional[UploadedFile], event: RealtimeEvent) -> Optional[UploadedFile]:
    """
    Apply one status event to a file view.

    Overwrites the status and its dependent fields:
        success    -> mass + dimensions from the event, error message cleared;
                      a field the event omits keeps its current value
        error      -> error message set, mass + dimensions cleared
        pending/processing -> all three cleared

    Args:
        current: The file as currently known, or None for an unknown file
        event: A validated RealtimeEvent

    Returns:
        The updated file, or None when the file is unknown. Never raises.
    """
    if current is None:
        logger.info(f"Ignoring {event.status} event for unknown file {event.file_id}")
        return None

    new_status = event.file_status

    if is_regression(current.status, new_status):
        logger.warning(
            f"File {current.id} regressed from {current.status.value} to "
            f"{new_status.value}; applying (events are unordered)"
        )

    if isinstance(event, SuccessEvent):
        return current.with_status(
            FileStatus.SUCCESS,
            mass_grams=event.mass_grams if event.mass_grams is not None else current.mass_grams,
            dimensions=(
                event.dimensions.to_dimensions() if event.dimensions is not None
                else current.dimensions
            ),
        )

    if isinstance(event, ErrorEvent):
        return current.with_status(FileStatus.ERROR, error_message=event.error_message)

    return current.with_status(new_status)
