"""
Shared fixtures for FabStorefront tests.

Cart items are built through ``make_item`` so each test only spells out the
fields it cares about.
"""

import pytest

from models.cart import CartItem, SessionContext
from models.file import Dimensions, FileStatus, UploadedFile


SESSION_ID = "sess-3f9a1c2e-0001"
OTHER_SESSION_ID = "sess-77b0d4aa-0002"


def build_item(
    item_id="item-1",
    file_id=None,
    status=FileStatus.SUCCESS,
    mass_grams=100.0,
    dimensions=Dimensions(20.0, 30.0, 10.0),
    error_message=None,
    session_id=SESSION_ID,
    **fields,
):
    """Build a CartItem whose file honours the status invariant."""
    if status is not FileStatus.SUCCESS:
        mass_grams = None
        dimensions = None
    if status is FileStatus.ERROR and error_message is None:
        error_message = "File processing failed"

    file = UploadedFile(
        id=file_id or f"file-{item_id}",
        status=status,
        mass_grams=mass_grams,
        dimensions=dimensions,
        error_message=error_message,
        file_name=f"{item_id}.stl",
    )
    return CartItem(id=item_id, session_id=session_id, file=file, **fields)


@pytest.fixture
def session():
    """The session under test."""
    return SessionContext(SESSION_ID)


@pytest.fixture
def other_session():
    """A second, unrelated session."""
    return SessionContext(OTHER_SESSION_ID)


@pytest.fixture
def make_item():
    """Factory fixture for cart items."""
    return build_item
