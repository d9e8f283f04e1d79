"""
Unit tests for CartStateStore.

Covers the three writers (optimistic edits, status merges, authoritative
replacement) and the guarantee that they never touch each other's fields.
"""

import threading
import time

import pytest

from models.events import parse_event
from models.file import FileStatus
from services.cart_store import CartStateStore


# Fixtures

@pytest.fixture
def store():
    return CartStateStore()


@pytest.fixture
def loaded_store(store, session, make_item):
    """Store holding one processing item and one finished item."""
    store.replace_all(session, [
        make_item("item-1", file_id="file-1", status=FileStatus.PROCESSING, color="red"),
        make_item("item-2", file_id="file-2", mass_grams=40.0),
    ])
    return store


def _success(session, file_id, mass=25.0):
    return parse_event({
        "sessionId": session.session_id,
        "fileId": file_id,
        "status": "success",
        "massGrams": mass,
        "dimensions": {"x": 5, "y": 5, "z": 5},
    })


class TestReplaceAll:
    """Test authoritative replacement."""

    def test_list_preserves_order(self, loaded_store, session):
        assert [item.id for item in loaded_store.list(session)] == ["item-1", "item-2"]

    def test_replaces_previous_contents(self, loaded_store, session, make_item):
        loaded_store.replace_all(session, [make_item("item-9")])

        assert [item.id for item in loaded_store.list(session)] == ["item-9"]

    def test_drops_items_of_other_sessions(self, store, session, other_session, make_item):
        store.replace_all(session, [
            make_item("mine"),
            make_item("theirs", session_id=other_session.session_id),
        ])

        assert [item.id for item in store.list(session)] == ["mine"]

    def test_fills_missing_session_id(self, store, session, make_item):
        store.replace_all(session, [make_item("x", session_id="")])

        assert store.get(session, "x").session_id == session.session_id

    def test_sessions_are_isolated(self, loaded_store, other_session):
        assert loaded_store.list(other_session) == ()
        assert loaded_store.has_session(other_session) is False


class TestOptimisticEdit:
    """Test user edits."""

    def test_quantity_edit_visible_immediately(self, loaded_store, session):
        edited = loaded_store.apply_optimistic_edit(session, "item-2", quantity=4)

        assert edited.quantity == 4
        assert loaded_store.get(session, "item-2").quantity == 4

    def test_color_edit(self, loaded_store, session):
        loaded_store.apply_optimistic_edit(session, "item-1", color="blue")

        assert loaded_store.get(session, "item-1").color == "blue"

    def test_unknown_item_returns_none(self, loaded_store, session):
        version = loaded_store.version(session)

        assert loaded_store.apply_optimistic_edit(session, "nope", quantity=2) is None
        assert loaded_store.version(session) == version

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, "2", True])
    def test_rejects_invalid_quantity(self, loaded_store, session, quantity):
        with pytest.raises(ValueError):
            loaded_store.apply_optimistic_edit(session, "item-1", quantity=quantity)

        assert loaded_store.get(session, "item-1").quantity == 1

    def test_rejects_non_editable_fields(self, loaded_store, session):
        with pytest.raises(ValueError, match="material"):
            loaded_store.apply_optimistic_edit(session, "item-1", material="PETG")

    def test_noop_edit_does_not_bump_version(self, loaded_store, session):
        version = loaded_store.version(session)

        loaded_store.apply_optimistic_edit(session, "item-1", quantity=None, color=None)

        assert loaded_store.version(session) == version

    def test_remove(self, loaded_store, session):
        assert loaded_store.remove(session, "item-1") is True
        assert loaded_store.remove(session, "item-1") is False
        assert [item.id for item in loaded_store.list(session)] == ["item-2"]


class TestMergeStatus:
    """Test status merges from the event stream."""

    def test_updates_embedded_file(self, loaded_store, session):
        updated = loaded_store.merge_status(session, "file-1", _success(session, "file-1"))

        assert updated.file.status is FileStatus.SUCCESS
        assert loaded_store.get(session, "item-1").file.mass_grams == 25.0

    def test_leaves_user_fields_alone(self, loaded_store, session):
        loaded_store.apply_optimistic_edit(session, "item-1", quantity=5, color="green")

        loaded_store.merge_status(session, "file-1", _success(session, "file-1"))

        item = loaded_store.get(session, "item-1")
        assert item.quantity == 5
        assert item.color == "green"

    def test_unknown_file_leaves_store_unchanged(self, loaded_store, session):
        before = loaded_store.list(session)
        version = loaded_store.version(session)

        result = loaded_store.merge_status(session, "file-404", _success(session, "file-404"))

        assert result is None
        assert loaded_store.list(session) == before
        assert loaded_store.version(session) == version

    def test_unknown_session(self, store, session):
        assert store.merge_status(session, "file-1", _success(session, "file-1")) is None


class TestVersioning:
    """Test the per-session mutation counter."""

    def test_starts_at_zero(self, store, session):
        assert store.version(session) == 0

    def test_every_mutation_bumps(self, loaded_store, session):
        v1 = loaded_store.version(session)
        loaded_store.apply_optimistic_edit(session, "item-1", quantity=2)
        v2 = loaded_store.version(session)
        loaded_store.merge_status(session, "file-1", _success(session, "file-1"))
        v3 = loaded_store.version(session)
        loaded_store.remove(session, "item-2")
        v4 = loaded_store.version(session)

        assert v1 < v2 < v3 < v4

    def test_drop_session_forgets_everything(self, loaded_store, session):
        loaded_store.drop_session(session)

        assert loaded_store.list(session) == ()
        assert loaded_store.version(session) == 0


class TestIdleEviction:
    """Test expiry of abandoned sessions."""

    def test_idle_session_is_evicted(self, loaded_store, session):
        later = time.monotonic() + 120

        assert loaded_store.evict_idle(60, now=later) == [session.session_id]
        assert loaded_store.has_session(session) is False
        assert loaded_store.version(session) == 0

    def test_active_session_survives(self, loaded_store, session, other_session, make_item):
        loaded_store.replace_all(other_session, [
            make_item("theirs", session_id=other_session.session_id),
        ])

        assert loaded_store.evict_idle(60) == []
        assert loaded_store.has_session(session) is True
        assert loaded_store.has_session(other_session) is True

    def test_status_merge_is_not_activity(self, loaded_store, session):
        loaded_store.merge_status(session, "file-1", _success(session, "file-1"))
        later = time.monotonic() + 120

        assert loaded_store.evict_idle(60, now=later) == [session.session_id]

    def test_read_keeps_session_alive(self, loaded_store, session):
        before_read = time.monotonic()
        loaded_store.list(session)

        assert loaded_store.evict_idle(60, now=before_read + 59) == []


class TestConcurrency:
    """Test merges and edits running on different threads."""

    def test_concurrent_edits_and_merges(self, store, session, make_item):
        store.replace_all(session, [
            make_item(f"item-{i}", file_id=f"file-{i}", status=FileStatus.PROCESSING)
            for i in range(20)
        ])

        def merge_all():
            for i in range(20):
                store.merge_status(session, f"file-{i}", _success(session, f"file-{i}"))

        def edit_all():
            for i in range(20):
                store.apply_optimistic_edit(session, f"item-{i}", quantity=3)

        threads = [threading.Thread(target=merge_all), threading.Thread(target=edit_all)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for item in store.list(session):
            assert item.quantity == 3
            assert item.file.status is FileStatus.SUCCESS
