"""
Unit tests for CartSyncService.

The cart client is a MagicMock, so each test decides whether persistence
succeeds and what the authoritative re-fetch returns.
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import CartPersistenceError, NetworkError
from services.cart_service import CartSyncService
from services.cart_store import CartStateStore


# Fixtures

@pytest.fixture
def cart_client(make_item):
    client = MagicMock()
    client.fetch_all.return_value = [make_item("item-1", quantity=1, color="red")]
    return client


@pytest.fixture
def service(cart_client, session):
    service = CartSyncService(CartStateStore(), cart_client)
    service.refresh(session)
    return service


class TestRefresh:
    """Test authoritative re-fetch."""

    def test_populates_store(self, service, session):
        assert [item.id for item in service.store.list(session)] == ["item-1"]

    def test_failure_keeps_last_snapshot(self, service, cart_client, session):
        cart_client.fetch_all.side_effect = NetworkError("cart fetch", "timed out")

        assert service.refresh(session) is False
        assert [item.id for item in service.store.list(session)] == ["item-1"]


class TestUpdateItem:
    """Test the optimistic edit then persist flow."""

    def test_persisted_edit(self, service, cart_client, session):
        assert service.update_item(session, "item-1", quantity=3) is True

        cart_client.patch_item.assert_called_once_with(session, "item-1", quantity=3, color=None)
        assert service.store.get(session, "item-1").quantity == 3

    def test_failed_persist_rolls_back_by_refetch(self, service, cart_client, session):
        cart_client.patch_item.side_effect = CartPersistenceError("patch", 500)

        assert service.update_item(session, "item-1", quantity=7, color="blue") is False

        item = service.store.get(session, "item-1")
        assert item.quantity == 1
        assert item.color == "red"
        assert cart_client.fetch_all.call_count == 2

    def test_unknown_item_in_loaded_cart_not_sent(self, service, cart_client, session):
        assert service.update_item(session, "ghost", quantity=2) is False

        cart_client.patch_item.assert_not_called()

    def test_cart_not_in_memory_is_fetched_then_edited(self, cart_client, session):
        """First request after a restart: the edit must still reach the cart service."""
        service = CartSyncService(CartStateStore(), cart_client)

        assert service.update_item(session, "item-1", quantity=4) is True

        cart_client.fetch_all.assert_called_once_with(session)
        cart_client.patch_item.assert_called_once_with(session, "item-1", quantity=4, color=None)
        assert service.store.get(session, "item-1").quantity == 4

    def test_cart_not_in_memory_and_fetch_fails_still_persists(self, cart_client, session):
        cart_client.fetch_all.side_effect = NetworkError("cart fetch", "timed out")
        service = CartSyncService(CartStateStore(), cart_client)

        assert service.update_item(session, "item-1", color="blue") is True

        cart_client.patch_item.assert_called_once_with(session, "item-1", quantity=None, color="blue")

    def test_invalid_quantity_raises(self, service, cart_client, session):
        with pytest.raises(ValueError):
            service.update_item(session, "item-1", quantity=0)

        cart_client.patch_item.assert_not_called()


class TestRemoveItem:
    """Test optimistic removal."""

    def test_persisted_removal(self, service, cart_client, session):
        assert service.remove_item(session, "item-1") is True

        assert service.store.list(session) == ()
        cart_client.delete_item.assert_called_once_with(session, "item-1")

    def test_failed_removal_restores_item(self, service, cart_client, session):
        cart_client.delete_item.side_effect = NetworkError("cart delete", "connection refused")

        assert service.remove_item(session, "item-1") is False

        assert [item.id for item in service.store.list(session)] == ["item-1"]


class TestIdleSweep:
    """Test eviction of abandoned carts."""

    def test_refresh_sweeps_idle_sessions(self, cart_client, session, other_session, make_item):
        store = CartStateStore()
        store.replace_all(other_session, [
            make_item("theirs", session_id=other_session.session_id),
        ])
        service = CartSyncService(store, cart_client, session_ttl_seconds=0,
                                  sweep_interval_seconds=0)

        service.refresh(session)

        assert store.has_session(other_session) is False
        assert [item.id for item in store.list(session)] == ["item-1"]

    def test_sweep_is_rate_limited(self, cart_client, session, other_session, make_item):
        store = CartStateStore()
        store.replace_all(other_session, [
            make_item("theirs", session_id=other_session.session_id),
        ])
        service = CartSyncService(store, cart_client, session_ttl_seconds=0,
                                  sweep_interval_seconds=3600)

        service.refresh(session)

        assert store.has_session(other_session) is True
