"""
Unit tests for the cart and order service HTTP clients.

Both clients accept an httpx transport; httpx.MockTransport stands in for
the remote services so requests can be inspected without a network.
"""

import json

import httpx
import pytest

from core.cart_client import CartAPIClient
from core.exceptions import CartPersistenceError, NetworkError, OrderCreationFailedError
from core.order_client import OrderServiceClient
from models.file import FileStatus
from models.order import LineItem, OrderRequest


CART_ROW = {
    "id": "item-1",
    "quantity": 2,
    "material": "PLA",
    "color": "Orange",
    "infill": 20,
    "unitPrice": 1250,
    "fileId": "file-1",
    "fileName": "gear.stl",
    "status": "success",
    "massGrams": 42.0,
    "dimensions": {"x": 10, "y": 10, "z": 4},
}


def _cart_client(handler):
    return CartAPIClient("http://cart.test/api", transport=httpx.MockTransport(handler))


def _order_client(handler, token="shpat_test"):
    return OrderServiceClient(
        "https://shop.test/admin/api/2024-01",
        access_token=token,
        transport=httpx.MockTransport(handler),
    )


def _order_request():
    return OrderRequest(line_items=[LineItem("3D Print - gear.stl", 3.10)], tags=["priority"])


class TestCartAPIClient:
    """Test cart service calls."""

    def test_fetch_all(self, session):
        seen = {}

        def handler(request):
            seen["cookie"] = request.headers.get("cookie")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"items": [CART_ROW]})

        items = _cart_client(handler).fetch_all(session)

        assert seen["path"] == "/api/cart"
        assert seen["cookie"] == f"fab_session_id={session.session_id}"
        assert len(items) == 1
        item = items[0]
        assert item.session_id == session.session_id
        assert item.quantity == 2
        assert item.unit_price_override == 12.50
        assert item.file.status is FileStatus.SUCCESS
        assert item.file.dimensions.z == 4

    def test_fetch_unknown_status_falls_back_to_pending(self, session):
        row = dict(CART_ROW, status="uploading", massGrams=None, dimensions=None)

        def handler(request):
            return httpx.Response(200, json={"items": [row]})

        assert _cart_client(handler).fetch_all(session)[0].file.status is FileStatus.PENDING

    def test_patch_item_body(self, session):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        _cart_client(handler).patch_item(session, "item-1", quantity=4)

        assert seen == {"method": "PATCH", "body": {"id": "item-1", "quantity": 4}}

    def test_delete_item_query(self, session):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["id"] = request.url.params.get("id")
            return httpx.Response(200, json={"success": True})

        _cart_client(handler).delete_item(session, "item-1")

        assert seen == {"method": "DELETE", "id": "item-1"}

    def test_error_status_raises_persistence_error(self, session):
        def handler(request):
            return httpx.Response(500, text="boom")

        with pytest.raises(CartPersistenceError) as exc_info:
            _cart_client(handler).patch_item(session, "item-1", color="red")

        assert exc_info.value.status_code == 500

    def test_transport_failure_raises_network_error(self, session):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            _cart_client(handler).fetch_all(session)

    def test_non_json_fetch(self, session):
        def handler(request):
            return httpx.Response(200, text="<html>")

        with pytest.raises(CartPersistenceError):
            _cart_client(handler).fetch_all(session)


class TestOrderServiceClient:
    """Test order creation calls."""

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            OrderServiceClient("")

    def test_create_order(self):
        seen = {}
        order_request = _order_request()

        def handler(request):
            seen["path"] = request.url.path
            seen["token"] = request.headers.get("x-shopify-access-token")
            seen["key"] = request.headers.get("idempotency-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"draft_order": {
                "id": 555,
                "name": "#D12",
                "invoice_url": "https://shop.test/invoices/555",
                "total_price": "8.10",
                "currency": "USD",
            }})

        confirmation = _order_client(handler).create_order(order_request)

        assert seen["path"].endswith("/draft_orders.json")
        assert seen["token"] == "shpat_test"
        assert seen["key"] == order_request.idempotency_key
        assert seen["body"]["draft_order"]["tags"] == "priority"
        assert confirmation.order_id == "555"
        assert confirmation.to_dict()["invoiceUrl"] == "https://shop.test/invoices/555"

    @pytest.mark.parametrize("errors,expected", [
        ("Invalid token", "Invalid token"),
        ({"line_items": ["is empty"]}, "line_items: is empty"),
        (["first", "second"], "first; second"),
    ])
    def test_rejection_detail(self, errors, expected):
        def handler(request):
            return httpx.Response(422, json={"errors": errors})

        with pytest.raises(OrderCreationFailedError) as exc_info:
            _order_client(handler).create_order(_order_request())

        assert exc_info.value.detail == expected
        assert exc_info.value.status_code == 422
        assert str(exc_info.value).startswith("Checkout failed: ")

    def test_response_without_id(self):
        def handler(request):
            return httpx.Response(200, json={"draft_order": {}})

        with pytest.raises(OrderCreationFailedError):
            _order_client(handler).create_order(_order_request())

    def test_unreachable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkError) as exc_info:
            _order_client(handler).create_order(_order_request())

        assert exc_info.value.operation == "order creation"
