from __future__ import annotations

import copy
from typing import Any

import pytest
from fastapi.testclient import TestClient

from backoffice.core.config import get_settings
from backoffice.core.errors import CommerceAPIError
from backoffice.domain.orders.aggregates import OrderSnapshot
from backoffice.integrations.commerce import CommerceAdminClient, get_commerce_client

ORDER_PAYLOAD: dict[str, Any] = {
    "id": "order_01",
    "display_id": 1001,
    "status": "completed",
    "currency_code": "usd",
    "tax_rate": 10,
    "region_id": "reg_01",
    "total": 6600,
    "created_at": "2026-03-01T10:00:00Z",
    "canceled_at": None,
    "no_notification": False,
    "items": [
        {
            "id": "item_shirt",
            "variant_id": "var_shirt_m",
            "title": "Shirt",
            "unit_price": 1000,
            "quantity": 2,
            "returned_quantity": None,
            "shipped_quantity": 2,
            "fulfilled_quantity": 2,
            "refundable_amount": 2200,
        },
        {
            "id": "item_mug",
            "variant_id": "var_mug",
            "title": "Mug",
            "unit_price": 500,
            "quantity": 3,
            "returned_quantity": 1,
            "shipped_quantity": 3,
            "fulfilled_quantity": 3,
            "refundable_amount": 1100,
        },
        {
            "id": "item_hat",
            "variant_id": "var_hat",
            "title": "Hat",
            "unit_price": 800,
            "quantity": 1,
            "returned_quantity": 1,
            "shipped_quantity": 1,
            "fulfilled_quantity": 1,
            "refundable_amount": 0,
        },
    ],
    "fulfillments": [
        {
            "id": "ful_01",
            "created_at": "2026-03-02T09:00:00Z",
            "shipped_at": "2026-03-03T12:00:00Z",
            "items": [
                {"item_id": "item_shirt", "quantity": 2},
                {"item_id": "item_mug", "quantity": 3},
                {"item_id": "item_hat", "quantity": 1},
            ],
            "tracking_numbers": ["TRK-1"],
        }
    ],
    "returns": [
        {
            "id": "ret_01",
            "status": "received",
            "created_at": "2026-03-05T08:00:00Z",
            "updated_at": "2026-03-07T08:00:00Z",
            "received_at": "2026-03-07T08:00:00Z",
            "items": [
                {"item_id": "item_mug", "quantity": 1},
                {"item_id": "item_hat", "quantity": 1},
            ],
            "refund_amount": 1350,
        }
    ],
    "swaps": [],
    "claims": [],
    "shipping_methods": [{"id": "sm_01", "shipping_option_id": "so_std", "price": 500}],
}

NOTES_PAYLOAD: list[dict[str, Any]] = [
    {"id": "note_01", "value": "Customer called about sizing", "author_id": "usr_01", "created_at": "2026-03-04T15:30:00Z"},
]

NOTIFICATIONS_PAYLOAD: list[dict[str, Any]] = [
    {"id": "noti_01", "event_name": "order.shipment_created", "to": "jane@example.com", "created_at": "2026-03-03T12:00:00Z"},
]

SHIPPING_OPTIONS_PAYLOAD: list[dict[str, Any]] = [
    {"id": "so_return_std", "name": "Standard return", "amount": 500, "is_return": True},
    {"id": "so_return_free", "name": "Drop-off", "amount": 0, "is_return": True},
]

JACKET_PRICES: list[dict[str, Any]] = [
    {"region_id": "reg_01", "amount": 3000},
    {"currency_code": "usd", "amount": 2500},
]


class FakeCommerceAPI:
    """Stands in for CommerceAdminClient._request, keyed on method and path."""

    def __init__(self, order: dict[str, Any]):
        self.order = order
        self.posted: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: tuple[int, str] | None = None
        self.fail_refetch = False
        self.difference_due = 1600

    def __call__(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        error_cls: type[CommerceAPIError] = CommerceAPIError,
    ) -> dict[str, Any]:
        order_id = self.order["id"]
        if method == "GET" and path == f"/admin/orders/{order_id}":
            if self.fail_refetch and self.posted:
                raise error_cls("Gateway timeout", status_code=504, body="Gateway timeout")
            return {"order": copy.deepcopy(self.order)}
        if method == "GET" and path.startswith("/admin/orders/"):
            raise error_cls("Order with id missing was not found", status_code=404, body={"type": "not_found"})
        if method == "GET" and path == "/admin/notes":
            return {"notes": copy.deepcopy(NOTES_PAYLOAD)}
        if method == "GET" and path == "/admin/notifications":
            return {"notifications": copy.deepcopy(NOTIFICATIONS_PAYLOAD)}
        if method == "GET" and path == "/admin/shipping-options":
            return {"shipping_options": copy.deepcopy(SHIPPING_OPTIONS_PAYLOAD)}

        if method == "POST":
            if self.fail_with is not None:
                status_code, message = self.fail_with
                raise error_cls(message, status_code=status_code, body={"type": "invalid_data", "message": message})
            self.posted.append((path, copy.deepcopy(json_body or {})))
            if path == "/admin/notes":
                return {"note": {"id": "note_new", "created_at": "2026-03-11T09:00:00Z", **(json_body or {})}}
            if path == f"/admin/orders/{order_id}/swaps":
                self._apply_swap(json_body or {})
            elif path == f"/admin/orders/{order_id}/return":
                self._apply_return(json_body or {})
            elif path == f"/admin/orders/{order_id}/claims":
                self._apply_claim(json_body or {})
            return {"order": copy.deepcopy(self.order)}

        raise AssertionError(f"unexpected request: {method} {path}")

    def _apply_swap(self, body: dict[str, Any]) -> None:
        index = len(self.order["swaps"]) + 1
        self.order["swaps"].append(
            {
                "id": f"swap_{index:02d}",
                "created_at": "2026-03-10T10:00:00Z",
                "fulfillment_status": "not_fulfilled",
                "payment_status": "awaiting",
                "difference_due": self.difference_due,
                "cart_id": f"cart_swap_{index:02d}",
                "return_order": {
                    "id": f"ret_swap_{index:02d}",
                    "status": "requested",
                    "created_at": "2026-03-10T10:00:00Z",
                    "swap_id": f"swap_{index:02d}",
                    "items": [
                        {"item_id": entry["item_id"], "quantity": entry["quantity"]}
                        for entry in body.get("return_items", [])
                    ],
                },
                "additional_items": [
                    {
                        "id": f"item_swap_{index:02d}_{pos}",
                        "variant_id": entry["variant_id"],
                        "unit_price": 3000,
                        "quantity": entry["quantity"],
                        "refundable_amount": 3300 * entry["quantity"],
                    }
                    for pos, entry in enumerate(body.get("additional_items", []))
                ],
            }
        )

    def _apply_return(self, body: dict[str, Any]) -> None:
        self.order["returns"].append(
            {
                "id": f"ret_{len(self.order['returns']) + 1:02d}",
                "status": "requested",
                "created_at": "2026-03-10T11:00:00Z",
                "items": [{"item_id": e["item_id"], "quantity": e["quantity"]} for e in body.get("items", [])],
                "refund_amount": body.get("refund"),
            }
        )

    def _apply_claim(self, body: dict[str, Any]) -> None:
        self.order["claims"].append(
            {
                "id": f"claim_{len(self.order['claims']) + 1:02d}",
                "type": body["type"],
                "created_at": "2026-03-10T12:00:00Z",
                "fulfillment_status": "not_fulfilled",
                "payment_status": "na",
                "claim_items": [
                    {"item_id": e["item_id"], "quantity": e["quantity"], "reason": e["reason"]}
                    for e in body.get("claim_items", [])
                ],
            }
        )


@pytest.fixture()
def order_payload() -> dict[str, Any]:
    return copy.deepcopy(ORDER_PAYLOAD)


@pytest.fixture()
def order(order_payload) -> OrderSnapshot:
    return OrderSnapshot.from_payload(order_payload)


@pytest.fixture()
def commerce_api(order_payload) -> FakeCommerceAPI:
    return FakeCommerceAPI(order_payload)


@pytest.fixture()
def commerce_client(commerce_api, monkeypatch) -> CommerceAdminClient:
    client = CommerceAdminClient(get_settings())
    monkeypatch.setattr(client, "_request", commerce_api)
    return client


@pytest.fixture()
def client(commerce_client):
    from backoffice.main import app

    app.dependency_overrides[get_commerce_client] = lambda: commerce_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    settings = get_settings()
    return {
        "operator": {"X-API-Key": settings.operator_api_key},
        "support": {"X-API-Key": settings.support_api_key},
    }
