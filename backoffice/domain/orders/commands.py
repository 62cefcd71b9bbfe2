from __future__ import annotations

from typing import Any, Iterable, Mapping

from backoffice.core.errors import ValidationError
from backoffice.domain.money import round_minor
from backoffice.domain.orders.selection import (
    AdditionalItem,
    ClaimItemSelection,
    ClaimSelection,
    ReturnItemSelection,
    SelectionState,
    ShippingSelection,
)


def _without_falsy(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value}


def _return_items(return_items: Mapping[str, ReturnItemSelection]) -> list[dict[str, Any]]:
    return [
        {
            "item_id": item_id,
            "quantity": selection.quantity,
            **_without_falsy({"reason_id": selection.reason_id, "note": selection.note}),
        }
        for item_id, selection in return_items.items()
    ]


def _additional_items(items: Iterable[AdditionalItem]) -> list[dict[str, Any]]:
    return [{"variant_id": item.variant_id, "quantity": item.quantity} for item in items]


def _shipping(shipping: ShippingSelection) -> dict[str, Any]:
    return {"option_id": shipping.option_id, "price": round_minor(shipping.amount())}


def _notification(payload: dict[str, Any], no_notification: bool | None, default_no_notification: bool) -> None:
    if no_notification is not None and no_notification != default_no_notification:
        payload["no_notification"] = no_notification


def build_swap_request(
    return_items: Mapping[str, ReturnItemSelection],
    additional_items: Iterable[AdditionalItem],
    shipping: ShippingSelection,
    no_notification: bool | None,
    default_no_notification: bool,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "return_items": _return_items(return_items),
        "additional_items": _additional_items(additional_items),
    }
    if shipping.selected:
        payload["return_shipping"] = _shipping(shipping)
    _notification(payload, no_notification, default_no_notification)
    return payload


def swap_request_from_selection(selection: SelectionState, default_no_notification: bool) -> dict[str, Any]:
    return build_swap_request(
        selection.return_items,
        selection.additional_items,
        selection.shipping,
        selection.no_notification,
        default_no_notification,
    )


def build_return_request(
    selection: SelectionState,
    default_no_notification: bool,
    refund_amount: Any = None,
    receive_now: bool = False,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"items": _return_items(selection.return_items)}
    if selection.shipping.selected:
        payload["return_shipping"] = _shipping(selection.shipping)
    if refund_amount is not None:
        payload["refund"] = round_minor(refund_amount)
    if receive_now:
        payload["receive_now"] = True
    _notification(payload, selection.no_notification, default_no_notification)
    return payload


def _claim_items(claim_items: Mapping[str, ClaimItemSelection]) -> list[dict[str, Any]]:
    return [
        {
            "item_id": item_id,
            "quantity": selection.quantity,
            "reason": selection.reason,
            **_without_falsy(
                {
                    "note": selection.note,
                    "images": list(selection.images),
                    "tags": list(selection.tags),
                }
            ),
        }
        for item_id, selection in claim_items.items()
    ]


def build_claim_request(selection: ClaimSelection, default_no_notification: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": selection.claim_type,
        "claim_items": _claim_items(selection.claim_items),
    }
    if selection.return_shipping.selected:
        payload["return_shipping"] = _shipping(selection.return_shipping)
    if selection.claim_type == "replace":
        payload["additional_items"] = _additional_items(selection.additional_items)
        if selection.replacement_shipping.selected:
            payload["shipping_methods"] = [_shipping(selection.replacement_shipping)]
    elif selection.refund_amount is not None:
        payload["refund_amount"] = round_minor(selection.refund_amount)
    _notification(payload, selection.no_notification, default_no_notification)
    return payload


def build_note_request(order_id: str, value: str | None) -> dict[str, Any]:
    if not value or not value.strip():
        raise ValidationError("note text must not be empty")
    return {"resource_id": order_id, "resource_type": "order", "value": value}
