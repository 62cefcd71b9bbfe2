from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from backoffice.domain.money import format_amount_with_symbol, round_minor
from backoffice.domain.orders.balance import BalanceSummary
from backoffice.domain.orders.returnable import ItemView
from backoffice.domain.orders.selection import (
    AdditionalItem,
    ClaimItemSelection,
    ClaimType,
    ReturnItemSelection,
)


class ShippingChoice(BaseModel):
    option_id: str | None = None
    custom_amount: Decimal | None = Field(default=None, description="manual price override, minor units")


class SwapBody(BaseModel):
    return_items: dict[str, ReturnItemSelection] = Field(default_factory=dict)
    additional_items: list[AdditionalItem] = Field(default_factory=list)
    shipping: ShippingChoice = Field(default_factory=ShippingChoice)
    no_notification: bool | None = None


class ReturnBody(BaseModel):
    return_items: dict[str, ReturnItemSelection] = Field(default_factory=dict)
    shipping: ShippingChoice = Field(default_factory=ShippingChoice)
    no_notification: bool | None = None
    refund_amount: Decimal | None = None
    receive_now: bool = False


class ClaimBody(BaseModel):
    claim_type: ClaimType = "refund"
    claim_items: dict[str, ClaimItemSelection] = Field(default_factory=dict)
    additional_items: list[AdditionalItem] = Field(default_factory=list)
    return_shipping: ShippingChoice = Field(default_factory=ShippingChoice)
    replacement_shipping: ShippingChoice = Field(default_factory=ShippingChoice)
    refund_amount: int | None = None
    no_notification: bool | None = None


class NoteBody(BaseModel):
    value: str


def amount_json(amount: Decimal, currency_code: str) -> dict[str, Any]:
    """``amount`` is whole minor units, rounded the way request payloads round."""
    return {
        "amount": round_minor(amount),
        "formatted": format_amount_with_symbol(amount, currency_code),
    }


def balance_json(summary: BalanceSummary, currency_code: str) -> dict[str, Any]:
    out: dict[str, Any] = {
        key: amount_json(value, currency_code) for key, value in summary.as_dict().items()
    }
    out["currency_code"] = currency_code
    if summary.net_difference > 0:
        out["settlement"] = "customer_owes"
    elif summary.net_difference < 0:
        out["settlement"] = "refund_due"
    else:
        out["settlement"] = "even"
    return out


def item_view_json(view: ItemView) -> dict[str, Any]:
    return {
        "id": view.id,
        "variant_id": view.item.variant_id,
        "title": view.item.title,
        "source": view.source,
        "quantity": view.item.quantity,
        "returned_quantity": view.item.returned_quantity,
        "remaining": view.remaining,
        "selectable": view.selectable,
        "unit_price": view.item.unit_price,
        "refundable_amount": view.item.refundable_amount,
    }
