from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from backoffice.core.errors import DataIntegrityError


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SnapshotModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class VariantPrice(SnapshotModel):
    amount: int = Field(description="int minor units")
    region_id: str | None = None
    currency_code: str | None = None


class LineItem(SnapshotModel):
    id: str
    variant_id: str | None = None
    title: str | None = None
    unit_price: int = Field(description="int minor units")
    quantity: int = Field(ge=0)
    returned_quantity: int = Field(default=0, ge=0)
    shipped_quantity: int = Field(default=0, ge=0)
    fulfilled_quantity: int = Field(default=0, ge=0)
    refundable_amount: int | None = Field(default=None, ge=0, description="int minor units")

    @field_validator("returned_quantity", "shipped_quantity", "fulfilled_quantity", mode="before")
    @classmethod
    def _null_quantity(cls, value: Any) -> Any:
        return 0 if value is None else value


class ItemQuantity(SnapshotModel):
    item_id: str
    quantity: int = Field(ge=0)


class Fulfillment(SnapshotModel):
    id: str
    created_at: datetime
    shipped_at: datetime | None = None
    canceled_at: datetime | None = None
    items: tuple[ItemQuantity, ...] = ()
    tracking_numbers: tuple[str, ...] = ()
    no_notification: bool | None = None

    @field_validator("created_at", "shipped_at", "canceled_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)


class ReturnItem(SnapshotModel):
    item_id: str
    quantity: int = Field(ge=0)
    received_quantity: int | None = None
    reason_id: str | None = None
    note: str | None = None


class ReturnRecord(SnapshotModel):
    id: str
    status: str = "requested"
    created_at: datetime
    updated_at: datetime | None = None
    received_at: datetime | None = None
    items: tuple[ReturnItem, ...] = ()
    refund_amount: int | None = None
    swap_id: str | None = None
    claim_order_id: str | None = None
    no_notification: bool | None = None

    @field_validator("created_at", "updated_at", "received_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)


class ClaimItem(SnapshotModel):
    item_id: str
    quantity: int = Field(ge=0)
    reason: str = "other"
    note: str | None = None
    images: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    @field_validator("images", "tags", mode="before")
    @classmethod
    def _flatten(cls, value: Any) -> Any:
        # the API returns image/tag objects; keep only their url/value
        if not isinstance(value, list):
            return value
        flat = []
        for entry in value:
            if isinstance(entry, dict):
                flat.append(entry.get("url") or entry.get("value"))
            else:
                flat.append(entry)
        return [entry for entry in flat if entry]


class SwapRecord(SnapshotModel):
    id: str
    created_at: datetime
    canceled_at: datetime | None = None
    fulfillment_status: str = "not_fulfilled"
    payment_status: str = "not_paid"
    difference_due: int | None = None
    cart_id: str | None = None
    no_notification: bool | None = None
    return_order: ReturnRecord | None = None
    additional_items: tuple[LineItem, ...] = ()
    fulfillments: tuple[Fulfillment, ...] = ()

    @field_validator("created_at", "canceled_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)


class ClaimRecord(SnapshotModel):
    id: str
    type: str = "refund"
    created_at: datetime
    canceled_at: datetime | None = None
    fulfillment_status: str = "not_fulfilled"
    payment_status: str = "na"
    refund_amount: int | None = None
    no_notification: bool | None = None
    return_order: ReturnRecord | None = None
    claim_items: tuple[ClaimItem, ...] = ()
    additional_items: tuple[LineItem, ...] = ()
    fulfillments: tuple[Fulfillment, ...] = ()

    @field_validator("created_at", "canceled_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)


class ShippingMethod(SnapshotModel):
    id: str
    shipping_option_id: str | None = None
    price: int = 0


class ShippingOption(SnapshotModel):
    id: str
    name: str
    amount: int | None = None
    is_return: bool = False


class Note(SnapshotModel):
    id: str
    value: str
    created_at: datetime
    author_id: str | None = None

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _to_utc(value)


class Notification(SnapshotModel):
    id: str
    event_name: str
    to: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _to_utc(value)


class OrderSnapshot(SnapshotModel):
    id: str
    display_id: int | None = None
    status: str = "pending"
    currency_code: str
    tax_rate: Decimal = Decimal("0")
    region_id: str
    total: int | None = None
    created_at: datetime
    canceled_at: datetime | None = None
    no_notification: bool = False
    items: tuple[LineItem, ...] = ()
    returns: tuple[ReturnRecord, ...] = ()
    swaps: tuple[SwapRecord, ...] = ()
    claims: tuple[ClaimRecord, ...] = ()
    fulfillments: tuple[Fulfillment, ...] = ()
    shipping_methods: tuple[ShippingMethod, ...] = ()

    @field_validator("tax_rate", mode="before")
    @classmethod
    def _null_tax(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("no_notification", mode="before")
    @classmethod
    def _null_flag(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("created_at", "canceled_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "OrderSnapshot":
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            raise DataIntegrityError(f"malformed order snapshot: {exc}") from exc


def parse_records(model: type[SnapshotModel], rows: list[dict[str, Any]]) -> list[Any]:
    try:
        return [model.model_validate(row) for row in rows]
    except PydanticValidationError as exc:
        raise DataIntegrityError(f"malformed {model.__name__} record: {exc}") from exc
