from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from backoffice.domain.orders.aggregates import ClaimItem, ItemQuantity, LineItem, ReturnItem

SourceType = Literal["order", "exchange", "claim"]


class TimelineEventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    order_id: str
    time: datetime

    @property
    def identity(self) -> tuple[str, ...]:
        return (self.kind, self.id)  # type: ignore[attr-defined]


class OrderPlacedEvent(TimelineEventBase):
    kind: Literal["placed"] = "placed"
    amount: int | None = None
    currency_code: str


class OrderCanceledEvent(TimelineEventBase):
    kind: Literal["canceled"] = "canceled"


class ItemsFulfilledEvent(TimelineEventBase):
    kind: Literal["fulfilled"] = "fulfilled"
    items: tuple[ItemQuantity, ...] = ()
    no_notification: bool | None = None
    source_type: SourceType = "order"
    source_id: str


class ItemsShippedEvent(TimelineEventBase):
    kind: Literal["shipped"] = "shipped"
    items: tuple[ItemQuantity, ...] = ()
    tracking_numbers: tuple[str, ...] = ()
    no_notification: bool | None = None
    source_type: SourceType = "order"
    source_id: str


class NoteEvent(TimelineEventBase):
    kind: Literal["note"] = "note"
    value: str
    author_id: str | None = None


class NotificationEvent(TimelineEventBase):
    kind: Literal["notification"] = "notification"
    to: str
    event_name: str


class ReturnEvent(TimelineEventBase):
    kind: Literal["return"] = "return"
    status: str
    current_status: str
    items: tuple[ReturnItem, ...] = ()
    refund_amount: int | None = None
    no_notification: bool | None = None
    is_claim: bool = False
    swap_id: str | None = None

    @property
    def identity(self) -> tuple[str, ...]:
        return (self.kind, self.id, self.status)


class ExchangeEvent(TimelineEventBase):
    kind: Literal["exchange"] = "exchange"
    fulfillment_status: str
    payment_status: str
    return_id: str | None = None
    return_status: str | None = None
    return_items: tuple[ReturnItem, ...] = ()
    new_items: tuple[LineItem, ...] = ()
    difference_due: int | None = None
    exchange_cart_id: str | None = None
    canceled_at: datetime | None = None
    no_notification: bool | None = None


class ClaimEvent(TimelineEventBase):
    kind: Literal["claim"] = "claim"
    claim_type: str
    fulfillment_status: str
    payment_status: str
    refund_amount: int | None = None
    claim_items: tuple[ClaimItem, ...] = ()
    new_items: tuple[LineItem, ...] = ()
    return_status: str | None = None
    canceled_at: datetime | None = None
    no_notification: bool | None = None


TimelineEvent = Annotated[
    Union[
        OrderPlacedEvent,
        OrderCanceledEvent,
        ItemsFulfilledEvent,
        ItemsShippedEvent,
        NoteEvent,
        NotificationEvent,
        ReturnEvent,
        ExchangeEvent,
        ClaimEvent,
    ],
    Field(discriminator="kind"),
]

TIMELINE_EVENT_MODELS: dict[str, type[TimelineEventBase]] = {
    "placed": OrderPlacedEvent,
    "fulfilled": ItemsFulfilledEvent,
    "shipped": ItemsShippedEvent,
    "canceled": OrderCanceledEvent,
    "note": NoteEvent,
    "return": ReturnEvent,
    "exchange": ExchangeEvent,
    "claim": ClaimEvent,
    "notification": NotificationEvent,
}
TIMELINE_KINDS: tuple[str, ...] = tuple(TIMELINE_EVENT_MODELS)

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(TimelineEvent)


def parse_timeline_event(raw: dict[str, Any]) -> TimelineEventBase | None:
    """Parse a serialised event; kinds this build does not know are dropped."""
    if raw.get("kind") not in TIMELINE_EVENT_MODELS:
        return None
    return _EVENT_ADAPTER.validate_python(raw)


def parse_timeline_events(rows: list[dict[str, Any]]) -> list[TimelineEventBase]:
    events: list[TimelineEventBase] = []
    for row in rows:
        event = parse_timeline_event(row)
        if event is not None:
            events.append(event)
    return events
