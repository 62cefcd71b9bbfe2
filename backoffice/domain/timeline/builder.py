from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from backoffice.domain.orders.aggregates import (
    ClaimRecord,
    Fulfillment,
    Note,
    Notification,
    OrderSnapshot,
    ReturnRecord,
    SwapRecord,
)
from backoffice.domain.timeline.events import (
    ClaimEvent,
    ExchangeEvent,
    ItemsFulfilledEvent,
    ItemsShippedEvent,
    NoteEvent,
    NotificationEvent,
    OrderCanceledEvent,
    OrderPlacedEvent,
    ReturnEvent,
    SourceType,
    TimelineEventBase,
)


def _order_events(order: OrderSnapshot) -> Iterator[TimelineEventBase]:
    yield OrderPlacedEvent(
        id=order.id,
        order_id=order.id,
        time=order.created_at,
        amount=order.total,
        currency_code=order.currency_code,
    )
    if order.canceled_at is not None:
        yield OrderCanceledEvent(id=order.id, order_id=order.id, time=order.canceled_at)


def _fulfillment_events(
    order_id: str,
    fulfillments: Iterable[Fulfillment],
    source_type: SourceType,
    source_id: str,
    no_notification: bool | None = None,
) -> Iterator[TimelineEventBase]:
    for fulfillment in fulfillments:
        if fulfillment.canceled_at is not None:
            continue
        silent = fulfillment.no_notification if fulfillment.no_notification is not None else no_notification
        yield ItemsFulfilledEvent(
            id=fulfillment.id,
            order_id=order_id,
            time=fulfillment.created_at,
            items=fulfillment.items,
            no_notification=silent,
            source_type=source_type,
            source_id=source_id,
        )
        if fulfillment.shipped_at is not None:
            yield ItemsShippedEvent(
                id=fulfillment.id,
                order_id=order_id,
                time=fulfillment.shipped_at,
                items=fulfillment.items,
                tracking_numbers=fulfillment.tracking_numbers,
                no_notification=silent,
                source_type=source_type,
                source_id=source_id,
            )


def _note_events(order_id: str, notes: Iterable[Note]) -> Iterator[TimelineEventBase]:
    for note in notes:
        yield NoteEvent(
            id=note.id,
            order_id=order_id,
            time=note.created_at,
            value=note.value,
            author_id=note.author_id,
        )


def _notification_events(order_id: str, notifications: Iterable[Notification]) -> Iterator[TimelineEventBase]:
    for notification in notifications:
        yield NotificationEvent(
            id=notification.id,
            order_id=order_id,
            time=notification.created_at,
            to=notification.to,
            event_name=notification.event_name,
        )


def _return_events(order_id: str, returns: Iterable[ReturnRecord]) -> Iterator[TimelineEventBase]:
    for record in returns:
        common = {
            "id": record.id,
            "order_id": order_id,
            "current_status": record.status,
            "items": record.items,
            "refund_amount": record.refund_amount,
            "no_notification": record.no_notification,
            "is_claim": record.claim_order_id is not None,
            "swap_id": record.swap_id,
        }
        yield ReturnEvent(time=record.created_at, status="requested", **common)
        if record.status != "requested":
            progressed_at = record.received_at or record.updated_at or record.created_at
            yield ReturnEvent(time=progressed_at, status=record.status, **common)


def _swap_events(order_id: str, swaps: Iterable[SwapRecord]) -> Iterator[TimelineEventBase]:
    for swap in swaps:
        return_order = swap.return_order
        yield ExchangeEvent(
            id=swap.id,
            order_id=order_id,
            time=swap.created_at,
            fulfillment_status=swap.fulfillment_status,
            payment_status=swap.payment_status,
            return_id=return_order.id if return_order else None,
            return_status=return_order.status if return_order else None,
            return_items=return_order.items if return_order else (),
            new_items=swap.additional_items,
            difference_due=swap.difference_due,
            exchange_cart_id=swap.cart_id if swap.payment_status != "captured" else None,
            canceled_at=swap.canceled_at,
            no_notification=swap.no_notification,
        )
        yield from _fulfillment_events(order_id, swap.fulfillments, "exchange", swap.id, swap.no_notification)


def _claim_events(order_id: str, claims: Iterable[ClaimRecord]) -> Iterator[TimelineEventBase]:
    for claim in claims:
        yield ClaimEvent(
            id=claim.id,
            order_id=order_id,
            time=claim.created_at,
            claim_type=claim.type,
            fulfillment_status=claim.fulfillment_status,
            payment_status=claim.payment_status,
            refund_amount=claim.refund_amount,
            claim_items=claim.claim_items,
            new_items=claim.additional_items,
            return_status=claim.return_order.status if claim.return_order else None,
            canceled_at=claim.canceled_at,
            no_notification=claim.no_notification,
        )
        yield from _fulfillment_events(order_id, claim.fulfillments, "claim", claim.id, claim.no_notification)


def build_timeline(
    order: OrderSnapshot,
    notes: Sequence[Note],
    returns: Sequence[ReturnRecord],
    swaps: Sequence[SwapRecord],
    claims: Sequence[ClaimRecord],
    notifications: Sequence[Notification],
    fulfillments: Sequence[Fulfillment],
) -> list[TimelineEventBase]:
    """Merge every order sub-resource into one oldest-first event list.

    Events sharing a timestamp keep the order of the source collections as
    listed in the signature, then the order they were produced in. An event
    produced twice (the same record passed in two collections) is kept once.
    """
    sources = (
        _order_events(order),
        _note_events(order.id, notes),
        _return_events(order.id, returns),
        _swap_events(order.id, swaps),
        _claim_events(order.id, claims),
        _notification_events(order.id, notifications),
        _fulfillment_events(order.id, fulfillments, "order", order.id),
    )

    seen: set[tuple[str, ...]] = set()
    rows: list[tuple[object, int, int, TimelineEventBase]] = []
    seq = 0
    for rank, events in enumerate(sources):
        for event in events:
            if event.identity in seen:
                continue
            seen.add(event.identity)
            rows.append((event.time, rank, seq, event))
            seq += 1

    rows.sort(key=lambda row: row[:3])
    return [row[3] for row in rows]


def build_order_timeline(
    order: OrderSnapshot,
    notes: Sequence[Note] = (),
    notifications: Sequence[Notification] = (),
) -> list[TimelineEventBase]:
    return build_timeline(
        order,
        notes=notes,
        returns=order.returns,
        swaps=order.swaps,
        claims=order.claims,
        notifications=notifications,
        fulfillments=order.fulfillments,
    )
