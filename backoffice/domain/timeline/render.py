from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, TypeVar

from backoffice.domain.timeline.events import TIMELINE_KINDS, TimelineEventBase

R = TypeVar("R")
EventHandler = Callable[[Any], R]


def missing_handlers(handlers: Mapping[str, Any]) -> list[str]:
    return [kind for kind in TIMELINE_KINDS if kind not in handlers]


def dispatch_timeline(events: Iterable[Any], handlers: Mapping[str, EventHandler[R]]) -> list[R]:
    """Route each event to the handler for its kind.

    Events whose kind has no handler are skipped without error.
    """
    out: list[R] = []
    for event in events:
        handler = handlers.get(getattr(event, "kind", None))
        if handler is None:
            continue
        out.append(handler(event))
    return out


def _base(event: TimelineEventBase) -> dict[str, Any]:
    return event.model_dump(mode="json")


def _with_quantity(key: str, field: str) -> EventHandler[dict[str, Any]]:
    def _entry(event: TimelineEventBase) -> dict[str, Any]:
        entry = _base(event)
        entry[key] = sum(item.quantity for item in getattr(event, field))
        return entry

    return _entry


def _exchange_entry(event: Any) -> dict[str, Any]:
    entry = _base(event)
    entry["awaiting_payment"] = event.exchange_cart_id is not None and event.canceled_at is None
    entry["return_quantity"] = sum(item.quantity for item in event.return_items)
    return entry


def _claim_entry(event: Any) -> dict[str, Any]:
    entry = _base(event)
    entry["claimed_quantity"] = sum(item.quantity for item in event.claim_items)
    return entry


FEED_HANDLERS: dict[str, EventHandler[dict[str, Any]]] = {
    "placed": _base,
    "canceled": _base,
    "fulfilled": _with_quantity("item_quantity", "items"),
    "shipped": _with_quantity("item_quantity", "items"),
    "note": _base,
    "notification": _base,
    "return": _with_quantity("item_quantity", "items"),
    "exchange": _exchange_entry,
    "claim": _claim_entry,
}

_missing = missing_handlers(FEED_HANDLERS)
if _missing:
    raise RuntimeError(f"timeline feed handlers missing for kinds: {_missing}")


def to_feed(events: Iterable[Any]) -> list[dict[str, Any]]:
    return dispatch_timeline(events, FEED_HANDLERS)
