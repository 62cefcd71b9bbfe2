from backoffice.domain.timeline.builder import build_order_timeline, build_timeline
from backoffice.domain.timeline.events import (
    TIMELINE_EVENT_MODELS,
    TIMELINE_KINDS,
    TimelineEvent,
    TimelineEventBase,
    parse_timeline_event,
    parse_timeline_events,
)
from backoffice.domain.timeline.render import dispatch_timeline, missing_handlers, to_feed

__all__ = [
    "TIMELINE_EVENT_MODELS",
    "TIMELINE_KINDS",
    "TimelineEvent",
    "TimelineEventBase",
    "build_order_timeline",
    "build_timeline",
    "dispatch_timeline",
    "missing_handlers",
    "parse_timeline_event",
    "parse_timeline_events",
    "to_feed",
]
