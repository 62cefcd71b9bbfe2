from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from backoffice.api.schemas import balance_json
from backoffice.core.errors import ModificationError, ValidationError
from backoffice.domain.orders.aggregates import Note, Notification, OrderSnapshot, parse_records
from backoffice.domain.orders.balance import compute_balance
from backoffice.domain.orders.commands import swap_request_from_selection
from backoffice.domain.orders.selection import SelectionState
from backoffice.domain.timeline import build_order_timeline, to_feed


def _load_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _load_order(path: str) -> OrderSnapshot:
    raw = _load_json(path)
    return OrderSnapshot.from_payload(raw.get("order", raw))


def _load_selection(path: str) -> SelectionState:
    try:
        return SelectionState.model_validate(_load_json(path))
    except PydanticValidationError as exc:
        raise ValidationError(f"malformed selection file {path}: {exc}") from exc


def _print(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Back office order modification tools")
    top = parser.add_subparsers(dest="command", required=True)

    timeline = top.add_parser("timeline", help="Build the merged timeline for an order snapshot")
    timeline.add_argument("order", help="Path to an order snapshot JSON file")
    timeline.add_argument("--notes", default=None, help="Path to a JSON list of notes")
    timeline.add_argument("--notifications", default=None, help="Path to a JSON list of notifications")

    balance = top.add_parser("balance", help="Compute the exchange balance for a selection")
    balance.add_argument("order", help="Path to an order snapshot JSON file")
    balance.add_argument("selection", help="Path to a selection state JSON file")

    swap = top.add_parser("swap-request", help="Print the swap request payload for a selection")
    swap.add_argument("order", help="Path to an order snapshot JSON file")
    swap.add_argument("selection", help="Path to a selection state JSON file")

    return parser


def _run_timeline(args: argparse.Namespace) -> int:
    order = _load_order(args.order)
    notes = parse_records(Note, _load_json(args.notes)) if args.notes else []
    notifications = parse_records(Notification, _load_json(args.notifications)) if args.notifications else []
    events = build_order_timeline(order, notes=notes, notifications=notifications)
    _print({"order_id": order.id, "count": len(events), "events": to_feed(events)})
    return 0


def _run_balance(args: argparse.Namespace) -> int:
    order = _load_order(args.order)
    selection = _load_selection(args.selection)
    _print(balance_json(compute_balance(order, selection), order.currency_code))
    return 0


def _run_swap_request(args: argparse.Namespace) -> int:
    order = _load_order(args.order)
    selection = _load_selection(args.selection)
    compute_balance(order, selection)
    _print(swap_request_from_selection(selection, order.no_notification))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    handlers = {
        "timeline": _run_timeline,
        "balance": _run_balance,
        "swap-request": _run_swap_request,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error("unsupported command")
        return 2
    try:
        return handler(args)
    except ModificationError as exc:
        print(json.dumps({"error": type(exc).__name__, "detail": str(exc)}))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
