from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Literal

from backoffice.core.errors import DataIntegrityError
from backoffice.domain.orders.aggregates import LineItem, OrderSnapshot, ReturnRecord

ItemSource = Literal["order", "swap", "claim"]
PENDING_RETURN_STATUSES = frozenset({"requested", "requires_action"})


@dataclass(frozen=True)
class ItemView:
    item: LineItem
    source: ItemSource
    remaining: int

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def selectable(self) -> bool:
        return self.remaining > 0

    def refundable_per_unit(self) -> Decimal:
        outstanding = self.item.quantity - self.item.returned_quantity
        if self.item.refundable_amount is None:
            raise DataIntegrityError(f"line item {self.item.id} has no refundable_amount")
        if outstanding <= 0:
            raise DataIntegrityError(f"line item {self.item.id} has no outstanding quantity to refund")
        return Decimal(self.item.refundable_amount) / Decimal(outstanding)


def _check_item(item: LineItem) -> None:
    if item.quantity is None or item.returned_quantity is None:
        raise DataIntegrityError(f"line item {item.id} is missing quantity fields")
    if item.quantity < 0 or item.returned_quantity < 0:
        raise DataIntegrityError(f"line item {item.id} has a negative quantity")
    if item.returned_quantity > item.quantity:
        raise DataIntegrityError(
            f"line item {item.id} returned_quantity={item.returned_quantity} exceeds quantity={item.quantity}"
        )


def _all_returns(order: OrderSnapshot) -> list[tuple[ReturnRecord, bool]]:
    """Every return record once, flagged when it belongs to a claim."""
    seen: set[str] = set()
    out: list[tuple[ReturnRecord, bool]] = []

    def _add(record: ReturnRecord | None, from_claim: bool) -> None:
        if record is None or record.id in seen:
            return
        seen.add(record.id)
        out.append((record, from_claim or record.claim_order_id is not None))

    for claim in order.claims:
        _add(claim.return_order, True)
    for record in order.returns:
        _add(record, False)
    for swap in order.swaps:
        _add(swap.return_order, False)
    return out


def committed_quantities(order: OrderSnapshot) -> dict[str, int]:
    """Quantities tied up in prior modifications but not yet in returned_quantity."""
    committed: dict[str, int] = {}

    for record, from_claim in _all_returns(order):
        if from_claim or record.status not in PENDING_RETURN_STATUSES:
            continue
        for entry in record.items:
            committed[entry.item_id] = committed.get(entry.item_id, 0) + entry.quantity

    for claim in order.claims:
        if claim.canceled_at is not None:
            continue
        # a received claim return is already counted by the backend
        if claim.return_order is not None and claim.return_order.status == "received":
            continue
        for entry in claim.claim_items:
            committed[entry.item_id] = committed.get(entry.item_id, 0) + entry.quantity

    return committed


def _candidates(order: OrderSnapshot, for_claim: bool) -> Iterable[tuple[LineItem, ItemSource]]:
    seen: set[str] = set()
    for item in order.items:
        seen.add(item.id)
        yield item, "order"

    for claim in order.claims:
        if claim.canceled_at is not None:
            continue
        if claim.fulfillment_status == "not_fulfilled" and claim.payment_status == "na":
            continue
        for item in claim.additional_items:
            if item.shipped_quantity and item.id not in seen:
                seen.add(item.id)
                yield item, "claim"

    if for_claim:
        return

    for swap in order.swaps:
        if swap.canceled_at is not None:
            continue
        for item in swap.additional_items:
            if item.id not in seen:
                seen.add(item.id)
                yield item, "swap"


def resolve_returnable_items(order: OrderSnapshot, *, for_claim: bool = False) -> list[ItemView]:
    committed = committed_quantities(order)
    views: list[ItemView] = []
    for item, source in _candidates(order, for_claim):
        _check_item(item)
        remaining = item.quantity - item.returned_quantity - committed.get(item.id, 0)
        views.append(ItemView(item=item, source=source, remaining=max(0, remaining)))
    return views


def index_items(views: Iterable[ItemView]) -> dict[str, ItemView]:
    return {view.id: view for view in views}
