from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from backoffice.domain.money import round_minor
from backoffice.domain.orders.aggregates import OrderSnapshot, SwapRecord
from backoffice.domain.orders.balance import BalanceSummary
from backoffice.domain.orders.returnable import index_items, resolve_returnable_items
from backoffice.domain.orders.selection import ReturnItemSelection


@dataclass
class ReconciliationResult:
    rule: str
    passed: bool
    detail: str


def find_new_swap(before: OrderSnapshot, after: OrderSnapshot) -> SwapRecord | None:
    known = {swap.id for swap in before.swaps}
    created = [swap for swap in after.swaps if swap.id not in known]
    if not created:
        return None
    return max(created, key=lambda swap: swap.created_at)


def check_difference_matches_backend(expected: BalanceSummary, swap: SwapRecord | None) -> ReconciliationResult:
    if swap is None:
        return ReconciliationResult(rule="difference_matches_backend", passed=False, detail="no new swap on refetched order")
    if swap.difference_due is None:
        return ReconciliationResult(rule="difference_matches_backend", passed=True, detail="backend reported no difference_due")

    local = round_minor(expected.net_difference)
    passed = local == swap.difference_due
    return ReconciliationResult(
        rule="difference_matches_backend",
        passed=passed,
        detail=f"local_difference={local}, backend_difference_due={swap.difference_due}",
    )


def check_order_refetched(refresh_error: str | None) -> ReconciliationResult:
    if refresh_error is None:
        return ReconciliationResult(rule="order_refetched", passed=True, detail="ok")
    return ReconciliationResult(
        rule="order_refetched",
        passed=False,
        detail=f"submission committed but the order could not be refetched: {refresh_error}",
    )


def check_remaining_within_bounds(order: OrderSnapshot) -> ReconciliationResult:
    for view in resolve_returnable_items(order):
        if not 0 <= view.remaining <= view.item.quantity:
            return ReconciliationResult(
                rule="remaining_within_bounds",
                passed=False,
                detail=f"item={view.id} remaining={view.remaining} quantity={view.item.quantity}",
            )
    return ReconciliationResult(rule="remaining_within_bounds", passed=True, detail="ok")


def check_return_quantities_committed(
    before: OrderSnapshot,
    after: OrderSnapshot,
    return_items: Mapping[str, ReturnItemSelection],
) -> ReconciliationResult:
    before_index = index_items(resolve_returnable_items(before))
    after_index = index_items(resolve_returnable_items(after))
    for item_id, selection in return_items.items():
        old = before_index.get(item_id)
        new = after_index.get(item_id)
        if old is None or new is None:
            return ReconciliationResult(
                rule="return_quantities_committed",
                passed=False,
                detail=f"item={item_id} missing from refetched order",
            )
        if old.remaining - new.remaining < selection.quantity:
            return ReconciliationResult(
                rule="return_quantities_committed",
                passed=False,
                detail=f"item={item_id} remaining {old.remaining}->{new.remaining}, selected={selection.quantity}",
            )
    return ReconciliationResult(rule="return_quantities_committed", passed=True, detail="ok")


def run_swap_reconciliation(
    before: OrderSnapshot,
    after: OrderSnapshot,
    return_items: Mapping[str, ReturnItemSelection],
    expected: BalanceSummary,
) -> list[ReconciliationResult]:
    return [
        check_difference_matches_backend(expected, find_new_swap(before, after)),
        check_remaining_within_bounds(after),
        check_return_quantities_committed(before, after, return_items),
    ]
