from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping

from backoffice.core.errors import ValidationError
from backoffice.domain.money import apply_tax, normalize_amount
from backoffice.domain.orders.aggregates import OrderSnapshot, VariantPrice
from backoffice.domain.orders.returnable import ItemView, index_items, resolve_returnable_items
from backoffice.domain.orders.selection import (
    CLAIM_REASONS,
    AdditionalItem,
    ClaimItemSelection,
    ClaimSelection,
    ReturnItemSelection,
    SelectionState,
)


@dataclass(frozen=True)
class BalanceSummary:
    """Amounts in minor currency units.

    ``net_difference`` > 0 means the customer owes the difference, < 0 means a
    refund is due.
    """

    return_total: Decimal
    additional_total: Decimal
    shipping_amount: Decimal
    net_difference: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "return_total": self.return_total,
            "additional_total": self.additional_total,
            "shipping_amount": self.shipping_amount,
            "net_difference": self.net_difference,
        }


def resolve_variant_price(prices: Iterable[VariantPrice], order: OrderSnapshot) -> Decimal:
    """Unit price in major units; a region match wins over a currency match.

    A variant with no matching price resolves to 0 rather than failing.
    """
    price_list = list(prices)
    match = next((p for p in price_list if p.region_id is not None and p.region_id == order.region_id), None)
    if match is None:
        match = next(
            (
                p
                for p in price_list
                if p.currency_code is not None and p.currency_code.lower() == order.currency_code.lower()
            ),
            None,
        )
    if match is None:
        return Decimal("0")
    return normalize_amount(order.currency_code, match.amount)


def _check_quantity(view: ItemView | None, item_id: str, quantity: int) -> ItemView:
    if view is None:
        raise ValidationError(f"item {item_id} is not returnable on this order")
    if not view.selectable:
        raise ValidationError(f"item {item_id} has no remaining returnable quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"quantity for item {item_id} must be an integer")
    if quantity < 1 or quantity > view.remaining:
        raise ValidationError(
            f"quantity for item {item_id} must be between 1 and {view.remaining}, got {quantity}"
        )
    return view


def validate_return_selection(
    views: Iterable[ItemView],
    return_items: Mapping[str, ReturnItemSelection],
) -> list[tuple[ItemView, ReturnItemSelection]]:
    index = index_items(views)
    return [
        (_check_quantity(index.get(item_id), item_id, selection.quantity), selection)
        for item_id, selection in return_items.items()
    ]


def validate_claim_selection(
    views: Iterable[ItemView],
    claim_items: Mapping[str, ClaimItemSelection],
) -> list[tuple[ItemView, ClaimItemSelection]]:
    index = index_items(views)
    checked: list[tuple[ItemView, ClaimItemSelection]] = []
    for item_id, selection in claim_items.items():
        view = _check_quantity(index.get(item_id), item_id, selection.quantity)
        if selection.reason not in CLAIM_REASONS:
            raise ValidationError(f"unknown claim reason for item {item_id}: {selection.reason}")
        checked.append((view, selection))
    return checked


def validate_additional_items(items: Iterable[AdditionalItem]) -> None:
    seen: set[str] = set()
    for item in items:
        if item.variant_id in seen:
            raise ValidationError(f"variant {item.variant_id} is listed more than once")
        seen.add(item.variant_id)
        if item.quantity < 1:
            raise ValidationError(f"quantity for variant {item.variant_id} must be >= 1")


def additional_items_total(order: OrderSnapshot, items: Iterable[AdditionalItem]) -> Decimal:
    total = Decimal("0")
    for item in items:
        unit_price = resolve_variant_price(item.prices, order)
        total += apply_tax(unit_price * 100 * item.quantity, order.tax_rate)
    return total


def refundable_total(selected: Iterable[tuple[ItemView, ReturnItemSelection | ClaimItemSelection]]) -> Decimal:
    total = Decimal("0")
    for view, selection in selected:
        total += view.refundable_per_unit() * selection.quantity
    return total


def compute_balance(order: OrderSnapshot, selection: SelectionState) -> BalanceSummary:
    views = resolve_returnable_items(order)
    selected = validate_return_selection(views, selection.return_items)
    validate_additional_items(selection.additional_items)

    shipping_amount = selection.shipping.amount()
    return_total = refundable_total(selected) - shipping_amount
    additional_total = additional_items_total(order, selection.additional_items)
    return BalanceSummary(
        return_total=return_total,
        additional_total=additional_total,
        shipping_amount=shipping_amount,
        net_difference=additional_total - return_total,
    )


def compute_return_refund(order: OrderSnapshot, selection: SelectionState) -> Decimal:
    """Suggested refund for a plain return: refundable value less return shipping."""
    views = resolve_returnable_items(order)
    selected = validate_return_selection(views, selection.return_items)
    refund = refundable_total(selected) - selection.shipping.amount()
    return max(Decimal("0"), refund)


def compute_claim_refund(order: OrderSnapshot, selection: ClaimSelection) -> Decimal:
    views = resolve_returnable_items(order, for_claim=True)
    selected = validate_claim_selection(views, selection.claim_items)
    if selection.claim_type != "refund":
        return Decimal("0")
    return refundable_total(selected)
