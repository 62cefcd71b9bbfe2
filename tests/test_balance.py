from __future__ import annotations

from decimal import Decimal

import pytest

from backoffice.core.errors import DataIntegrityError, ValidationError
from backoffice.domain.money import persist_amount
from backoffice.domain.orders.aggregates import OrderSnapshot, VariantPrice
from backoffice.domain.orders.balance import (
    compute_balance,
    compute_claim_refund,
    compute_return_refund,
    resolve_variant_price,
)
from backoffice.domain.orders.selection import (
    AdditionalItem,
    ClaimItemSelection,
    ClaimSelection,
    ReturnItemSelection,
    SelectionState,
    ShippingSelection,
)

from conftest import JACKET_PRICES


def _exchange(shipping: ShippingSelection | None = None) -> SelectionState:
    return (
        SelectionState(shipping=shipping or ShippingSelection())
        .with_return_item("item_shirt", ReturnItemSelection(quantity=1))
        .with_return_item("item_mug", ReturnItemSelection(quantity=2))
        .with_variants([AdditionalItem(variant_id="var_jacket", prices=tuple(VariantPrice(**p) for p in JACKET_PRICES))])
    )


def test_region_price_wins_over_currency_price(order):
    prices = [VariantPrice(region_id="reg_01", amount=500), VariantPrice(currency_code="usd", amount=400)]
    price = resolve_variant_price(prices, order)
    assert persist_amount(order.currency_code, price) == 500

    other_region = [VariantPrice(region_id="reg_99", amount=500), VariantPrice(currency_code="USD", amount=400)]
    assert persist_amount(order.currency_code, resolve_variant_price(other_region, order)) == 400

    assert resolve_variant_price([VariantPrice(currency_code="eur", amount=400)], order) == Decimal("0")


def test_return_total_uses_refundable_per_unit():
    order = OrderSnapshot.from_payload(
        {
            "id": "order_02",
            "currency_code": "usd",
            "region_id": "reg_01",
            "created_at": "2026-03-01T10:00:00Z",
            "items": [{"id": "item_a", "unit_price": 500, "quantity": 2, "returned_quantity": 0, "refundable_amount": 1000}],
        }
    )
    selection = SelectionState().with_return_item("item_a", ReturnItemSelection(quantity=1))
    summary = compute_balance(order, selection)

    assert summary.return_total == Decimal("500")
    assert summary.additional_total == Decimal("0")
    assert summary.net_difference == Decimal("-500")


def test_exchange_balance_with_tax_and_return_shipping(order):
    shipping = ShippingSelection(option_id="so_return_std", quoted_amount=500)
    summary = compute_balance(order, _exchange(shipping))

    assert summary.shipping_amount == Decimal("500")
    assert summary.return_total == Decimal("1700")
    assert summary.additional_total == Decimal("3300")
    assert summary.net_difference == Decimal("1600")
    assert summary.net_difference == summary.additional_total - summary.return_total


def test_custom_shipping_price_replaces_quote(order):
    shipping = ShippingSelection(option_id="so_return_std", quoted_amount=500).with_custom_amount(0)
    summary = compute_balance(order, _exchange(shipping))
    assert summary.return_total == Decimal("2200")
    assert summary.net_difference == Decimal("1100")


def test_balance_is_pure(order):
    selection = _exchange(ShippingSelection(option_id="so_return_std", quoted_amount=500))
    before = (order.model_dump(), selection.model_dump())

    first = compute_balance(order, selection)
    second = compute_balance(order, selection)

    assert first == second
    assert (order.model_dump(), selection.model_dump()) == before


def test_selection_above_remaining_is_rejected(order):
    too_many = SelectionState().with_return_item("item_mug", ReturnItemSelection(quantity=3))
    with pytest.raises(ValidationError):
        compute_balance(order, too_many)

    zero = SelectionState().with_return_item("item_shirt", ReturnItemSelection(quantity=0))
    with pytest.raises(ValidationError):
        compute_balance(order, zero)

    exhausted = SelectionState().with_return_item("item_hat", ReturnItemSelection(quantity=1))
    with pytest.raises(ValidationError):
        compute_balance(order, exhausted)

    unknown = SelectionState().with_return_item("item_missing", ReturnItemSelection(quantity=1))
    with pytest.raises(ValidationError):
        compute_balance(order, unknown)


def test_duplicate_or_empty_variants_are_rejected(order):
    selection = SelectionState(
        additional_items=(AdditionalItem(variant_id="var_jacket"), AdditionalItem(variant_id="var_jacket"))
    )
    with pytest.raises(ValidationError):
        compute_balance(order, selection)

    with pytest.raises(ValidationError):
        compute_balance(order, SelectionState(additional_items=(AdditionalItem(variant_id="var_cap", quantity=0),)))


def test_missing_refundable_amount_is_a_data_integrity_error(order_payload):
    order_payload["items"][0]["refundable_amount"] = None
    order = OrderSnapshot.from_payload(order_payload)
    selection = SelectionState().with_return_item("item_shirt", ReturnItemSelection(quantity=1))
    with pytest.raises(DataIntegrityError):
        compute_balance(order, selection)


def test_return_refund_never_goes_negative(order):
    selection = SelectionState(
        shipping=ShippingSelection(option_id="so_return_std", quoted_amount=500).with_custom_amount(5000)
    ).with_return_item("item_mug", ReturnItemSelection(quantity=1))
    assert compute_return_refund(order, selection) == Decimal("0")

    selection = selection.with_shipping(ShippingSelection(option_id="so_return_std", quoted_amount=500))
    assert compute_return_refund(order, selection) == Decimal("50")


def test_claim_refund_depends_on_claim_type(order):
    refund = ClaimSelection(claim_type="refund").with_claim_item("item_shirt", ClaimItemSelection(quantity=2, reason="wrong_item"))
    assert compute_claim_refund(order, refund) == Decimal("2200")

    replace = refund.model_copy(update={"claim_type": "replace"})
    assert compute_claim_refund(order, replace) == Decimal("0")

    bad_reason = ClaimSelection().with_claim_item("item_shirt", ClaimItemSelection(quantity=1, reason="changed_mind"))
    with pytest.raises(ValidationError):
        compute_claim_refund(order, bad_reason)
