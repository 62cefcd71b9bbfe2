"""Operator selections for an exchange, claim or return.

Every edit returns a new value; nothing here is mutated in place, so a
selection can be serialised, retried after a failed submission, or compared
against an earlier one.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field

from backoffice.core.errors import ValidationError
from backoffice.domain.money import to_decimal
from backoffice.domain.orders.aggregates import ShippingOption, VariantPrice

ClaimType = Literal["refund", "replace"]
ClaimReason = Literal["missing_item", "wrong_item", "production_failure", "other"]
CLAIM_REASONS: frozenset[str] = frozenset({"missing_item", "wrong_item", "production_failure", "other"})


class SelectionModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ReturnItemSelection(SelectionModel):
    quantity: int
    reason_id: str | None = None
    note: str | None = None
    images: tuple[str, ...] = ()


class ClaimItemSelection(SelectionModel):
    quantity: int
    reason: str = "other"
    note: str | None = None
    images: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


class AdditionalItem(SelectionModel):
    variant_id: str
    title: str | None = None
    prices: tuple[VariantPrice, ...] = ()
    quantity: int = 1


class ShippingSelection(SelectionModel):
    option_id: str | None = None
    quoted_amount: int | None = None
    custom_amount: Decimal | None = None
    use_custom: bool = False

    @classmethod
    def none(cls) -> "ShippingSelection":
        return cls()

    @classmethod
    def for_option(cls, option: ShippingOption) -> "ShippingSelection":
        return cls(option_id=option.id, quoted_amount=option.amount)

    @property
    def selected(self) -> bool:
        return self.option_id is not None

    def with_custom_amount(self, amount) -> "ShippingSelection":
        if not self.selected:
            raise ValidationError("a shipping option must be chosen before overriding its price")
        value = to_decimal(amount)
        if value < 0:
            raise ValidationError(f"shipping price override must be >= 0, got {value}")
        return self.model_copy(update={"custom_amount": value, "use_custom": True})

    def without_custom_amount(self) -> "ShippingSelection":
        return self.model_copy(update={"custom_amount": None, "use_custom": False})

    def amount(self) -> Decimal:
        if not self.selected:
            return Decimal("0")
        if self.use_custom:
            if self.custom_amount is None:
                raise ValidationError("shipping price override is active but no amount was entered")
            if self.custom_amount < 0:
                raise ValidationError(f"shipping price override must be >= 0, got {self.custom_amount}")
            return self.custom_amount
        return to_decimal(self.quoted_amount or 0)


def _add_variants(current: tuple[AdditionalItem, ...], variants: Iterable[AdditionalItem]) -> tuple[AdditionalItem, ...]:
    seen = {item.variant_id for item in current}
    added: list[AdditionalItem] = []
    for variant in variants:
        if variant.variant_id in seen:
            continue
        if variant.quantity < 1:
            raise ValidationError(f"quantity for variant {variant.variant_id} must be >= 1, got {variant.quantity}")
        seen.add(variant.variant_id)
        added.append(variant)
    return current + tuple(added)


def _adjust_quantity(current: tuple[AdditionalItem, ...], variant_id: str, delta: int) -> tuple[AdditionalItem, ...]:
    updated: list[AdditionalItem] = []
    found = False
    for item in current:
        if item.variant_id == variant_id:
            found = True
            quantity = item.quantity + delta
            if quantity < 1:
                raise ValidationError(f"quantity for variant {variant_id} must stay >= 1")
            item = item.model_copy(update={"quantity": quantity})
        updated.append(item)
    if not found:
        raise ValidationError(f"variant {variant_id} is not among the additional items")
    return tuple(updated)


class SelectionState(SelectionModel):
    """Selections for an exchange or a return."""

    return_items: dict[str, ReturnItemSelection] = Field(default_factory=dict)
    additional_items: tuple[AdditionalItem, ...] = ()
    shipping: ShippingSelection = Field(default_factory=ShippingSelection)
    no_notification: bool | None = None

    def with_return_item(self, item_id: str, selection: ReturnItemSelection) -> "SelectionState":
        return_items = dict(self.return_items)
        return_items[item_id] = selection
        return self.model_copy(update={"return_items": return_items})

    def without_return_item(self, item_id: str) -> "SelectionState":
        return_items = {key: value for key, value in self.return_items.items() if key != item_id}
        return self.model_copy(update={"return_items": return_items})

    def with_variants(self, variants: Iterable[AdditionalItem]) -> "SelectionState":
        return self.model_copy(update={"additional_items": _add_variants(self.additional_items, variants)})

    def with_quantity_delta(self, variant_id: str, delta: int) -> "SelectionState":
        return self.model_copy(
            update={"additional_items": _adjust_quantity(self.additional_items, variant_id, delta)}
        )

    def without_variant(self, variant_id: str) -> "SelectionState":
        remaining = tuple(item for item in self.additional_items if item.variant_id != variant_id)
        return self.model_copy(update={"additional_items": remaining})

    def with_shipping(self, shipping: ShippingSelection) -> "SelectionState":
        return self.model_copy(update={"shipping": shipping})

    def with_notification(self, no_notification: bool | None) -> "SelectionState":
        return self.model_copy(update={"no_notification": no_notification})

    def is_exchange_ready(self) -> bool:
        return bool(self.return_items) and bool(self.additional_items)


class ClaimSelection(SelectionModel):
    claim_type: ClaimType = "refund"
    claim_items: dict[str, ClaimItemSelection] = Field(default_factory=dict)
    additional_items: tuple[AdditionalItem, ...] = ()
    return_shipping: ShippingSelection = Field(default_factory=ShippingSelection)
    replacement_shipping: ShippingSelection = Field(default_factory=ShippingSelection)
    refund_amount: int | None = None
    no_notification: bool | None = None

    def with_claim_item(self, item_id: str, selection: ClaimItemSelection) -> "ClaimSelection":
        claim_items = dict(self.claim_items)
        claim_items[item_id] = selection
        return self.model_copy(update={"claim_items": claim_items})

    def without_claim_item(self, item_id: str) -> "ClaimSelection":
        claim_items = {key: value for key, value in self.claim_items.items() if key != item_id}
        return self.model_copy(update={"claim_items": claim_items})

    def with_variants(self, variants: Iterable[AdditionalItem]) -> "ClaimSelection":
        return self.model_copy(update={"additional_items": _add_variants(self.additional_items, variants)})

    def with_quantity_delta(self, variant_id: str, delta: int) -> "ClaimSelection":
        return self.model_copy(
            update={"additional_items": _adjust_quantity(self.additional_items, variant_id, delta)}
        )

    def without_variant(self, variant_id: str) -> "ClaimSelection":
        remaining = tuple(item for item in self.additional_items if item.variant_id != variant_id)
        return self.model_copy(update={"additional_items": remaining})
