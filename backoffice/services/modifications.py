"""Operator workflows for exchanges, claims and returns on one order.

A workflow owns the operator's in-progress selection for a single order.
A rejected submission leaves both the snapshot and the selection untouched so
the operator can edit and retry. Once the backend accepts a submission the
selection is cleared before the order is refetched; a failed refetch is
reported on the result and never re-raised, since retrying would submit the
same modification twice.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

from backoffice.core.canonical import request_fingerprint
from backoffice.core.errors import CommerceAPIError, DataIntegrityError, ValidationError
from backoffice.domain.orders.aggregates import Note, OrderSnapshot, ShippingOption
from backoffice.domain.orders.balance import (
    BalanceSummary,
    compute_balance,
    compute_claim_refund,
    compute_return_refund,
    validate_additional_items,
)
from backoffice.domain.orders.commands import (
    build_claim_request,
    build_note_request,
    build_return_request,
    swap_request_from_selection,
)
from backoffice.domain.orders.returnable import ItemView, resolve_returnable_items
from backoffice.domain.orders.selection import ClaimSelection, SelectionState, ShippingSelection
from backoffice.integrations.commerce import CommerceBackend
from backoffice.reconciliation.rules import (
    ReconciliationResult,
    check_order_refetched,
    run_swap_reconciliation,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    kind: str
    order: OrderSnapshot
    request: dict[str, Any]
    request_hash: str
    balance: BalanceSummary | None = None
    refund_amount: Decimal | None = None
    reconciliation: list[ReconciliationResult] = field(default_factory=list)
    refresh_error: str | None = None

    @property
    def refreshed(self) -> bool:
        return self.refresh_error is None


class _ModificationWorkflow:
    kind = "modification"

    def __init__(self, order: OrderSnapshot, backend: CommerceBackend):
        self.order = order
        self.backend = backend
        self._lock = threading.Lock()
        self._submitting = False
        self.stale = False

    @property
    def submitting(self) -> bool:
        return self._submitting

    def return_shipping_options(self) -> list[ShippingOption]:
        return self.backend.list_shipping_options(self.order.region_id, is_return=True)

    def _begin(self) -> None:
        with self._lock:
            if self._submitting:
                raise ValidationError(f"a {self.kind} submission is already in progress for order {self.order.id}")
            if self.stale:
                raise ValidationError(
                    f"order {self.order.id} changed after the last {self.kind}; refresh it before submitting again"
                )
            self._submitting = True

    def _end(self) -> None:
        with self._lock:
            self._submitting = False

    def _send(self, payload: dict[str, Any], send: Callable[[str, dict[str, Any]], Any]) -> str:
        request_hash = request_fingerprint(self.kind, self.order.id, payload)
        logger.info("submitting %s for order=%s request_hash=%s", self.kind, self.order.id, request_hash)
        send(self.order.id, payload)
        return request_hash

    def _refetch(self) -> tuple[OrderSnapshot | None, str | None]:
        try:
            return self.backend.get_order(self.order.id), None
        except (CommerceAPIError, DataIntegrityError) as exc:
            logger.warning(
                "%s committed for order=%s but the refetch failed: %s", self.kind, self.order.id, exc
            )
            self.stale = True
            return None, str(exc)

    def refresh(self) -> OrderSnapshot:
        """Reload the order; errors propagate to the caller."""
        self.order = self.backend.get_order(self.order.id)
        self.stale = False
        return self.order


class ExchangeWorkflow(_ModificationWorkflow):
    kind = "swap"

    def __init__(self, order: OrderSnapshot, backend: CommerceBackend, selection: SelectionState | None = None):
        super().__init__(order, backend)
        self.selection = selection or SelectionState()

    def returnable_items(self) -> list[ItemView]:
        return resolve_returnable_items(self.order)

    def balance(self) -> BalanceSummary:
        return compute_balance(self.order, self.selection)

    def submit(self) -> SubmissionResult:
        self._begin()
        try:
            if not self.selection.is_exchange_ready():
                raise ValidationError("an exchange needs at least one item to return and one item to send")
            selection = self.selection
            expected = compute_balance(self.order, selection)
            payload = swap_request_from_selection(selection, self.order.no_notification)
            request_hash = self._send(payload, self.backend.create_swap)
            self.selection = SelectionState()

            before = self.order
            refreshed, refresh_error = self._refetch()
            if refreshed is None:
                checks = [check_order_refetched(refresh_error)]
            else:
                checks = run_swap_reconciliation(before, refreshed, selection.return_items, expected)
                self.order = refreshed
            for check in checks:
                if not check.passed:
                    logger.warning("swap reconciliation failed order=%s rule=%s %s", before.id, check.rule, check.detail)

            return SubmissionResult(
                kind=self.kind,
                order=self.order,
                request=payload,
                request_hash=request_hash,
                balance=expected,
                reconciliation=checks,
                refresh_error=refresh_error,
            )
        finally:
            self._end()


class ReturnWorkflow(_ModificationWorkflow):
    kind = "return"

    def __init__(
        self,
        order: OrderSnapshot,
        backend: CommerceBackend,
        selection: SelectionState | None = None,
        refund_override: Decimal | None = None,
        receive_now: bool = False,
    ):
        super().__init__(order, backend)
        self.selection = selection or SelectionState()
        self.refund_override = refund_override
        self.receive_now = receive_now

    def returnable_items(self) -> list[ItemView]:
        return resolve_returnable_items(self.order)

    def refund_amount(self) -> Decimal:
        suggested = compute_return_refund(self.order, self.selection)
        if self.refund_override is None:
            return suggested
        if self.refund_override < 0:
            raise ValidationError(f"refund amount must be >= 0, got {self.refund_override}")
        return self.refund_override

    def submit(self) -> SubmissionResult:
        self._begin()
        try:
            if not self.selection.return_items:
                raise ValidationError("a return needs at least one item")
            refund = self.refund_amount()
            payload = build_return_request(
                self.selection,
                self.order.no_notification,
                refund_amount=refund,
                receive_now=self.receive_now,
            )
            request_hash = self._send(payload, self.backend.request_return)
            self.selection = SelectionState()
            self.refund_override = None

            refreshed, refresh_error = self._refetch()
            if refreshed is not None:
                self.order = refreshed
            return SubmissionResult(
                kind=self.kind,
                order=self.order,
                request=payload,
                request_hash=request_hash,
                refund_amount=refund,
                reconciliation=[check_order_refetched(refresh_error)],
                refresh_error=refresh_error,
            )
        finally:
            self._end()


class ClaimWorkflow(_ModificationWorkflow):
    kind = "claim"

    def __init__(self, order: OrderSnapshot, backend: CommerceBackend, selection: ClaimSelection | None = None):
        super().__init__(order, backend)
        self.selection = selection or ClaimSelection()

    def claimable_items(self) -> list[ItemView]:
        return resolve_returnable_items(self.order, for_claim=True)

    def refund_amount(self) -> Decimal:
        if self.selection.refund_amount is not None:
            return Decimal(self.selection.refund_amount)
        return compute_claim_refund(self.order, self.selection)

    def submit(self) -> SubmissionResult:
        self._begin()
        try:
            if not self.selection.claim_items:
                raise ValidationError("a claim needs at least one item")
            if self.selection.claim_type == "replace" and not self.selection.additional_items:
                raise ValidationError("a replacement claim needs at least one item to send")
            if self.selection.refund_amount is not None and self.selection.refund_amount < 0:
                raise ValidationError(f"refund amount must be >= 0, got {self.selection.refund_amount}")
            validate_additional_items(self.selection.additional_items)
            computed = compute_claim_refund(self.order, self.selection)
            refund = Decimal(self.selection.refund_amount) if self.selection.refund_amount is not None else computed
            # raise on an invalid price override before anything is sent
            self.selection.return_shipping.amount()
            self.selection.replacement_shipping.amount()

            payload = build_claim_request(self.selection, self.order.no_notification)
            request_hash = self._send(payload, self.backend.create_claim)
            self.selection = ClaimSelection()

            refreshed, refresh_error = self._refetch()
            if refreshed is not None:
                self.order = refreshed
            return SubmissionResult(
                kind=self.kind,
                order=self.order,
                request=payload,
                request_hash=request_hash,
                refund_amount=refund,
                reconciliation=[check_order_refetched(refresh_error)],
                refresh_error=refresh_error,
            )
        finally:
            self._end()


def add_order_note(backend: CommerceBackend, order_id: str, value: str | None) -> Note:
    payload = build_note_request(order_id, value)
    note = backend.create_note(payload)
    logger.info("note added to order=%s note_id=%s", order_id, note.id)
    return note


def resolve_shipping_choice(
    backend: CommerceBackend,
    order: OrderSnapshot,
    option_id: str | None,
    custom_amount: Decimal | None = None,
    is_return: bool = True,
) -> ShippingSelection:
    """Turn an operator's option id (and optional price override) into a selection.

    The quoted amount always comes from the shipping option provider, never
    from the caller.
    """
    if option_id is None:
        if custom_amount is not None:
            raise ValidationError("a shipping option must be chosen before overriding its price")
        return ShippingSelection.none()
    options = backend.list_shipping_options(order.region_id, is_return=is_return)
    option = next((candidate for candidate in options if candidate.id == option_id), None)
    if option is None:
        raise ValidationError(f"shipping option {option_id} is not available for region {order.region_id}")
    selection = ShippingSelection.for_option(option)
    if custom_amount is not None:
        selection = selection.with_custom_amount(custom_amount)
    return selection
