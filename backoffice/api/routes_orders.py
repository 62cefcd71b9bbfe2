from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from backoffice.api.schemas import (
    ClaimBody,
    NoteBody,
    ReturnBody,
    SwapBody,
    amount_json,
    balance_json,
    item_view_json,
)
from backoffice.core.security import Actor, require_action
from backoffice.domain.orders.aggregates import OrderSnapshot
from backoffice.domain.orders.selection import ClaimSelection, SelectionState
from backoffice.domain.timeline import build_order_timeline, to_feed
from backoffice.integrations.commerce import CommerceBackend, get_commerce_client
from backoffice.reconciliation.rules import ReconciliationResult
from backoffice.services.modifications import (
    ClaimWorkflow,
    ExchangeWorkflow,
    ReturnWorkflow,
    SubmissionResult,
    add_order_note,
    resolve_shipping_choice,
)

router = APIRouter(tags=["orders"])


def _swap_workflow(order: OrderSnapshot, body: SwapBody, backend: CommerceBackend) -> ExchangeWorkflow:
    selection = SelectionState(
        return_items=body.return_items,
        shipping=resolve_shipping_choice(backend, order, body.shipping.option_id, body.shipping.custom_amount),
        no_notification=body.no_notification,
    ).with_variants(body.additional_items)
    return ExchangeWorkflow(order, backend, selection)


def _return_workflow(order: OrderSnapshot, body: ReturnBody, backend: CommerceBackend) -> ReturnWorkflow:
    selection = SelectionState(
        return_items=body.return_items,
        shipping=resolve_shipping_choice(backend, order, body.shipping.option_id, body.shipping.custom_amount),
        no_notification=body.no_notification,
    )
    return ReturnWorkflow(
        order,
        backend,
        selection,
        refund_override=body.refund_amount,
        receive_now=body.receive_now,
    )


def _claim_workflow(order: OrderSnapshot, body: ClaimBody, backend: CommerceBackend) -> ClaimWorkflow:
    selection = ClaimSelection(
        claim_type=body.claim_type,
        claim_items=body.claim_items,
        return_shipping=resolve_shipping_choice(
            backend, order, body.return_shipping.option_id, body.return_shipping.custom_amount
        ),
        replacement_shipping=resolve_shipping_choice(
            backend,
            order,
            body.replacement_shipping.option_id,
            body.replacement_shipping.custom_amount,
            is_return=False,
        ),
        refund_amount=body.refund_amount,
        no_notification=body.no_notification,
    ).with_variants(body.additional_items)
    return ClaimWorkflow(order, backend, selection)


def _check_json(check: ReconciliationResult) -> dict:
    return {"rule": check.rule, "passed": check.passed, "detail": check.detail}


def _result_json(result: SubmissionResult) -> dict:
    order = result.order
    out = {
        "kind": result.kind,
        "order_id": order.id,
        "request": result.request,
        "request_hash": result.request_hash,
        "reconciliation": [_check_json(check) for check in result.reconciliation],
        "refreshed": result.refreshed,
    }
    if result.refresh_error is not None:
        out["refresh_error"] = result.refresh_error
    if result.balance is not None:
        out["balance"] = balance_json(result.balance, order.currency_code)
    if result.refund_amount is not None:
        out["refund"] = amount_json(result.refund_amount, order.currency_code)
    return out


@router.get("/orders/{order_id}/timeline")
def get_timeline(
    order_id: str,
    actor: Actor = Depends(require_action("view")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    events = build_order_timeline(
        order,
        notes=backend.list_notes(order_id),
        notifications=backend.list_notifications(order_id),
    )
    return {"order_id": order_id, "count": len(events), "events": to_feed(events)}


@router.get("/orders/{order_id}/returnable-items")
def get_returnable_items(
    order_id: str,
    for_claim: bool = Query(default=False),
    actor: Actor = Depends(require_action("view")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    if for_claim:
        views = ClaimWorkflow(order, backend).claimable_items()
    else:
        views = ExchangeWorkflow(order, backend).returnable_items()
    return {"order_id": order_id, "items": [item_view_json(view) for view in views]}


@router.get("/orders/{order_id}/return-shipping-options")
def get_return_shipping_options(
    order_id: str,
    actor: Actor = Depends(require_action("view")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    options = ExchangeWorkflow(order, backend).return_shipping_options()
    return {
        "order_id": order_id,
        "shipping_options": [{"id": o.id, "name": o.name, "amount": o.amount} for o in options],
    }


@router.post("/orders/{order_id}/swaps/preview")
def preview_swap(
    order_id: str,
    body: SwapBody,
    actor: Actor = Depends(require_action("preview")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    workflow = _swap_workflow(order, body, backend)
    return {
        "order_id": order_id,
        "balance": balance_json(workflow.balance(), order.currency_code),
        "ready": workflow.selection.is_exchange_ready(),
    }


@router.post("/orders/{order_id}/swaps")
def create_swap(
    order_id: str,
    body: SwapBody,
    actor: Actor = Depends(require_action("submit")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    return _result_json(_swap_workflow(order, body, backend).submit())


@router.post("/orders/{order_id}/returns/preview")
def preview_return(
    order_id: str,
    body: ReturnBody,
    actor: Actor = Depends(require_action("preview")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    workflow = _return_workflow(order, body, backend)
    return {"order_id": order_id, "refund": amount_json(workflow.refund_amount(), order.currency_code)}


@router.post("/orders/{order_id}/returns")
def create_return(
    order_id: str,
    body: ReturnBody,
    actor: Actor = Depends(require_action("submit")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    return _result_json(_return_workflow(order, body, backend).submit())


@router.post("/orders/{order_id}/claims/preview")
def preview_claim(
    order_id: str,
    body: ClaimBody,
    actor: Actor = Depends(require_action("preview")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    workflow = _claim_workflow(order, body, backend)
    return {"order_id": order_id, "refund": amount_json(workflow.refund_amount(), order.currency_code)}


@router.post("/orders/{order_id}/claims")
def create_claim(
    order_id: str,
    body: ClaimBody,
    actor: Actor = Depends(require_action("submit")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    order = backend.get_order(order_id)
    return _result_json(_claim_workflow(order, body, backend).submit())


@router.post("/orders/{order_id}/notes")
def create_note(
    order_id: str,
    body: NoteBody,
    actor: Actor = Depends(require_action("annotate")),
    backend: CommerceBackend = Depends(get_commerce_client),
):
    note = add_order_note(backend, order_id, body.value)
    return {"order_id": order_id, "note": note.model_dump(mode="json")}
