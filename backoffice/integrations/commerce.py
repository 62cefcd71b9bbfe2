from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from backoffice.core.config import Settings, get_settings
from backoffice.core.errors import CommerceAPIError, SubmissionError
from backoffice.domain.orders.aggregates import (
    Note,
    Notification,
    OrderSnapshot,
    ShippingOption,
    parse_records,
)

logger = logging.getLogger(__name__)


class CommerceBackend(Protocol):
    def get_order(self, order_id: str) -> OrderSnapshot:
        ...

    def list_notes(self, order_id: str) -> list[Note]:
        ...

    def list_notifications(self, order_id: str) -> list[Notification]:
        ...

    def list_shipping_options(self, region_id: str, is_return: bool = True) -> list[ShippingOption]:
        ...

    def create_swap(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    def create_claim(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    def request_return(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    def create_note(self, payload: dict[str, Any]) -> Note:
        ...


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    try:
        body = response.json()
    except ValueError:
        body = response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"]), body
    if isinstance(body, str) and body.strip():
        return body.strip(), body
    return f"commerce API responded with HTTP {response.status_code}", body


class CommerceAdminClient:
    """Thin adapter over the commerce admin REST API."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.commerce_api_base_url.rstrip("/")
        self.timeout = max(1, self.settings.commerce_timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.commerce_api_token:
            headers["Authorization"] = f"Bearer {self.settings.commerce_api_token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        error_cls: type[CommerceAPIError] = CommerceAPIError,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, headers=self._headers(), params=params, json=json_body)
        except httpx.RequestError as exc:
            raise error_cls(str(exc)) from exc

        if response.is_error:
            message, body = _error_message(response)
            logger.warning("commerce API %s %s failed: status=%s message=%s", method, path, response.status_code, message)
            raise error_cls(message, status_code=response.status_code, body=body)

        payload = response.json()
        if isinstance(payload, dict):
            return payload
        return {"result": payload}

    def get_order(self, order_id: str) -> OrderSnapshot:
        raw = self._request("GET", f"/admin/orders/{order_id}")
        return OrderSnapshot.from_payload(raw.get("order", raw))

    def list_notes(self, order_id: str) -> list[Note]:
        raw = self._request("GET", "/admin/notes", params={"resource_id": order_id})
        return parse_records(Note, raw.get("notes", []))

    def list_notifications(self, order_id: str) -> list[Notification]:
        raw = self._request("GET", "/admin/notifications", params={"resource_ids": order_id})
        return parse_records(Notification, raw.get("notifications", []))

    def list_shipping_options(self, region_id: str, is_return: bool = True) -> list[ShippingOption]:
        raw = self._request(
            "GET",
            "/admin/shipping-options",
            params={"region_id": region_id, "is_return": "true" if is_return else "false"},
        )
        return parse_records(ShippingOption, raw.get("shipping_options", []))

    def _mutate_order(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        # the response body is not parsed; callers refetch the order instead
        return self._request("POST", path, json_body=payload, error_cls=SubmissionError)

    def create_swap(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._mutate_order(f"/admin/orders/{order_id}/swaps", payload)

    def create_claim(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._mutate_order(f"/admin/orders/{order_id}/claims", payload)

    def request_return(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._mutate_order(f"/admin/orders/{order_id}/return", payload)

    def create_note(self, payload: dict[str, Any]) -> Note:
        raw = self._request("POST", "/admin/notes", json_body=payload, error_cls=SubmissionError)
        return Note.model_validate(raw.get("note", raw))


def get_commerce_client() -> CommerceBackend:
    return CommerceAdminClient(get_settings())
