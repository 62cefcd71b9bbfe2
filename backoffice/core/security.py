from __future__ import annotations

import hmac
from typing import Callable, Literal

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from backoffice.core.config import Settings, get_settings

ActorType = Literal["operator", "support"]
OrderAction = Literal["view", "preview", "submit", "annotate"]

# support staff can inspect orders and leave notes but never move money or stock
ROLE_ACTIONS: dict[str, frozenset[str]] = {
    "operator": frozenset({"view", "preview", "submit", "annotate"}),
    "support": frozenset({"view", "preview", "annotate"}),
}


class Actor(BaseModel):
    type: ActorType
    id: str

    def can(self, action: OrderAction) -> bool:
        return action in ROLE_ACTIONS.get(self.type, frozenset())


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _presented_key(authorization: str | None, x_api_key: str | None) -> str:
    """Key from a Bearer header, else from X-API-Key."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise _unauthorized("invalid authorization header")
        return token
    key = (x_api_key or "").strip()
    if not key:
        raise _unauthorized("missing api key")
    return key


def _actor_for_key(settings: Settings, key: str) -> Actor | None:
    candidates = (
        (settings.operator_api_key, Actor(type="operator", id=settings.operator_actor_id)),
        (settings.support_api_key, Actor(type="support", id=settings.support_actor_id)),
    )
    for expected, actor in candidates:
        if hmac.compare_digest(key.encode("utf-8"), expected.encode("utf-8")):
            return actor
    return None


def get_actor(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> Actor:
    settings = get_settings()
    if not settings.auth_enabled:
        return Actor(type="operator", id=settings.operator_actor_id)

    actor = _actor_for_key(settings, _presented_key(authorization, x_api_key))
    if actor is None:
        raise _unauthorized("invalid api key")
    return actor


def require_action(action: OrderAction) -> Callable[..., Actor]:
    """Route dependency: the authenticated actor, provided its role allows ``action``."""

    def _dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if not actor.can(action):
            raise HTTPException(status_code=403, detail=f"role {actor.type} may not {action} order modifications")
        return actor

    return _dependency
