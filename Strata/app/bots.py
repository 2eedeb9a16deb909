"""Bots and boards: entities served by the generic CRUD endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..utils.assetid import AssetId
from ..utils.errors import EmptyResultError
from .base import Entity, EntityKind, register, require_transport

if TYPE_CHECKING:
    from .context import StoreContext


class BaseImpl(Entity):
    """Static CRUD addressed by an AssetId; subclasses decide how payloads become records."""

    @classmethod
    def _from_api(cls, ctx: "StoreContext", payload: Mapping[str, Any]) -> List[Entity]:
        raise NotImplementedError

    @classmethod
    async def _call(cls, ctx: "StoreContext", method: str, aid: AssetId, content: Optional[Mapping[str, Any]] = None) -> List[Entity]:
        payload = await require_transport(ctx).run(cls.kind.value, method, list(aid.parts()), content)
        return cls._from_api(ctx, payload)

    @classmethod
    async def get(cls, ctx: "StoreContext", aid: AssetId) -> List[Entity]:
        return await cls._call(ctx, "GET", aid)

    @classmethod
    async def delete(cls, ctx: "StoreContext", aid: AssetId) -> List[Entity]:
        return await cls._call(ctx, "DELETE", aid)

    @classmethod
    async def update(cls, ctx: "StoreContext", aid: AssetId, content: Mapping[str, Any]) -> List[Entity]:
        return await cls._call(ctx, "PATCH", aid, dict(content))

    @classmethod
    async def create(cls, ctx: "StoreContext", aid: AssetId, content: Mapping[str, Any]) -> List[Entity]:
        return await cls._call(ctx, "POST", aid, dict(content))


@register(EntityKind.BOT)
@dataclass
class Bot(BaseImpl):
    name: Optional[str] = None
    description: Optional[str] = None
    search: Optional[str] = None
    severity: Optional[int] = None
    tags: List[str] = field(default_factory=list)

    @classmethod
    def _from_api(cls, ctx: "StoreContext", payload: Mapping[str, Any]) -> List[Entity]:
        if payload.get("count", 0) > 0:
            return [cls.from_dict(item, ctx) for item in payload["items"]]
        raise EmptyResultError()


@register(EntityKind.BOARD)
@dataclass
class Board(BaseImpl):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)
    view: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def _from_api(cls, ctx: "StoreContext", payload: Mapping[str, Any]) -> List[Entity]:
        if payload.get("count", 0) > 0:
            return [cls.from_dict(item, ctx) for item in payload["items"]]
        return []


__all__ = ["BaseImpl", "Bot", "Board"]
