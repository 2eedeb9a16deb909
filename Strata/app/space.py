"""Space: top-level container of datasets, bots and activity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..utils.errors import ValidationError
from .base import Entity, EntityKind, check_empty, register, require_transport

if TYPE_CHECKING:
    from .context import StoreContext

logger = logging.getLogger(__name__)


@register(EntityKind.SPACE)
@dataclass
class Space(Entity):
    name: Optional[str] = None
    owner: Optional[str] = None
    public: bool = False
    dataset_cf_schema: Any = None
    dataset_cf_uischema: Any = None
    ftr: Any = None

    def lineage(self) -> Dict[str, Any]:
        return {"space_id": self.itemid()} if self.itemid() is not None else {}

    def url(self) -> Optional[str]:
        return f"/space/{self.itemid()}" if self.itemid() is not None else None

    def bots(self) -> List[Entity]:
        accessor = self._accessor("bots")
        if accessor is None or self.itemid() is None:
            return []
        return accessor(self.itemid())

    @classmethod
    async def load_all(cls, ctx: "StoreContext") -> List[Space]:
        payload = await require_transport(ctx).run("space", "GET", [])
        return [cls.from_dict(item, ctx) for item in payload["items"]]

    @classmethod
    async def load(cls, ctx: "StoreContext", space_id: Optional[str]) -> List[Space]:
        if not space_id:
            raise ValidationError("spaceId undefined")
        payload = await require_transport(ctx).run("space", "GET", [space_id])
        return [cls.from_dict(item, ctx) for item in payload["items"]]

    @classmethod
    async def create(
        cls,
        ctx: "StoreContext",
        id: Optional[str],
        name: Optional[str] = None,
        public: bool = False,
        dataset_cf_schema: Any = None,
        dataset_cf_uischema: Any = None,
    ) -> Space:
        if id is None:
            raise ValidationError("id undefined")
        body = {
            "id": id,
            "name": name,
            "public": public,
            "dataset_cf_schema": dataset_cf_schema,
            "dataset_cf_uischema": dataset_cf_uischema,
        }
        payload = await require_transport(ctx).run("space", "POST", [], body)
        return cls.from_dict(check_empty(payload)[0], ctx)

    async def update(self) -> Space:
        body = {
            "name": self.name,
            "dataset_cf_schema": self.dataset_cf_schema,
            "dataset_cf_uischema": self.dataset_cf_uischema,
            "ftr": self.ftr,
        }
        payload = await require_transport(self._context).run("space", "PATCH", [self.itemid()], body)
        if payload["count"] > 0:
            return self.merge(payload["items"][0])
        return self.copy()

    @classmethod
    async def patch(cls, ctx: "StoreContext", id: Mapping[str, Any], changes: Mapping[str, Any]) -> Space:
        payload = await require_transport(ctx).run("space", "PATCH", [id["item_id"]], dict(changes))
        return cls.from_dict(check_empty(payload)[0], ctx)

    async def delete(self) -> Space:
        await require_transport(self._context).run("space", "DELETE", [self.itemid()])
        return self


__all__ = ["Space"]
