"""Activity: append-only log entries on a space, dataset or file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from ..utils.errors import ValidationError
from .base import Entity, EntityKind, check_empty, register, require_transport

if TYPE_CHECKING:
    from .context import StoreContext

logger = logging.getLogger(__name__)

PARENT_KINDS = (EntityKind.SPACE, EntityKind.DATASET, EntityKind.FILE)


def _parent_parts(parent: Entity) -> List[Any]:
    lineage = parent.lineage()
    return [lineage[k] for k in ("space_id", "dataset_id", "file_id") if k in lineage]


@register(EntityKind.ACTIVITY)
@dataclass
class Activity(Entity):
    type: Optional[str] = None
    data: Any = None
    owner: Optional[str] = None
    created_at: Any = None

    @classmethod
    async def create(cls, ctx: "StoreContext", parent: Any, type: Optional[str], data: Any) -> Activity:
        if parent is None:
            raise ValidationError("parent undefined")
        if not isinstance(parent, Entity) or parent.kind not in PARENT_KINDS:
            raise ValidationError("parent is not a Space, Dataset or File")
        if type is None:
            raise ValidationError("type undefined")
        if data is None:
            raise ValidationError("data undefined")
        if not isinstance(data, Mapping):
            raise ValidationError("data is not an object")
        if "id" not in data:
            raise ValidationError("data does not contain id object")
        if not isinstance(data["id"], Mapping) or "item_id" not in data["id"]:
            raise ValidationError("data.id is not ID object")

        payload = await require_transport(ctx).run(
            "activity", "POST", _parent_parts(parent), {"type": type, "data": dict(data)}
        )
        return cls.from_dict(check_empty(payload)[0], ctx)

    @classmethod
    async def load(cls, ctx: "StoreContext", parent: Entity) -> List[Activity]:
        if not isinstance(parent, Entity) or parent.kind not in PARENT_KINDS:
            raise ValidationError("parent is not a Space, Dataset or File")
        payload = await require_transport(ctx).run("activity", "GET", _parent_parts(parent))
        return [cls.from_dict(item, ctx) for item in payload["items"]]


__all__ = ["Activity"]
