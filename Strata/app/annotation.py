"""Annotation: a described range inside a file, with an ordered comment thread."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..utils.errors import ValidationError
from .base import Entity, EntityKind, check_empty, register, require_transport

if TYPE_CHECKING:
    from .context import StoreContext

logger = logging.getLogger(__name__)


@register(EntityKind.ANNOTATION)
@dataclass
class Annotation(Entity):
    description: Optional[str] = None
    offset: Optional[int] = None
    length: Optional[int] = None
    data: Any = None
    comments: List[Dict[str, Any]] = field(default_factory=list)
    owner: Optional[str] = None

    def _parts(self) -> List[Any]:
        return [self.id.get(k) for k in ("space_id", "dataset_id", "file_id", "item_id")]

    @classmethod
    async def create(
        cls,
        ctx: "StoreContext",
        file: Any,
        description: Optional[str] = None,
        offset: Optional[int] = None,
        length: Optional[int] = None,
        data: Any = None,
    ) -> Annotation:
        if file is None:
            raise ValidationError("file undefined")
        if not isinstance(file, Entity) or file.kind is not EntityKind.FILE:
            raise ValidationError("file is not File object")
        if description is None:
            raise ValidationError("description undefined")
        if offset is None:
            raise ValidationError("offset undefined")
        if length is None:
            raise ValidationError("length undefined")

        lineage = file.lineage()
        body = {"offset": offset, "length": length, "description": description, "data": data}
        payload = await require_transport(ctx).run(
            "annotation", "POST", [lineage["space_id"], lineage["dataset_id"], lineage["file_id"]], body
        )
        return cls.from_dict(check_empty(payload)[0], ctx)

    @classmethod
    async def load(cls, ctx: "StoreContext", dataset: Any) -> List[Annotation]:
        if dataset is None:
            raise ValidationError("dataset undefined")
        if not isinstance(dataset, Entity) or dataset.kind is not EntityKind.DATASET:
            raise ValidationError("dataset is not an instance of Dataset")
        payload = await require_transport(ctx).run(
            "annotation", "GET", [dataset.id["space_id"], dataset.itemid()]
        )
        return [cls.from_dict(item, ctx) for item in payload["items"]]

    async def update(self, description: Optional[str] = None) -> Annotation:
        description = self.description if description is None else description
        if description is None:
            raise ValidationError("description undefined")
        payload = await require_transport(self._context).run(
            "annotation", "PATCH", self._parts(), {"description": description}
        )
        return self.merge(check_empty(payload)[0])

    async def delete(self) -> Annotation:
        await require_transport(self._context).run("annotation", "DELETE", self._parts())
        return self

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def comment_create(self, text: Optional[str]) -> Annotation:
        if not text:
            raise ValidationError("text must be defined")
        payload = await require_transport(self._context).run(
            "annotation", "POST", self._parts() + ["comments"], {"text": text}
        )
        return self.merge(check_empty(payload)[0])

    async def comment_update(self, comment_id: Optional[str], text: Optional[str]) -> Annotation:
        if not comment_id:
            raise ValidationError("id must be defined")
        if not text:
            raise ValidationError("text must be defined")
        payload = await require_transport(self._context).run(
            "annotation", "PATCH", self._parts() + ["comments", comment_id], {"text": text}
        )
        return self.merge(check_empty(payload)[0])

    async def comment_delete(self, comment_id: Optional[str]) -> Annotation:
        if not comment_id:
            raise ValidationError("id must be defined")
        payload = await require_transport(self._context).run(
            "annotation", "DELETE", self._parts() + ["comments", comment_id]
        )
        if payload["count"] > 0:
            return self.merge(payload["items"][0])
        return self.copy(comments=[c for c in self.comments if c.get("id") != comment_id])


__all__ = ["Annotation"]
