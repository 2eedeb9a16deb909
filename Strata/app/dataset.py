"""Dataset: files, annotations and the local search index of a space."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..ingestion.index import TextIndex
from ..utils.errors import ValidationError
from .base import Entity, EntityKind, check_empty, register, require_transport
from .space import Space

if TYPE_CHECKING:
    from ..ingestion.pipeline import LoadedDataset
    from .annotation import Annotation
    from .context import StoreContext
    from .file import File

logger = logging.getLogger(__name__)


@register(EntityKind.DATASET)
@dataclass
class Dataset(Entity):
    name: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    problem: Optional[str] = None
    resolution: Optional[str] = None
    custom: Any = None
    owner: Optional[str] = None
    file_count: int = 0
    _index: Optional[TextIndex] = field(default=None, repr=False, compare=False)

    def lineage(self) -> Dict[str, Any]:
        if not isinstance(self.id, Mapping) or self.id.get("space_id") is None:
            return {}
        return {"space_id": self.id["space_id"], "dataset_id": self.itemid()}

    def url(self) -> Optional[str]:
        lineage = self.lineage()
        if not lineage or lineage["dataset_id"] is None:
            return None
        return f"/dataset/{lineage['space_id']}/{lineage['dataset_id']}"

    @property
    def index(self) -> Optional[TextIndex]:
        return self._index

    def with_index(self, index: Optional[TextIndex]) -> Dataset:
        return self.copy(_index=index)

    def search(self, query: str) -> Dict[str, List[int]]:
        """Search the local index: ``{file item id: [line numbers]}``."""
        if self._index is None:
            return {}
        tokenizer = self._context.config.ingest.token_pattern if self._context else None
        if tokenizer:
            return self._index.search(query, tokenizer)
        return self._index.search(query)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @classmethod
    async def load(cls, ctx: "StoreContext", space_id: str, dataset_id: Optional[str] = None) -> List[Dataset]:
        parts = [space_id] if dataset_id is None else [space_id, dataset_id]
        payload = await require_transport(ctx).run("dataset", "GET", parts)
        return [cls.from_dict(item, ctx) for item in payload["items"]]

    @classmethod
    async def create(
        cls,
        ctx: "StoreContext",
        space: Any,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Any = None,
        problem: Optional[str] = None,
        resolution: Optional[str] = None,
        custom: Any = None,
    ) -> Dataset:
        if space is None:
            raise ValidationError("space undefined")
        if not isinstance(space, Space):
            raise ValidationError("space is not Space object")
        if name is None:
            raise ValidationError("name undefined")
        if tags is not None and not isinstance(tags, list):
            raise ValidationError("tags is not an array")

        body = {
            "name": name,
            "description": description,
            "tags": tags,
            "problem": problem,
            "resolution": resolution,
            "custom": custom,
        }
        payload = await require_transport(ctx).run("dataset", "POST", [space.itemid()], body)
        return cls.from_dict(check_empty(payload)[0], ctx)

    async def update(self) -> Dataset:
        body = {
            "name": self.name,
            "description": self.description,
            "tags": self.tags,
            "problem": self.problem,
            "resolution": self.resolution,
            "custom": self.custom,
        }
        lineage = self.lineage()
        payload = await require_transport(self._context).run(
            "dataset", "PATCH", [lineage["space_id"], lineage["dataset_id"]], body
        )
        return self.merge(check_empty(payload)[0])

    async def delete(self) -> Dataset:
        lineage = self.lineage()
        await require_transport(self._context).run(
            "dataset", "DELETE", [lineage["space_id"], lineage["dataset_id"]]
        )
        return self

    async def get_files(self) -> List["File"]:
        from .file import File

        lineage = self.lineage()
        payload = await require_transport(self._context).run(
            "file", "GET", [lineage["space_id"], lineage["dataset_id"]]
        )
        return [File.from_dict(item, self._context) for item in payload["items"]]

    async def get_annotations(self) -> List["Annotation"]:
        from .annotation import Annotation

        lineage = self.lineage()
        payload = await require_transport(self._context).run(
            "annotation", "GET", [lineage["space_id"], lineage["dataset_id"]]
        )
        return [Annotation.from_dict(item, self._context) for item in payload["items"]]

    async def load_content(self) -> "LoadedDataset":
        """Download, expand and index every file of this dataset."""
        from ..ingestion.pipeline import load_dataset

        return await load_dataset(self)


__all__ = ["Dataset"]
