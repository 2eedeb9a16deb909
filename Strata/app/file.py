"""File: a dataset member whose bytes are fetched on demand."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from ..ingestion.compression import gunzip_if_needed, is_archive_file
from ..utils.assetid import AssetId
from ..utils.errors import CacheError, StrataException, ValidationError
from .base import Entity, EntityKind, check_empty, register, require_transport
from .content import Content, ContentProvider

if TYPE_CHECKING:
    from .context import StoreContext

logger = logging.getLogger(__name__)


def _asset_id(value: Any, type_name: str) -> AssetId:
    if isinstance(value, AssetId):
        return value
    if isinstance(value, str):
        return AssetId.from_token(value)
    if isinstance(value, Mapping):
        return AssetId.from_fields({**value, "type": type_name})
    return AssetId()


@register(EntityKind.FILE)
@dataclass
class File(Entity):
    name: Optional[str] = None
    description: Optional[str] = None
    content_type: Optional[str] = None
    size: int = 0
    parse: Any = None
    owner: Optional[str] = None

    def lineage(self) -> Dict[str, Any]:
        if not isinstance(self.id, Mapping) or self.id.get("dataset_id") is None:
            return {}
        return {
            "space_id": self.id.get("space_id"),
            "dataset_id": self.id["dataset_id"],
            "file_id": self.itemid(),
        }

    def url(self) -> Optional[str]:
        lineage = self.lineage()
        if not lineage or None in lineage.values():
            return None
        return f"/files/{lineage['space_id']}/{lineage['dataset_id']}/{lineage['file_id']}"

    def admit(self, records: List[Entity]) -> List[Entity]:
        kept = []
        for record in records:
            name = getattr(record, "name", None) or ""
            if is_archive_file(name):
                logger.debug(f"Archive {name} is not stored as a file; its members are")
                continue
            kept.append(record)
        return kept

    # ------------------------------------------------------------------
    # Content provider delegation
    # ------------------------------------------------------------------

    def provider(self) -> ContentProvider:
        if self._context is None or self._context.content_provider is None:
            raise StrataException("no content provider bound", context={"file": self.name})
        return self._context.content_provider

    async def content(self, encoding: str = "utf-8") -> Optional[str]:
        """Decoded text, downloading the bytes first if they are not held yet."""
        if not self.has_raw_content():
            await self.load()
        return await self.provider().content(self, encoding)

    def set_raw_content(self, data: Content) -> File:
        self.provider().set_raw_content(self, data)
        return self

    async def raw_content(self) -> Optional[bytes]:
        return await self.provider().raw_content(self)

    def raw_content_size(self) -> int:
        return self.provider().raw_content_size(self)

    def has_raw_content(self) -> bool:
        return self.provider().has_raw_content(self)

    def clear_raw_content(self) -> File:
        self.provider().clear_raw_content(self)
        return self

    async def get_from_cache(self) -> bytes:
        return await self.provider().get_from_cache(self)

    async def store_in_cache(self, data: Content) -> None:
        await self.provider().store_in_cache(self, data)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def load(self, download: bool = True) -> File:
        if self.has_raw_content():
            return self
        return await File.fetch(self._context, self, download=download)

    @classmethod
    async def fetch(
        cls,
        ctx: Optional["StoreContext"],
        file_or_id: Union[File, AssetId, Mapping[str, Any], str, None],
        download: bool = True,
    ) -> File:
        """Resolve a file (by record or id) and optionally download its bytes.

        The content cache is consulted first; freshly downloaded bytes are
        offered back to it.
        """
        if file_or_id is None:
            raise ValidationError("fileOrId undefined")

        if isinstance(file_or_id, File):
            file = file_or_id if file_or_id._context is not None else file_or_id.bind(ctx)
        else:
            aid = _asset_id(file_or_id, "file")
            if not aid.valid() or aid.type != "file":
                raise ValidationError("fileOrId is not a valid File object or a valid AssetId")
            payload = await require_transport(ctx).run("file", "GET", aid.parts())
            file = cls.from_dict(check_empty(payload)[0], ctx)

        if not download:
            return file

        try:
            data = await file.get_from_cache()
        except CacheError:
            lineage = file.lineage()
            data = await require_transport(file._context).get_file_content(
                lineage["space_id"],
                lineage["dataset_id"],
                lineage["file_id"],
                compress=file.content_type != "application/gzip",
            )
            try:
                await file.store_in_cache(data)
            except CacheError as e:
                logger.debug(f"Content of {file.name} not cached: {e.message}")

        return file.set_raw_content(data)

    @classmethod
    async def create(
        cls,
        ctx: "StoreContext",
        dataset: Any,
        name: Optional[str] = None,
        description: Optional[str] = None,
        content_type: Optional[str] = None,
        size: Optional[int] = None,
        content: Optional[Content] = None,
    ) -> File:
        if dataset is None:
            raise ValidationError("dataset undefined")
        if isinstance(dataset, Entity):
            if dataset.kind is not EntityKind.DATASET:
                raise ValidationError("dataset is not a valid Dataset object or valid AssetId")
            dataset_id = dataset.id
        else:
            aid = _asset_id(dataset, "dataset")
            if not aid.valid() or aid.type != "dataset":
                raise ValidationError("dataset is not a valid Dataset object or valid AssetId")
            dataset_id = aid.as_fields()
        if name is None:
            raise ValidationError("name undefined")
        if content is None:
            raise ValidationError("content undefined")
        if size is None:
            raise ValidationError("size undefined")
        if content_type is None:
            raise ValidationError("contentType undefined")

        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        payload = await require_transport(ctx).upload_file(
            dataset_id["space_id"],
            dataset_id["item_id"],
            name,
            size,
            content_type,
            data,
            description,
        )
        file = cls.from_dict(check_empty(payload)[0], ctx)
        if not isinstance(content, str):
            data = gunzip_if_needed(file.name or name, data)
        return file.set_raw_content(data)

    async def update(self) -> File:
        lineage = self.lineage()
        payload = await require_transport(self._context).run(
            "file", "PATCH", [lineage["space_id"], lineage["dataset_id"], lineage["file_id"]], {"parse": self.parse}
        )
        return self.merge(check_empty(payload)[0])

    async def delete(self) -> File:
        lineage = self.lineage()
        await require_transport(self._context).run(
            "file", "DELETE", [lineage["space_id"], lineage["dataset_id"], lineage["file_id"]]
        )
        return self


__all__ = ["File"]
