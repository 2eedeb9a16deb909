"""Action creators: run an entity operation and dispatch its outcome.

Each creator awaits the operation, dispatches the resulting records under
the matching action type and returns them. A ``StrataException`` is turned
into an ERROR action and the creator returns ``None``; any other exception
propagates to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, List, Mapping, Optional, Type, TypeVar, Union

from ..app.activity import Activity
from ..app.annotation import Annotation
from ..app.base import Entity
from ..app.bots import BaseImpl
from ..app.dataset import Dataset
from ..app.file import File
from ..app.space import Space
from ..app.store import Action, ActionType, dispatch
from ..app.user import User
from ..ingestion.pipeline import LoadedDataset, ingest_created_file
from ..utils.assetid import AssetId
from ..utils.errors import EmptyResultError, StrataException, error_payload

if TYPE_CHECKING:
    from ..app.context import StoreContext

logger = logging.getLogger("STRATA.Actions")

T = TypeVar("T")


def dispatch_error(ctx: "StoreContext", error: BaseException) -> Action:
    """Record ``error`` on the store as an ERROR action."""
    message, status = error_payload(error)
    action = Action(ActionType.ERROR, error=message, status=status)
    ctx.dispatch(action)
    return action


async def _guarded(ctx: "StoreContext", action_type: ActionType, pending: Awaitable[T]) -> Optional[T]:
    try:
        return await dispatch(ctx, action_type, pending)
    except StrataException as e:
        logger.error(f"{action_type.value} failed: {e}")
        dispatch_error(ctx, e)
        return None


async def _log_activity(ctx: "StoreContext", parent: Entity, type: str, data: Mapping[str, Any]) -> Optional[Activity]:
    """Create an activity entry; failures are recorded but do not undo the main action."""
    return await _guarded(ctx, ActionType.CREATE, Activity.create(ctx, parent, type, data))


def _annotation_file(ctx: "StoreContext", annotation: Annotation) -> Entity:
    file = annotation.file()
    if file is not None and file.itemid() is not None:
        return file
    lineage = annotation.lineage()
    return File(
        id={
            "space_id": lineage.get("space_id"),
            "dataset_id": lineage.get("dataset_id"),
            "item_id": lineage.get("file_id"),
        },
        _context=ctx,
    )


# ============================================================================
# Spaces
# ============================================================================

async def spaces_load(ctx: "StoreContext") -> Optional[List[Space]]:
    return await _guarded(ctx, ActionType.LOAD, Space.load_all(ctx))


async def space_load(ctx: "StoreContext", space_id: Optional[str]) -> Optional[List[Space]]:
    return await _guarded(ctx, ActionType.LOAD, Space.load(ctx, space_id))


async def space_create(ctx: "StoreContext", id: Optional[str], name: Optional[str] = None, **options: Any) -> Optional[Space]:
    return await _guarded(ctx, ActionType.CREATE, Space.create(ctx, id, name, **options))


async def space_update(ctx: "StoreContext", space: Space) -> Optional[Space]:
    return await _guarded(ctx, ActionType.UPDATE, space.update())


async def space_delete(ctx: "StoreContext", space: Space) -> Optional[Space]:
    return await _guarded(ctx, ActionType.DELETE, space.delete())


# ============================================================================
# Datasets
# ============================================================================

async def datasets_load(ctx: "StoreContext", space_id: str, dataset_id: Optional[str] = None) -> Optional[List[Dataset]]:
    return await _guarded(ctx, ActionType.LOAD, Dataset.load(ctx, space_id, dataset_id))


async def dataset_create(ctx: "StoreContext", space: Any, name: Optional[str], **fields: Any) -> Optional[Dataset]:
    return await _guarded(ctx, ActionType.CREATE, Dataset.create(ctx, space, name, **fields))


async def dataset_update(ctx: "StoreContext", dataset: Dataset) -> Optional[Dataset]:
    return await _guarded(ctx, ActionType.UPDATE, dataset.update())


async def dataset_delete(ctx: "StoreContext", dataset: Dataset) -> Optional[Dataset]:
    return await _guarded(ctx, ActionType.DELETE, dataset.delete())


async def dataset_load(ctx: "StoreContext", dataset: Dataset) -> Optional[LoadedDataset]:
    """Hydrate a dataset and publish files, annotations and the indexed dataset."""
    try:
        loaded = await dataset.load_content()
    except StrataException as e:
        logger.error(f"Loading dataset {dataset.itemname()} failed: {e}")
        dispatch_error(ctx, e)
        return None

    if loaded.removed:
        ctx.dispatch(Action(ActionType.DELETE, loaded.removed))
    if loaded.files:
        ctx.dispatch(Action(ActionType.LOAD, loaded.files))
    if loaded.annotations:
        ctx.dispatch(Action(ActionType.LOAD, loaded.annotations))
    ctx.dispatch(Action(ActionType.UPDATE, loaded.dataset))
    return loaded


# ============================================================================
# Files
# ============================================================================

async def file_create(
    ctx: "StoreContext",
    dataset: Any,
    name: Optional[str],
    description: Optional[str],
    content_type: Optional[str],
    size: Optional[int],
    content: Any,
) -> Optional[List[File]]:
    """Upload a file, fold it into its dataset, and log an ``upload`` activity.

    Returns the records added to the store: the file itself, or the members
    of an uploaded archive.
    """
    try:
        file = await File.create(ctx, dataset, name, description, content_type, size, content)
        lineage = file.lineage()
        stored = ctx.store().dataset(lineage["space_id"], lineage["dataset_id"])
        if stored.itemid() is not None or not isinstance(dataset, Dataset):
            dataset = stored
        ingested = await ingest_created_file(dataset, file, ctx.config.ingest)
    except StrataException as e:
        logger.error(f"Creating file {name} failed: {e}")
        dispatch_error(ctx, e)
        return None

    if ingested.files:
        ctx.dispatch(Action(ActionType.CREATE, ingested.files))
    if ingested.dataset.itemid() is not None:
        ctx.dispatch(Action(ActionType.UPDATE, ingested.dataset))

    await _log_activity(ctx, file, "upload", {"name": file.name, "id": file.id})
    return ingested.files


async def file_load(ctx: "StoreContext", file_or_id: Union[File, AssetId, Mapping[str, Any], str]) -> Optional[File]:
    return await _guarded(ctx, ActionType.LOAD, File.fetch(ctx, file_or_id))


async def file_update(ctx: "StoreContext", file: File) -> Optional[File]:
    return await _guarded(ctx, ActionType.UPDATE, file.update())


async def file_delete(ctx: "StoreContext", file: File) -> Optional[File]:
    return await _guarded(ctx, ActionType.DELETE, file.delete())


# ============================================================================
# Annotations and comments
# ============================================================================

async def annotations_load(ctx: "StoreContext", dataset: Any) -> Optional[List[Annotation]]:
    return await _guarded(ctx, ActionType.LOAD, Annotation.load(ctx, dataset))


async def annotation_create(
    ctx: "StoreContext",
    file: Any,
    description: Optional[str],
    offset: Optional[int],
    length: Optional[int],
    data: Any = None,
) -> Optional[Annotation]:
    annotation = await _guarded(
        ctx, ActionType.CREATE, Annotation.create(ctx, file, description, offset, length, data)
    )
    if annotation is not None:
        await _log_activity(ctx, file, "annotation", {"id": annotation.id, "description": annotation.description})
    return annotation


async def annotation_update(ctx: "StoreContext", annotation: Annotation) -> Optional[Annotation]:
    updated = await _guarded(ctx, ActionType.UPDATE, annotation.update())
    if updated is not None:
        await _log_activity(
            ctx, _annotation_file(ctx, updated), "annotation", {"id": updated.id, "description": updated.description}
        )
    return updated


async def annotation_delete(ctx: "StoreContext", annotation: Annotation) -> Optional[Annotation]:
    return await _guarded(ctx, ActionType.DELETE, annotation.delete())


async def comment_create(ctx: "StoreContext", annotation: Annotation, text: Optional[str]) -> Optional[Annotation]:
    updated = await _guarded(ctx, ActionType.UPDATE, annotation.comment_create(text))
    if updated is not None:
        await _log_activity(ctx, _annotation_file(ctx, updated), "comment", {"id": updated.id, "description": text})
    return updated


async def comment_update(
    ctx: "StoreContext", annotation: Annotation, comment_id: Optional[str], text: Optional[str]
) -> Optional[Annotation]:
    # the activity entry already carries the original text and cannot be edited
    return await _guarded(ctx, ActionType.UPDATE, annotation.comment_update(comment_id, text))


async def comment_delete(ctx: "StoreContext", annotation: Annotation, comment_id: Optional[str]) -> Optional[Annotation]:
    return await _guarded(ctx, ActionType.UPDATE, annotation.comment_delete(comment_id))


# ============================================================================
# Activity and users
# ============================================================================

async def activity_create(ctx: "StoreContext", parent: Any, type: Optional[str], data: Any) -> Optional[Activity]:
    return await _guarded(ctx, ActionType.CREATE, Activity.create(ctx, parent, type, data))


async def activity_load(ctx: "StoreContext", parent: Entity) -> Optional[List[Activity]]:
    return await _guarded(ctx, ActionType.LOAD, Activity.load(ctx, parent))


async def user_load(ctx: "StoreContext", user_id: Optional[str] = None) -> Optional[List[User]]:
    return await _guarded(ctx, ActionType.LOAD, User.load(ctx, user_id))


async def prefs_update(ctx: "StoreContext", user: User, prefs: Optional[Mapping[str, Any]] = None) -> Optional[User]:
    return await _guarded(ctx, ActionType.UPDATE, user.update_prefs(None if prefs is None else dict(prefs)))


# ============================================================================
# Bots and boards
# ============================================================================

async def asset_load(ctx: "StoreContext", cls: Type[BaseImpl], aid: AssetId) -> Optional[List[Entity]]:
    return await _guarded(ctx, ActionType.LOAD, cls.get(ctx, aid))


async def asset_create(ctx: "StoreContext", cls: Type[BaseImpl], aid: AssetId, content: Mapping[str, Any]) -> Optional[List[Entity]]:
    return await _guarded(ctx, ActionType.CREATE, cls.create(ctx, aid, content))


async def asset_update(ctx: "StoreContext", cls: Type[BaseImpl], aid: AssetId, content: Mapping[str, Any]) -> Optional[List[Entity]]:
    return await _guarded(ctx, ActionType.UPDATE, cls.update(ctx, aid, content))


async def asset_delete(ctx: "StoreContext", cls: Type[BaseImpl], aid: AssetId) -> Optional[List[Entity]]:
    """Delete on the server, then drop the matching record from the store."""

    async def run() -> List[Entity]:
        try:
            await cls.delete(ctx, aid)
        except EmptyResultError:
            pass
        doomed = cls.store_get(ctx.store(), aid)
        return [] if doomed is None else [doomed]

    return await _guarded(ctx, ActionType.DELETE, run())


__all__ = [
    "dispatch_error",
    "spaces_load",
    "space_load",
    "space_create",
    "space_update",
    "space_delete",
    "datasets_load",
    "dataset_create",
    "dataset_update",
    "dataset_delete",
    "dataset_load",
    "file_create",
    "file_load",
    "file_update",
    "file_delete",
    "annotations_load",
    "annotation_create",
    "annotation_update",
    "annotation_delete",
    "comment_create",
    "comment_update",
    "comment_delete",
    "activity_create",
    "activity_load",
    "user_load",
    "prefs_update",
    "asset_load",
    "asset_create",
    "asset_update",
    "asset_delete",
]
