"""Entity model and copy-on-write store."""

from .base import Entity, EntityKind, entity_class, key, make_filter
from .store import (
    Action,
    ActionType,
    Store,
    reduce,
    dispatch,
    dispatch_create,
    dispatch_update,
    dispatch_delete,
    dispatch_load,
)
from .content import ContentProvider, MemoryContentProvider, DiskCacheContentProvider
from .context import StoreContext, StateContainer
from .space import Space
from .dataset import Dataset
from .file import File
from .annotation import Annotation
from .activity import Activity
from .user import User
from .bots import BaseImpl, Bot, Board

__all__ = [
    "Entity",
    "EntityKind",
    "entity_class",
    "key",
    "make_filter",
    # Store
    "Action",
    "ActionType",
    "Store",
    "reduce",
    "dispatch",
    "dispatch_create",
    "dispatch_update",
    "dispatch_delete",
    "dispatch_load",
    # Wiring
    "ContentProvider",
    "MemoryContentProvider",
    "DiskCacheContentProvider",
    "StoreContext",
    "StateContainer",
    # Entities
    "Space",
    "Dataset",
    "File",
    "Annotation",
    "Activity",
    "User",
    "BaseImpl",
    "Bot",
    "Board",
]
