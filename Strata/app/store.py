"""Root aggregate holding one collection per entity kind, plus the reducer.

A Store is never modified after it is handed out. ``reduce`` applies an
action by asking the payload's entity kind for a new Store; collections
the action does not touch are shared with the previous snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

from .base import Entity, EntityKind, PartialId, entity_class, key
from ..utils.errors import StrataException

if TYPE_CHECKING:
    from .context import StoreContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ActionType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOAD = "LOAD"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Action:
    type: Union[ActionType, str]
    payload: Any = None
    error: Any = None
    status: Optional[int] = None


class Store:
    """Snapshot of everything fetched so far."""

    def __init__(
        self,
        context: Optional["StoreContext"] = None,
        current_space_id: Optional[str] = None,
        current_dataset_id: Optional[str] = None,
        version: int = 0,
    ):
        self.context = context
        self._current_space_id = current_space_id
        self._current_dataset_id = current_dataset_id
        self.version = version
        self.error: Optional[str] = None
        self.status: Optional[int] = None
        self._collections: Dict[str, Tuple[Entity, ...]] = {}

    def copy(self) -> Store:
        """New snapshot carrying only the selection state; collections are filled by the caller."""
        return Store(
            context=self.context,
            current_space_id=self._current_space_id,
            current_dataset_id=self._current_dataset_id,
            version=self.version,
        )

    def collection(self, name: str) -> Tuple[Entity, ...]:
        return self._collections.get(name, ())

    def _empty(self, kind: EntityKind) -> Entity:
        return entity_class(kind)(_context=self.context)

    def _list(self, kind: EntityKind, partial_id: PartialId) -> List[Entity]:
        return entity_class(kind).store_list(self, partial_id)

    def _get(self, kind: EntityKind, partial_id: PartialId) -> Entity:
        found = entity_class(kind).store_get(self, partial_id)
        return found if found is not None else self._empty(kind)

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def spaces(self) -> List[Entity]:
        return list(self.collection(key(EntityKind.SPACE)))

    def space(self, space_id: Any) -> Entity:
        if isinstance(space_id, str):
            space_id = {"item_id": space_id}
        return self._get(EntityKind.SPACE, space_id)

    def spaces_for_user(self, owner: str) -> List[Entity]:
        return [s for s in self.spaces() if getattr(s, "owner", None) == owner]

    def datasets(self, space_id: Any = None) -> List[Entity]:
        if isinstance(space_id, str):
            space_id = {"space_id": space_id}
        return self._list(EntityKind.DATASET, space_id)

    def dataset(self, space_id: str, dataset_id: str) -> Entity:
        return self._get(EntityKind.DATASET, {"space_id": space_id, "item_id": dataset_id})

    def files(self, partial_id: PartialId = None) -> List[Entity]:
        return self._list(EntityKind.FILE, partial_id)

    def file(self, space_id: str, dataset_id: str, file_id: str) -> Entity:
        return self._get(
            EntityKind.FILE,
            {"space_id": space_id, "dataset_id": dataset_id, "item_id": file_id},
        )

    def annotations(self, partial_id: PartialId = None) -> List[Entity]:
        return self._list(EntityKind.ANNOTATION, partial_id)

    def annotation(self, partial_id: PartialId) -> Entity:
        return self._get(EntityKind.ANNOTATION, partial_id)

    def activity(self, partial_id: PartialId = None) -> List[Entity]:
        return self._list(EntityKind.ACTIVITY, partial_id)

    def bots(self, space_id: Any = None) -> List[Entity]:
        if isinstance(space_id, str):
            space_id = {"space_id": space_id}
        return self._list(EntityKind.BOT, space_id)

    def bot(self, space_id: str, bot_id: str) -> Entity:
        return self._get(EntityKind.BOT, {"space_id": space_id, "item_id": bot_id})

    def boards(self, partial_id: PartialId = None) -> List[Entity]:
        return self._list(EntityKind.BOARD, partial_id)

    def users(self, user_id: PartialId = None) -> List[Entity]:
        return self._list(EntityKind.USER, user_id)

    def user(self, user_id: str) -> Entity:
        return self._get(EntityKind.USER, user_id)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def current_space_id(self) -> Optional[str]:
        return self._current_space_id

    def current_dataset_id(self) -> Optional[str]:
        return self._current_dataset_id

    def current_space(self) -> Entity:
        if self._current_space_id is None:
            return self._empty(EntityKind.SPACE)
        return self.space(self._current_space_id)

    def current_dataset(self) -> Entity:
        if self._current_space_id is None or self._current_dataset_id is None:
            return self._empty(EntityKind.DATASET)
        return self.dataset(self._current_space_id, self._current_dataset_id)

    def select(self, space_id: Optional[str] = None, dataset_id: Optional[str] = None) -> Store:
        """New snapshot with a different current space/dataset."""
        new_store = self.copy()
        new_store._collections = self._collections
        new_store._current_space_id = space_id
        new_store._current_dataset_id = dataset_id
        new_store.error, new_store.status = self.error, self.status
        return new_store

    def __repr__(self) -> str:
        sizes = {name: len(items) for name, items in self._collections.items()}
        return f"Store(version={self.version}, collections={sizes}, error={self.error!r})"


# ============================================================================
# Reducer
# ============================================================================

_OPERATIONS = {
    ActionType.CREATE: "store_insert",
    ActionType.UPDATE: "store_update",
    ActionType.DELETE: "store_delete",
    ActionType.LOAD: "store_load",
}


def _field(action: Any, name: str) -> Any:
    if isinstance(action, Mapping):
        return action.get(name)
    return getattr(action, name, None)


def _action_type(value: Any) -> Optional[ActionType]:
    try:
        return ActionType(value)
    except ValueError:
        return None


def reduce(state: Store, action: Any) -> Store:
    """Apply an action to a store snapshot; never raises.

    Falsy actions, actions with neither payload nor error, unknown types
    and empty payloads return ``state`` itself.
    """
    if not action or not isinstance(state, Store):
        return state

    payload = _field(action, "payload")
    error = _field(action, "error")
    if payload is None and error is None:
        return state

    action_type = _action_type(_field(action, "type"))
    if action_type is None:
        return state

    if error is not None or action_type is ActionType.ERROR:
        ret = state.copy()
        ret._collections = state._collections
        ret.error = error
        ret.status = _field(action, "status")
        ret.version = state.version + 1
        return ret

    items = list(payload) if isinstance(payload, (list, tuple)) else [payload]
    if not items or not isinstance(items[0], Entity):
        return state

    operation = getattr(items[0], _OPERATIONS[action_type])
    try:
        ret = operation(state, items)
    except Exception as e:
        logger.error(f"Reducer failed for {action_type.value} {items[0].kind.value}: {e}")
        return state

    ret.version = state.version + 1
    return ret


# ============================================================================
# Dispatch helpers
# ============================================================================

async def dispatch(ctx: "StoreContext", action_type: Union[ActionType, str], pending: Awaitable[T]) -> T:
    """Await an in-flight operation, dispatch its result, and hand it back."""
    kind = _action_type(action_type)
    if kind is None or kind is ActionType.ERROR:
        close = getattr(pending, "close", None)
        if callable(close):
            close()
        raise StrataException(f"Invalid action type {action_type}")
    payload = await pending
    ctx.dispatch(Action(kind, payload))
    return payload


async def dispatch_create(ctx: "StoreContext", pending: Awaitable[T]) -> T:
    return await dispatch(ctx, ActionType.CREATE, pending)


async def dispatch_update(ctx: "StoreContext", pending: Awaitable[T]) -> T:
    return await dispatch(ctx, ActionType.UPDATE, pending)


async def dispatch_delete(ctx: "StoreContext", pending: Awaitable[T]) -> T:
    return await dispatch(ctx, ActionType.DELETE, pending)


async def dispatch_load(ctx: "StoreContext", pending: Awaitable[T]) -> T:
    return await dispatch(ctx, ActionType.LOAD, pending)


__all__ = [
    "Store",
    "Action",
    "ActionType",
    "reduce",
    "dispatch",
    "dispatch_create",
    "dispatch_update",
    "dispatch_delete",
    "dispatch_load",
]
