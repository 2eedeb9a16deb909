"""Generic store-bound record behavior shared by every entity kind.

Every concrete entity is a dataclass registered under an ``EntityKind``.
The kind selects the collection key in the Store; the shape of a partial
identifier selects the filter. All store operations return a new Store and
leave the input snapshot untouched.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from ..utils.assetid import AssetId
from ..utils.errors import EmptyResultError, StrataException

if TYPE_CHECKING:
    from .context import StoreContext
    from .store import Store

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Entity")

PartialId = Union[None, str, Mapping[str, Any], AssetId, "Entity"]

ID_FIELDS = ("space_id", "dataset_id", "file_id", "item_id")


class EntityKind(str, Enum):
    SPACE = "space"
    DATASET = "dataset"
    FILE = "file"
    ANNOTATION = "annotation"
    ACTIVITY = "activity"
    USER = "user"
    BOT = "bot"
    BOARD = "board"


_REGISTRY: Dict[EntityKind, Type["Entity"]] = {}


def register(kind: EntityKind) -> Callable[[Type[E]], Type[E]]:
    """Class decorator binding an entity class to its kind."""
    def decorator(cls: Type[E]) -> Type[E]:
        cls.kind = kind
        _REGISTRY[kind] = cls
        return cls
    return decorator


def entity_class(kind: Union[str, EntityKind]) -> Type["Entity"]:
    return _REGISTRY[EntityKind(kind)]


def key(kind: Union[str, EntityKind]) -> str:
    """Storage key of a kind's collection, e.g. ``file -> "_file"``."""
    return "_" + EntityKind(kind).value


def id_identity(ident: Any) -> Any:
    """Comparable identity of an id: the id fields without ``type`` or private keys."""
    if isinstance(ident, Mapping):
        return tuple(sorted(
            (k, v) for k, v in ident.items()
            if not k.startswith("_") and k != "type" and v is not None
        ))
    return ident


# ============================================================================
# Partial-id predicates
# ============================================================================

def _child_field(bag: Mapping[str, Any]) -> str:
    """Field that holds a parent's ``item_id`` on its direct children."""
    if "file_id" in bag:
        return "item_id"
    if "dataset_id" in bag:
        return "file_id"
    if "space_id" in bag:
        return "dataset_id"
    return "space_id"


def make_filter(partial_id: PartialId, mode: str = "get") -> Callable[["Entity"], bool]:
    """Build a record predicate from a partial identifier.

    Args:
        partial_id: None (match all), a string (substring of the id token),
            a field mapping, an AssetId, or an entity whose id is used
        mode: "get" compares every present field including ``item_id``;
            "list" treats ``item_id`` as the parent's id and compares it
            against the next-level child field

    Returns:
        Predicate over entities
    """
    if partial_id is None:
        return lambda entity: True

    if isinstance(partial_id, Entity):
        partial_id = partial_id.id
    if isinstance(partial_id, AssetId):
        partial_id = partial_id.as_fields()

    if isinstance(partial_id, str):
        needle = partial_id
        return lambda entity: needle in entity.id_token()

    if not isinstance(partial_id, Mapping):
        return lambda entity: False

    bag = {
        k: v for k, v in partial_id.items()
        if k in ID_FIELDS and v is not None
    }
    if mode == "list" and "item_id" in bag:
        parent_item = bag.pop("item_id")
        bag[_child_field(bag)] = parent_item

    def predicate(entity: "Entity") -> bool:
        ident = entity.id
        if not isinstance(ident, Mapping):
            return False
        return all(ident.get(name) == value for name, value in bag.items())

    return predicate


# ============================================================================
# Entity
# ============================================================================

@dataclass
class Entity:
    """Immutable record mirrored from the server."""

    kind: ClassVar[EntityKind]

    id: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)
    _context: Optional["StoreContext"] = field(default=None, repr=False, compare=False)

    # ------------------------------------------------------------------
    # Construction and copy
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls: Type[E], data: Mapping[str, Any], context: Optional["StoreContext"] = None) -> E:
        """Build an entity from a transport item; unknown keys land in ``extra``."""
        names = {f.name for f in dataclasses.fields(cls) if not f.name.startswith("_")}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for name, value in data.items():
            if name in names and name != "extra":
                kwargs[name] = value
            elif not name.startswith("_"):
                extra[name] = value
        if isinstance(kwargs.get("id"), Mapping):
            kwargs["id"] = dict(kwargs["id"])
        return cls(extra=extra, _context=context, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        for f in dataclasses.fields(self):
            if f.name.startswith("_") or f.name == "extra":
                continue
            out[f.name] = getattr(self, f.name)
        return out

    def copy(self: E, **changes: Any) -> E:
        """Shallow duplicate with a distinct identity, optionally changing fields."""
        return dataclasses.replace(self, **changes)

    def bind(self: E, context: Optional["StoreContext"]) -> E:
        return self.copy(_context=context)

    def merge(self: E, data: Mapping[str, Any]) -> E:
        """Copy with server-returned fields applied; private state is carried over."""
        fresh = type(self).from_dict({**self.to_dict(), **data}, self._context)
        private = {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if f.name.startswith("_") and f.name != "_context"
        }
        return fresh.copy(**private) if private else fresh

    @classmethod
    def key(cls) -> str:
        return key(cls.kind)

    # ------------------------------------------------------------------
    # Identity helpers
    # ------------------------------------------------------------------

    def props(self) -> Dict[str, Any]:
        out = self.to_dict()
        out.pop("id", None)
        return out

    def itemid(self) -> Optional[str]:
        if isinstance(self.id, Mapping):
            return self.id.get("item_id")
        return None

    def itemname(self) -> Optional[str]:
        return getattr(self, "name", None) or self.itemid()

    def asset_id(self) -> AssetId:
        return AssetId.from_entity(self)

    def id_token(self) -> str:
        """String form of the id used by substring lookups."""
        if isinstance(self.id, Mapping):
            aid = self.asset_id()
            if aid.valid():
                return aid.to_string()
            return "/".join(str(self.id[k]) for k in ID_FIELDS if self.id.get(k) is not None)
        return "" if self.id is None else str(self.id)

    def same_id(self, other: "Entity") -> bool:
        return id_identity(self.id) == id_identity(other.id)

    # ------------------------------------------------------------------
    # Generic store operations
    # ------------------------------------------------------------------

    @classmethod
    def store_list(cls: Type[E], store: "Store", partial_id: PartialId = None) -> List[E]:
        match = make_filter(partial_id, "list")
        return [e for e in store.collection(cls.key()) if match(e)]

    @classmethod
    def store_get(cls: Type[E], store: "Store", partial_id: PartialId) -> Optional[E]:
        if partial_id is None:
            return None
        match = make_filter(partial_id, "get")
        for entity in store.collection(cls.key()):
            if match(entity):
                return entity
        return None

    def _candidates(self, items: Optional[Iterable["Entity"]]) -> List["Entity"]:
        if items is None:
            return [self]
        return [i for i in items if isinstance(i, Entity) and i.kind == self.kind]

    def _derive(self, store: "Store", records: Tuple["Entity", ...]) -> "Store":
        new_store = store.copy()
        new_store._collections = dict(store._collections)
        new_store._collections[self.key()] = records
        return new_store

    def admit(self, records: List["Entity"]) -> List["Entity"]:
        """Hook letting a kind refuse records before they enter its collection."""
        return records

    def store_insert(self, store: "Store", items: Optional[Iterable["Entity"]] = None) -> "Store":
        """Append candidates whose id is not present yet."""
        current = store.collection(self.key())
        seen = {id_identity(e.id) for e in current}
        added: List[Entity] = []
        for candidate in self.admit(self._candidates(items)):
            identity = id_identity(candidate.id)
            if identity in seen:
                continue
            seen.add(identity)
            added.append(candidate)
        if not added:
            return self._derive(store, current)
        return self._derive(store, current + tuple(added))

    def store_update(self, store: "Store", items: Optional[Iterable["Entity"]] = None) -> "Store":
        """Replace records whose id matches a candidate; others are ignored."""
        current = store.collection(self.key())
        replacements = {id_identity(c.id): c for c in self._candidates(items)}
        if not any(id_identity(e.id) in replacements for e in current):
            return self._derive(store, current)
        records = tuple(
            replacements[id_identity(e.id)].copy() if id_identity(e.id) in replacements else e
            for e in current
        )
        return self._derive(store, records)

    def store_delete(self, store: "Store", items: Optional[Iterable["Entity"]] = None) -> "Store":
        """Drop records whose id matches a candidate."""
        current = store.collection(self.key())
        doomed = {id_identity(c.id) for c in self._candidates(items)}
        records = tuple(e for e in current if id_identity(e.id) not in doomed)
        if len(records) == len(current):
            return self._derive(store, current)
        return self._derive(store, records)

    def store_load(self, store: "Store", items: Optional[Iterable["Entity"]] = None) -> "Store":
        """Insert-or-replace: existing records with a candidate's id are replaced."""
        current = store.collection(self.key())
        fresh: Dict[Any, Entity] = {}
        for candidate in self.admit(self._candidates(items)):
            fresh.setdefault(id_identity(candidate.id), candidate)
        if not fresh:
            return self._derive(store, current)
        kept = tuple(e for e in current if id_identity(e.id) not in fresh)
        return self._derive(store, kept + tuple(fresh.values()))

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def lineage(self) -> Dict[str, Any]:
        """Ancestor id fields of this record, including itself at its own level."""
        if not isinstance(self.id, Mapping):
            return {}
        return {k: self.id[k] for k in ("space_id", "dataset_id", "file_id") if self.id.get(k) is not None}

    def _store(self) -> Optional["Store"]:
        if self._context is None:
            return None
        return self._context.store()

    def _accessor(self, name: str) -> Optional[Callable[..., Any]]:
        store = self._store()
        accessor = getattr(store, name, None) if store is not None else None
        return accessor if callable(accessor) else None

    def space(self) -> Optional["Entity"]:
        accessor = self._accessor("space")
        sid = self.lineage().get("space_id")
        if accessor is None or sid is None:
            return None
        return accessor(sid)

    def dataset(self, dataset_id: Optional[str] = None) -> Optional["Entity"]:
        accessor = self._accessor("dataset")
        lineage = self.lineage()
        did = dataset_id or lineage.get("dataset_id")
        if accessor is None or lineage.get("space_id") is None or did is None:
            return None
        return accessor(lineage["space_id"], did)

    def datasets(self) -> List["Entity"]:
        accessor = self._accessor("datasets")
        sid = self.lineage().get("space_id")
        if accessor is None or sid is None:
            return []
        return accessor({"space_id": sid})

    def file(self, file_id: Optional[str] = None) -> Optional["Entity"]:
        accessor = self._accessor("file")
        lineage = self.lineage()
        fid = file_id or lineage.get("file_id")
        if accessor is None or lineage.get("dataset_id") is None or fid is None:
            return None
        return accessor(lineage["space_id"], lineage["dataset_id"], fid)

    def files(self) -> List["Entity"]:
        accessor = self._accessor("files")
        lineage = self.lineage()
        if accessor is None or lineage.get("dataset_id") is None:
            return []
        return accessor({"space_id": lineage["space_id"], "dataset_id": lineage["dataset_id"]})

    def annotations(self) -> List["Entity"]:
        accessor = self._accessor("annotations")
        lineage = self.lineage()
        if accessor is None or lineage.get("dataset_id") is None:
            return []
        return accessor(lineage)

    def activity(self) -> List["Entity"]:
        accessor = self._accessor("activity")
        lineage = self.lineage()
        if accessor is None or not lineage:
            return []
        return accessor(lineage)


# ============================================================================
# Transport helpers shared by the concrete entities
# ============================================================================

def check_empty(payload: Mapping[str, Any], message: str = "Empty result set") -> List[Dict[str, Any]]:
    """Items of a payload, or EmptyResultError when there are none."""
    items = list(payload.get("items") or [])
    if payload.get("count", len(items)) > 0 and items:
        return items
    raise EmptyResultError(message)


def require_transport(context: Optional["StoreContext"]) -> Any:
    if context is None or context.transport is None:
        raise StrataException("transport not configured")
    return context.transport


__all__ = [
    "check_empty",
    "require_transport",
    "Entity",
    "EntityKind",
    "PartialId",
    "register",
    "entity_class",
    "key",
    "id_identity",
    "make_filter",
]
