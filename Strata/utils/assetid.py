"""Compact hierarchical asset identifiers.

An identifier names a record together with its parent chain::

    f/<space_id>/<dataset_id>/<item_id>

The first segment is a one-letter tag selecting the entity type and the
ordered list of fields that follow.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

SEP = "/"
INVALID = "invalid"

SHORT_TYPE: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "a": ("annotation", ("space_id", "dataset_id", "file_id", "item_id")),
    "b": ("bot", ("space_id", "item_id")),
    "d": ("dataset", ("space_id", "item_id")),
    "f": ("file", ("space_id", "dataset_id", "item_id")),
    "o": ("board", ("space_id", "dataset_id", "item_id")),
    "s": ("space", ("item_id",)),
    "y": ("activity", ("space_id", "dataset_id", "file_id", "item_id")),
    "z": ("activity", ("space_id", "dataset_id", "item_id")),
}


def _id_keys(fields: Mapping[str, Any]) -> set:
    return {
        k for k, v in fields.items()
        if not k.startswith("_") and k != "type" and v is not None
    }


@dataclass(frozen=True)
class AssetId:
    """Immutable identifier. Malformed input yields an invalid id, never an exception."""

    tag: Optional[str] = None
    values: Tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Smart constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_token(cls, token: str) -> AssetId:
        if not isinstance(token, str) or not token:
            return cls()
        tag, *rest = token.split(SEP)
        shape = SHORT_TYPE.get(tag)
        if shape is None or len(rest) != len(shape[1]):
            return cls()
        return cls(tag, tuple(rest))

    @classmethod
    def from_fields(cls, fields: Optional[Mapping[str, Any]]) -> AssetId:
        if not isinstance(fields, Mapping) or not fields.get("type"):
            return cls()
        keys = _id_keys(fields)
        for tag, (type_name, names) in SHORT_TYPE.items():
            if type_name == fields["type"] and set(names) == keys:
                return cls(tag, tuple(str(fields[name]) for name in names))
        return cls()

    @classmethod
    def from_entity(cls, entity: Any) -> AssetId:
        ident = getattr(entity, "id", None)
        kind = getattr(entity, "kind", None)
        if not isinstance(ident, Mapping) or kind is None:
            return cls()
        return cls.from_fields({**ident, "type": getattr(kind, "value", kind)})

    @classmethod
    def create(cls, type_name: str, parts: Sequence[Any]) -> AssetId:
        for tag, (name, fields) in SHORT_TYPE.items():
            if name == type_name and len(fields) == len(parts):
                return cls(tag, tuple(str(p) for p in parts))
        return cls()

    @classmethod
    def space(cls, space_id: str) -> AssetId:
        return cls.create("space", [space_id])

    @classmethod
    def dataset(cls, space_id: str, dataset_id: str) -> AssetId:
        return cls.create("dataset", [space_id, dataset_id])

    @classmethod
    def bot(cls, space_id: str, bot_id: str) -> AssetId:
        return cls.create("bot", [space_id, bot_id])

    @classmethod
    def file(cls, space_id: str, dataset_id: str, file_id: str) -> AssetId:
        return cls.create("file", [space_id, dataset_id, file_id])

    @classmethod
    def board(cls, space_id: str, dataset_id: str, board_id: str) -> AssetId:
        return cls.create("board", [space_id, dataset_id, board_id])

    @classmethod
    def annotation(cls, space_id: str, dataset_id: str, file_id: str, annotation_id: str) -> AssetId:
        return cls.create("annotation", [space_id, dataset_id, file_id, annotation_id])

    @classmethod
    def activity(cls, *parts: str) -> AssetId:
        return cls.create("activity", list(parts))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def valid(self) -> bool:
        shape = SHORT_TYPE.get(self.tag) if self.tag else None
        return shape is not None and len(shape[1]) == len(self.values)

    @property
    def type(self) -> Optional[str]:
        return SHORT_TYPE[self.tag][0] if self.valid() else None

    def field_names(self) -> Tuple[str, ...]:
        return SHORT_TYPE[self.tag][1] if self.valid() else ()

    def parts(self) -> Tuple[str, ...]:
        return self.values if self.valid() else ()

    def get(self, name: str) -> Optional[str]:
        fields = self.field_names()
        return self.values[fields.index(name)] if name in fields else None

    @property
    def item_id(self) -> Optional[str]:
        return self.get("item_id")

    def as_fields(self) -> Dict[str, str]:
        """Field bag including ``type``; empty for an invalid id."""
        if not self.valid():
            return {}
        out = dict(zip(self.field_names(), self.values))
        out["type"] = self.type
        return out

    def to_string(self) -> str:
        if not self.valid():
            return INVALID
        return SEP.join((self.tag,) + self.values)

    def __str__(self) -> str:
        return self.to_string()


__all__ = ["AssetId", "SHORT_TYPE", "SEP", "INVALID"]
