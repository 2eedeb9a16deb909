"""User: keyed by an opaque id string rather than a composite id."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..utils.errors import EmptyResultError
from .base import Entity, EntityKind, register, require_transport

if TYPE_CHECKING:
    from .context import StoreContext


@register(EntityKind.USER)
@dataclass
class User(Entity):
    display_name: Optional[str] = None
    photos: List[Any] = field(default_factory=list)
    profile: Dict[str, Any] = field(default_factory=dict)
    created_at: Any = None
    prefs: Dict[str, Any] = field(default_factory=dict)

    def copy(self, **changes: Any) -> User:
        changes.setdefault("prefs", dict(self.prefs))
        return super().copy(**changes)

    def itemid(self) -> Optional[str]:
        return self.id

    def url(self) -> Optional[str]:
        return None if self.id is None else f"/users/{self.id}"

    @classmethod
    async def load(cls, ctx: "StoreContext", user_id: Optional[str] = None) -> List[User]:
        """Fetch one user; the signed-in user (``me``) also gets its preferences."""
        load_prefs = not user_id or user_id == "me"
        transport = require_transport(ctx)
        payload = await transport.get_user(user_id or "me")
        users = [cls.from_dict(item, ctx) for item in payload.get("items", [])]
        if not users:
            raise EmptyResultError("User not found")
        user = users[0]
        if load_prefs:
            user = user.copy(prefs=dict(await transport.get_prefs()))
        return [user]

    async def update_prefs(self, prefs: Optional[Dict[str, Any]] = None) -> User:
        prefs = self.prefs if prefs is None else prefs
        saved = await require_transport(self._context).put_prefs({"prefs": prefs})
        return self.copy(prefs=dict(saved))


__all__ = ["User"]
