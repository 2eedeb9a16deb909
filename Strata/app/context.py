"""Explicit wiring between entities, the state container and collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from ..config.settings import StrataConfig
from .content import ContentProvider, DiskCacheContentProvider, MemoryContentProvider
from .store import Store, reduce

if TYPE_CHECKING:
    from ..api.client import Transport

logger = logging.getLogger(__name__)


def default_provider(config: StrataConfig) -> ContentProvider:
    """Disk-backed provider when the content cache is enabled, else in-memory only."""
    if config.cache.enabled:
        logger.info(f"Content cache enabled at {config.cache.directory}")
        return DiskCacheContentProvider(config.cache.directory)
    return MemoryContentProvider()


@dataclass
class StoreContext:
    """Store handle, dispatch function and collaborators passed to every call."""

    get_state: Callable[[], Dict[str, Any]]
    dispatch: Callable[[Any], Any]
    transport: Optional["Transport"] = None
    content_provider: ContentProvider = field(default_factory=MemoryContentProvider)
    config: StrataConfig = field(default_factory=StrataConfig)

    def store(self) -> Store:
        return self.get_state()["spaces"]


class StateContainer:
    """Minimal unidirectional state container around ``reduce``."""

    def __init__(self, store: Optional[Store] = None):
        self._state: Dict[str, Any] = {"spaces": store or Store()}
        self._listeners: List[Callable[[Dict[str, Any]], None]] = []

    def get_state(self) -> Dict[str, Any]:
        return self._state

    def dispatch(self, action: Any) -> Any:
        previous = self._state["spaces"]
        updated = reduce(previous, action)
        if updated is not previous:
            self._state = {**self._state, "spaces": updated}
            for listener in list(self._listeners):
                listener(self._state)
        return action

    def select(self, space_id: Optional[str] = None, dataset_id: Optional[str] = None) -> Store:
        """Change the current space/dataset; collections are kept as they are."""
        previous = self._state["spaces"]
        updated = previous.select(space_id, dataset_id)
        updated.version = previous.version + 1
        self._state = {**self._state, "spaces": updated}
        for listener in list(self._listeners):
            listener(self._state)
        return updated

    def subscribe(self, listener: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def context(
        self,
        transport: Optional["Transport"] = None,
        content_provider: Optional[ContentProvider] = None,
        config: Optional[StrataConfig] = None,
    ) -> StoreContext:
        """Build a context bound to this container; the current store adopts it."""
        config = config or StrataConfig()
        ctx = StoreContext(
            get_state=self.get_state,
            dispatch=self.dispatch,
            transport=transport,
            content_provider=content_provider or default_provider(config),
            config=config,
        )
        store = self._state["spaces"].select(
            self._state["spaces"].current_space_id(),
            self._state["spaces"].current_dataset_id(),
        )
        store.context = ctx
        self._state = {**self._state, "spaces": store}
        return ctx


__all__ = ["StoreContext", "StateContainer", "default_provider"]
