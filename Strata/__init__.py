"""Strata - copy-on-write entity store and dataset content ingestion"""

from __future__ import annotations

__version__ = "0.1.0"

# Identifiers and errors
from .utils.assetid import AssetId
from .utils.errors import (
    StrataException,
    ValidationError,
    EmptyResultError,
    TransportError,
    IngestionError,
    CacheError,
)

# Configuration
from .config.settings import get_config, StrataConfig
from .config.logging_config import setup_logging

# Entities and store
from .app import (
    Action,
    ActionType,
    Store,
    StoreContext,
    StateContainer,
    reduce,
    MemoryContentProvider,
    DiskCacheContentProvider,
    Space,
    Dataset,
    File,
    Annotation,
    Activity,
    User,
    Bot,
    Board,
)

# Ingestion
from .ingestion import TextIndex
from .ingestion.pipeline import LoadedDataset, load_dataset

# API
from .api import ApiClient, Transport, actions

__all__ = [
    # Version
    "__version__",

    # Identifiers and errors
    "AssetId",
    "StrataException",
    "ValidationError",
    "EmptyResultError",
    "TransportError",
    "IngestionError",
    "CacheError",

    # Configuration
    "get_config",
    "StrataConfig",
    "setup_logging",

    # Entities and store
    "Action",
    "ActionType",
    "Store",
    "StoreContext",
    "StateContainer",
    "reduce",
    "MemoryContentProvider",
    "DiskCacheContentProvider",
    "Space",
    "Dataset",
    "File",
    "Annotation",
    "Activity",
    "User",
    "Bot",
    "Board",

    # Ingestion
    "TextIndex",
    "LoadedDataset",
    "load_dataset",

    # API
    "ApiClient",
    "Transport",
    "actions",
]
