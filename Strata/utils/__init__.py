from .assetid import AssetId
from .errors import (
    StrataException,
    ValidationError,
    EmptyResultError,
    TransportError,
    IngestionError,
    ArchiveError,
    CacheError,
)

__all__ = [
    "AssetId",
    "StrataException",
    "ValidationError",
    "EmptyResultError",
    "TransportError",
    "IngestionError",
    "ArchiveError",
    "CacheError",
]
