"""Content providers: where a File's raw bytes live.

Raw content is held by the provider, keyed by the file's id token, so File
records stay immutable and copies of a record see the same bytes.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..utils.errors import CacheError

logger = logging.getLogger(__name__)

Content = Union[bytes, bytearray, str]


def _as_bytes(data: Content) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class ContentProvider:
    """Interface for raw content storage. Subclasses decide where bytes live."""

    async def content(self, file: Any, encoding: str = "utf-8") -> Optional[str]:
        raise NotImplementedError

    def set_raw_content(self, file: Any, data: Content) -> None:
        raise NotImplementedError

    async def raw_content(self, file: Any) -> Optional[bytes]:
        raise NotImplementedError

    def raw_content_size(self, file: Any) -> int:
        raise NotImplementedError

    def has_raw_content(self, file: Any) -> bool:
        raise NotImplementedError

    def clear_raw_content(self, file: Any) -> None:
        raise NotImplementedError

    async def get_from_cache(self, file: Any) -> bytes:
        raise NotImplementedError

    async def store_in_cache(self, file: Any, data: Content) -> None:
        raise NotImplementedError


class MemoryContentProvider(ContentProvider):
    """Holds raw bytes in process memory; has no persistent cache."""

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}

    async def content(self, file: Any, encoding: str = "utf-8") -> Optional[str]:
        data = self._blobs.get(file.id_token())
        if data is None:
            return None
        return data.decode(encoding, errors="replace")

    def set_raw_content(self, file: Any, data: Content) -> None:
        self._blobs[file.id_token()] = _as_bytes(data)

    async def raw_content(self, file: Any) -> Optional[bytes]:
        return self._blobs.get(file.id_token())

    def raw_content_size(self, file: Any) -> int:
        return len(self._blobs.get(file.id_token(), b""))

    def has_raw_content(self, file: Any) -> bool:
        return file.id_token() in self._blobs

    def clear_raw_content(self, file: Any) -> None:
        self._blobs.pop(file.id_token(), None)

    async def get_from_cache(self, file: Any) -> bytes:
        raise CacheError("cache not implemented")

    async def store_in_cache(self, file: Any, data: Content) -> None:
        raise CacheError("cache not implemented")


class DiskCacheContentProvider(MemoryContentProvider):
    """Memory provider backed by a hash-keyed blob directory with a JSON index."""

    def __init__(self, directory: Union[str, Path]):
        super().__init__()
        self.storage_path = Path(directory)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.index_file = self.storage_path / "index.json"
        self._lock = threading.Lock()
        self.index: Dict[str, Dict[str, Any]] = self._load_index()

    def _load_index(self) -> Dict[str, Dict[str, Any]]:
        if self.index_file.exists():
            try:
                with open(self.index_file) as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Cache index unreadable, starting empty: {e}")
        return {}

    def _save_index(self) -> None:
        """Write a snapshot of the index atomically; callers hold the lock."""
        temp_file = self.index_file.with_suffix(".tmp")
        with open(temp_file, "w") as f:
            json.dump(dict(self.index), f, indent=2)
        temp_file.replace(self.index_file)

    @staticmethod
    def cache_key(file: Any) -> str:
        return hashlib.sha256(file.id_token().encode()).hexdigest()

    def _read(self, cache_key: str) -> bytes:
        return (self.storage_path / f"{cache_key}.bin").read_bytes()

    def _write(self, cache_key: str, data: bytes, file: Any) -> None:
        (self.storage_path / f"{cache_key}.bin").write_bytes(data)
        entry = {
            "id": file.id_token(),
            "name": getattr(file, "name", None),
            "size": len(data),
            "timestamp": time.time(),
        }
        with self._lock:
            self.index[cache_key] = entry
            try:
                self._save_index()
            except Exception:
                self.index.pop(cache_key, None)
                raise

    async def get_from_cache(self, file: Any) -> bytes:
        cache_key = self.cache_key(file)
        if cache_key not in self.index:
            raise CacheError("cache miss", context={"id": file.id_token()})
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, self._read, cache_key)
        except OSError as e:
            with self._lock:
                self.index.pop(cache_key, None)
            raise CacheError(f"cache read failed: {e}", context={"id": file.id_token()}) from e
        logger.debug(f"Cache hit for {file.id_token()} ({len(data)} bytes)")
        return data

    async def store_in_cache(self, file: Any, data: Content) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write, self.cache_key(file), _as_bytes(data), file)
        except Exception as e:
            raise CacheError(f"cache write failed: {e}", context={"id": file.id_token()}) from e

    def evict(self, file: Any) -> bool:
        cache_key = self.cache_key(file)
        with self._lock:
            if self.index.pop(cache_key, None) is None:
                return False
            self._save_index()
        (self.storage_path / f"{cache_key}.bin").unlink(missing_ok=True)
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            entries = list(self.index.values())
        return {
            "entries": len(entries),
            "total_bytes": sum(meta.get("size", 0) for meta in entries),
            "directory": str(self.storage_path),
        }


__all__ = ["ContentProvider", "MemoryContentProvider", "DiskCacheContentProvider"]
