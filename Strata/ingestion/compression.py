"""Name- and content-based detection of gzip and archive files."""

from __future__ import annotations

import gzip
import logging
import zlib
from typing import Union

from ..utils.errors import IngestionError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b\x08"


def is_tar_archive(name: str) -> bool:
    return name.lower().endswith((".tar", ".tgz", ".tar.gz"))


def is_zip_archive(name: str) -> bool:
    return name.lower().endswith(".zip")


def is_archive_file(name: str) -> bool:
    return is_tar_archive(name) or is_zip_archive(name)


def is_gzip_file(name: str) -> bool:
    return name.lower().endswith((".gz", ".tgz"))


def is_gzip_buffer(data: Union[bytes, bytearray, memoryview, None]) -> bool:
    if not data or len(data) < 3:
        return False
    return bytes(data[:3]) == GZIP_MAGIC


def gunzip_if_needed(name: str, data: bytes) -> bytes:
    """Decompress ``data`` only when the name says gzip and the header agrees.

    Transports may already have decoded a gzip body, so the magic bytes
    decide, not the extension alone.
    """
    if not (is_gzip_file(name) and is_gzip_buffer(data)):
        return data
    try:
        out = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise IngestionError(f"Failed to decompress {name}: {e}", context={"file": name}) from e
    logger.debug(f"Decompressed {name}: in={len(data)}, out={len(out)}")
    return out


__all__ = [
    "GZIP_MAGIC",
    "is_tar_archive",
    "is_zip_archive",
    "is_archive_file",
    "is_gzip_file",
    "is_gzip_buffer",
    "gunzip_if_needed",
]
