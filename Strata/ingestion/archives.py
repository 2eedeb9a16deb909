"""Expansion of zip and tar archives into member files."""

from __future__ import annotations

import asyncio
import io
import logging
import tarfile
import zipfile
from dataclasses import dataclass
from typing import AsyncIterator, List

from ..utils.errors import ArchiveError
from .compression import gunzip_if_needed, is_archive_file, is_tar_archive, is_zip_archive

logger = logging.getLogger(__name__)


@dataclass
class ArchiveMember:
    """One extracted entry: its path inside the archive and its bytes."""
    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


async def iter_zip(name: str, data: bytes) -> AsyncIterator[ArchiveMember]:
    """Yield the non-directory entries of a zip archive in archive order."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"Invalid zip archive {name}: {e}", context={"file": name}) from e
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                member = ArchiveMember(info.filename, archive.read(info))
            except (zipfile.BadZipFile, OSError, RuntimeError) as e:
                raise ArchiveError(f"Failed to read {info.filename} in {name}: {e}", context={"file": name}) from e
            yield member
            await asyncio.sleep(0)


async def iter_tar(name: str, data: bytes) -> AsyncIterator[ArchiveMember]:
    """Stream regular, non-empty entries of a (possibly gzip-wrapped) tar archive.

    Control returns to the event loop between entries.
    """
    data = gunzip_if_needed(name, data)
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r|*") as archive:
            for info in archive:
                if not info.isfile() or info.size == 0:
                    continue
                handle = archive.extractfile(info)
                if handle is None:
                    continue
                yield ArchiveMember(info.name, handle.read())
                await asyncio.sleep(0)
    except tarfile.TarError as e:
        raise ArchiveError(f"Invalid tar archive {name}: {e}", context={"file": name}) from e


async def extract_members(name: str, data: bytes) -> List[ArchiveMember]:
    """Extract every member of the archive ``name``.

    Raises:
        ArchiveError: if the archive is unreadable or the name is not an archive
    """
    if is_zip_archive(name):
        source = iter_zip(name, data)
    elif is_tar_archive(name):
        source = iter_tar(name, data)
    else:
        raise ArchiveError(f"unsupported archive file={name}", context={"file": name})

    members = [member async for member in source]
    logger.info(f"Expanded archive {name}: {len(members)} members")
    return members


__all__ = ["ArchiveMember", "iter_zip", "iter_tar", "extract_members", "is_archive_file"]
