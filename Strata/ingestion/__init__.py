"""Content ingestion: decompression, archive expansion and text indexing.

The dataset load pipeline lives in ``Strata.ingestion.pipeline``.
"""

from .compression import (
    is_archive_file,
    is_gzip_buffer,
    is_gzip_file,
    is_tar_archive,
    is_zip_archive,
    gunzip_if_needed,
)
from .archives import ArchiveMember, extract_members
from .index import TextIndex, should_index

__all__ = [
    "is_archive_file",
    "is_gzip_buffer",
    "is_gzip_file",
    "is_tar_archive",
    "is_zip_archive",
    "gunzip_if_needed",
    "ArchiveMember",
    "extract_members",
    "TextIndex",
    "should_index",
]
