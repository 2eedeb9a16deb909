"""Dataset content ingestion.

Loading a dataset runs these stages:

1. fetch the file list and the annotation list concurrently
2. per file, concurrently: download (or reuse held bytes), gunzip, expand archives
3. after every file has settled: reconcile the file set, resolve
   annotations against it, and build a fresh text index

A failure in stage 2 is logged and only drops that file.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..config.settings import IngestConfig
from ..utils.async_utils import async_timer, settle
from .archives import extract_members
from .compression import gunzip_if_needed, is_archive_file, is_gzip_file
from .index import TextIndex, should_index

if TYPE_CHECKING:
    from ..app.annotation import Annotation
    from ..app.dataset import Dataset
    from ..app.file import File

logger = logging.getLogger(__name__)


@dataclass
class FileOutcome:
    """Result of processing one listed file."""
    source: "File"
    files: List["File"] = field(default_factory=list)
    expanded: bool = False
    error: Optional[BaseException] = None


@dataclass
class LoadedDataset:
    """Fully hydrated dataset working set."""
    dataset: "Dataset"
    files: List["File"]
    annotations: List["Annotation"]
    removed: List["File"] = field(default_factory=list)
    failed: List["File"] = field(default_factory=list)

    @property
    def index(self) -> Optional[TextIndex]:
        return self.dataset.index

    def annotations_by_file(self) -> Dict[str, List["Annotation"]]:
        grouped: Dict[str, List["Annotation"]] = {}
        for annotation in self.annotations:
            grouped.setdefault(annotation.id["file_id"], []).append(annotation)
        return grouped


@dataclass
class IngestedFile:
    """Result of ingesting a freshly created file into its dataset."""
    dataset: "Dataset"
    files: List["File"]
    removed: List["File"] = field(default_factory=list)


def _ingest_config(entity: Any) -> IngestConfig:
    context = getattr(entity, "_context", None)
    if context is not None and context.config is not None:
        return context.config.ingest
    return IngestConfig()


# ============================================================================
# Archive expansion
# ============================================================================

async def expand_archive(archive: "File", data: bytes, config: IngestConfig, level: int = 1) -> List["File"]:
    """Turn an archive file into member files named ``<archive>/<entry>``.

    Members get the id ``<archive item_id>:<n>`` where ``n`` counts from 0
    in extraction order. Archive members are expanded again while ``level``
    is below ``config.max_archive_depth``; deeper ones are skipped.
    """
    members = await extract_members(archive.name, data)
    out: List["File"] = []
    item_id = archive.itemid()

    for n, member in enumerate(members):
        name = f"{archive.name}/{member.name}"
        child = archive.copy(
            id={**archive.id, "item_id": f"{item_id}:{n}"},
            name=name,
            size=member.size,
        )
        if is_archive_file(name):
            if level >= config.max_archive_depth:
                logger.warning(f"Skipping nested archive {name}: depth limit {config.max_archive_depth} reached")
                continue
            out.extend(await expand_archive(child, gunzip_if_needed(name, member.data), config, level + 1))
            continue
        child.set_raw_content(member.data)
        out.append(child)

    return out


async def prepare_file(file: "File", config: IngestConfig) -> FileOutcome:
    """Download, decompress and expand one file; never raises."""
    name = file.name or ""
    try:
        reusable = config.reuse_cached_content and not (is_gzip_file(name) or is_archive_file(name))
        if not reusable:
            file.clear_raw_content()
        loaded = await file.load()
        logger.debug(f"Downloaded file={name}")

        data = await loaded.raw_content() or b""
        decoded = gunzip_if_needed(name, data)
        if decoded is not data:
            loaded.set_raw_content(decoded)

        if not is_archive_file(name):
            return FileOutcome(file, [loaded])
        if config.max_archive_depth < 1:
            logger.warning(f"Dropping archive {name}: archive expansion disabled")
            return FileOutcome(file, [], expanded=True)
        members = await expand_archive(loaded, decoded, config)
        loaded.clear_raw_content()
        return FileOutcome(file, members, expanded=True)
    except Exception as e:
        logger.error(f"Failed to load contents of file={name}: {e}")
        return FileOutcome(file, error=e)


def build_index(
    files: List["File"],
    texts: Dict[str, str],
    config: IngestConfig,
    index: Optional[TextIndex] = None,
) -> TextIndex:
    """Add each file's text to ``index`` (a new one by default), split by its parse breaker."""
    index = index if index is not None else TextIndex()
    for file in files:
        text = texts.get(file.itemid())
        if text is None:
            continue
        parse = file.parse if isinstance(file.parse, dict) else {}
        breaker = parse.get("breaker") or config.break_pattern
        index.add(file.itemid(), text, breaker, config.token_pattern)
    return index


async def _texts(files: List["File"], config: IngestConfig) -> Dict[str, str]:
    texts: Dict[str, str] = {}
    for file in files:
        if not should_index(file.name or "", config.skip_extensions):
            continue
        text = await file.provider().content(file)
        if text is not None:
            texts[file.itemid()] = text
    return texts


def resolve_annotations(
    dataset: "Dataset",
    files: List["File"],
    annotations: List["Annotation"],
) -> List["Annotation"]:
    """Keep annotations whose file is in ``files``; warn about the rest."""
    known = {f.itemid() for f in files}
    resolved = []
    for annotation in annotations:
        file_id = annotation.id.get("file_id") if isinstance(annotation.id, dict) else None
        if file_id not in known:
            logger.warning(f"File id {file_id} not in dataset id {dataset.itemid()}")
            continue
        resolved.append(annotation)
    return resolved


# ============================================================================
# Entry points
# ============================================================================

@async_timer("dataset load", log_level=logging.INFO)
async def load_dataset(dataset: "Dataset", config: Optional[IngestConfig] = None) -> LoadedDataset:
    """Hydrate ``dataset``: download every file, expand archives, resolve annotations, index."""
    config = config or _ingest_config(dataset)

    listed, raw_annotations = await asyncio.gather(dataset.get_files(), dataset.get_annotations())
    logger.info(f"Loading dataset={dataset.name}: {len(listed)} files, {len(raw_annotations)} annotations")

    settled = await settle(prepare_file(f, config) for f in listed)
    outcomes = [
        result if isinstance(result, FileOutcome) else FileOutcome(source, error=result)
        for source, result in zip(listed, settled)
    ]

    files: List["File"] = []
    removed: List["File"] = []
    failed: List["File"] = []
    for outcome in outcomes:
        if outcome.error is not None:
            failed.append(outcome.source)
            continue
        if outcome.expanded:
            removed.append(outcome.source)
        files.extend(outcome.files)

    annotations = resolve_annotations(dataset, files, raw_annotations)
    index = build_index(files, await _texts(files, config), config)
    hydrated = dataset.copy(file_count=len(files), _index=index)

    logger.info(
        f"Dataset={dataset.name} ready: {len(files)} files, {len(removed)} archives expanded, "
        f"{len(failed)} failed, {len(annotations)} annotations"
    )
    return LoadedDataset(hydrated, files, annotations, removed, failed)


async def ingest_created_file(dataset: "Dataset", file: "File", config: Optional[IngestConfig] = None) -> IngestedFile:
    """Fold a just-uploaded file into ``dataset``: expand it if it is an archive and index it.

    Raises:
        IngestionError: if the archive cannot be read
    """
    config = config or _ingest_config(dataset)
    name = file.name or ""
    data = await file.raw_content() or b""
    decoded = gunzip_if_needed(name, data)

    removed: List["File"] = []
    if is_archive_file(name):
        members = await expand_archive(file, decoded, config) if config.max_archive_depth >= 1 else []
        file.clear_raw_content()
        removed.append(file)
    else:
        if decoded is not data:
            file.set_raw_content(decoded)
        members = [file]

    base = dataset.index.copy() if dataset.index is not None else None
    index = build_index(members, await _texts(members, config), config, base)

    updated = dataset.copy(file_count=dataset.file_count + len(members), _index=index)
    return IngestedFile(updated, members, removed)


__all__ = [
    "FileOutcome",
    "LoadedDataset",
    "IngestedFile",
    "expand_archive",
    "prepare_file",
    "build_index",
    "resolve_annotations",
    "load_dataset",
    "ingest_created_file",
]
