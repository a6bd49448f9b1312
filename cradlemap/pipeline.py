"""Workspace index build: enumerate, read and index files, merge."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from functools import partial

from cradlemap.config import AnalysisConfig, BuildStats, FileIndex
from cradlemap.graph.index import Index, IndexBuilder
from cradlemap.phases.indexing import index_file
from cradlemap.phases.structure import enumerate_sources

logger = logging.getLogger(__name__)


_PHASE_LABELS = {
    "structure": "Enumerating source files",
    "indexing": "Indexing registrations and usages",
}


def _read_and_index(file_path: str, container_names: list[str]) -> FileIndex:
    try:
        with open(file_path, "rb") as f:
            source = f.read()
    except OSError as e:
        logger.warning(f"Failed to read {file_path}: {e}")
        return FileIndex(file=file_path, error=str(e))

    try:
        return index_file(file_path, source, container_names)
    except Exception as e:
        logger.warning(f"Failed to extract registrations from {file_path}: {e}")
        return FileIndex(file=file_path, error=str(e))


def _enumerate(config: AnalysisConfig) -> list[str]:
    files: list[str] = []
    for root in config.roots:
        try:
            root_files = enumerate_sources(root, config)
        except OSError as e:
            logger.warning(f"Failed to enumerate {root}: {e}")
            continue
        if not root_files:
            logger.warning(f"No source files found under {root}")
        else:
            logger.info(f"Found {len(root_files)} source files under {root}")
        files.extend(root_files)
    # Overlapping roots must not index a file twice
    return list(dict.fromkeys(files))


def build_index(
    config: AnalysisConfig,
    progress_callback=None,
) -> tuple[Index, BuildStats]:
    """Build a fresh index over every configured root.

    Files are read and parsed on a bounded thread pool; results are merged
    on the calling thread in enumeration order, so a key registered in
    several files resolves to the last one enumerated.

    Args:
        config: Analysis configuration.
        progress_callback: Optional callable(phase_name, label) invoked
            when each phase starts. Used by the CLI for Rich progress.
    """
    stats = BuildStats(roots=len(config.roots))
    builder = IndexBuilder()
    total_start = time.monotonic()

    if not config.roots:
        logger.info("No workspace roots configured; index is empty")
        return builder.freeze(), stats

    logger.info(f"Building index over {len(config.roots)} root(s)")

    if progress_callback:
        progress_callback("structure", _PHASE_LABELS["structure"])
    start = time.monotonic()
    files = _enumerate(config)
    stats.files_found = len(files)
    stats.phase_timings["structure"] = time.monotonic() - start

    if progress_callback:
        progress_callback("indexing", _PHASE_LABELS["indexing"])
    start = time.monotonic()
    worker = partial(_read_and_index, container_names=list(config.container_names))
    with ThreadPoolExecutor(max_workers=max(1, config.max_workers)) as pool:
        for file_index in pool.map(worker, files):
            if file_index.error is not None:
                stats.files_failed += 1
            else:
                stats.files_indexed += 1
            builder.merge(file_index)
    stats.phase_timings["indexing"] = time.monotonic() - start

    index = builder.freeze()
    stats.keys = len(index.keys)
    stats.references = len(index.references)
    stats.duplicates = len(index.duplicates)
    stats.duration_ms = round((time.monotonic() - total_start) * 1000, 1)

    logger.info(
        f"Index build complete: {stats.keys} keys, {stats.references} usages, "
        f"{stats.files_failed} file(s) skipped"
    )
    return index, stats
