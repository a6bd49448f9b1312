"""Owns the published index and serialises rebuilds."""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor

from cradlemap.config import AnalysisConfig, BuildStats, Diagnostic
from cradlemap.graph.index import Index
from cradlemap.languages import supported_extensions
from cradlemap.pipeline import build_index
from cradlemap.providers.diagnostics import evaluate_diagnostics

logger = logging.getLogger(__name__)

DiagnosticsCallback = Callable[[dict[str, list[Diagnostic]]], None]


class IndexService:
    """Holds the current Index snapshot behind a single reference.

    Readers call ``service.index`` and get a complete, immutable snapshot;
    a rebuild assembles a new Index off to the side and swaps the reference
    only when it is done. Rebuilds never overlap: scheduled ones run on a
    single worker thread and synchronous ones take the same build lock.
    """

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config
        self._index = Index()
        self._stats = BuildStats()
        self._subscribers: list[DiagnosticsCallback] = []
        self._build_lock = threading.Lock()
        self._queue_lock = threading.Lock()
        self._queued: Future | None = None
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="cradlemap-rebuild"
        )

    @property
    def index(self) -> Index:
        return self._index

    @property
    def stats(self) -> BuildStats:
        return self._stats

    def subscribe(self, callback: DiagnosticsCallback) -> None:
        """Receive the grouped diagnostics after every published rebuild."""
        self._subscribers.append(callback)

    def rebuild(self) -> Index:
        """Build a fresh index now, publish it and push diagnostics."""
        with self._build_lock:
            config = self.config
            index, stats = build_index(config)
            self._index = index
            self._stats = stats
            self._publish(index, config)
        return index

    def schedule_rebuild(self) -> Future:
        """Queue a rebuild on the background worker.

        A trigger arriving while a rebuild is still waiting to start shares
        that rebuild; one arriving while a rebuild runs queues one more, so
        the newest file-system state is always picked up.
        """
        with self._queue_lock:
            queued = self._queued
            if queued is not None and not queued.running() and not queued.done():
                return queued
            self._queued = self._executor.submit(self.rebuild)
            return self._queued

    def notify_changed(self, file_path: str | None = None) -> Future | None:
        """Rebuild trigger for file create/change/delete events."""
        if file_path is not None:
            ext = os.path.splitext(file_path)[1].lower()
            if ext not in set(self.config.extensions or supported_extensions()):
                return None
        return self.schedule_rebuild()

    def set_ignore_patterns(self, patterns: Iterable[str]) -> Future:
        """Replace the caller ignore globs and rebuild."""
        self.config = dataclasses.replace(self.config, ignore_patterns=list(patterns))
        return self.schedule_rebuild()

    def _publish(self, index: Index, config: AnalysisConfig) -> None:
        diagnostics = evaluate_diagnostics(index, config.report_duplicates)
        for callback in list(self._subscribers):
            try:
                callback(diagnostics)
            except Exception:
                logger.exception("Diagnostics subscriber failed")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> IndexService:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
