"""Source file enumeration under a workspace root."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable

from cradlemap.config import DEFAULT_IGNORE, AnalysisConfig
from cradlemap.languages import supported_extensions

logger = logging.getLogger(__name__)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``**``-aware glob into a regex over ``/``-separated paths.

    ``**/`` matches zero or more leading directories, a trailing ``/**``
    matches the directory itself and everything below it, ``*`` and ``?``
    never cross a ``/``.
    """
    pattern = pattern.replace("\\", "/").lstrip("/")
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == len(pattern):
            out.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


class IgnoreMatcher:
    """Matches root-relative paths against the baseline and caller globs."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = list(dict.fromkeys([*DEFAULT_IGNORE, *patterns]))
        self._compiled = [glob_to_regex(p) for p in self.patterns]

    def matches(self, rel_path: str) -> bool:
        rel_path = rel_path.replace("\\", "/")
        return any(rx.match(rel_path) for rx in self._compiled)


def enumerate_sources(root: str, config: AnalysisConfig) -> list[str]:
    """Walk ``root`` and return absolute paths of indexable source files.

    Directories matching an ignore glob are pruned without being entered.
    Order is deterministic (sorted per directory).

    Raises:
        NotADirectoryError: ``root`` does not exist or is not a directory.
    """
    root = os.path.abspath(root)
    if not os.path.isdir(root):
        raise NotADirectoryError(f"not a directory: {root}")

    matcher = IgnoreMatcher(config.ignore_patterns)
    extensions = set(config.extensions or supported_extensions())
    found: list[str] = []

    def _on_error(err: OSError) -> None:
        logger.warning(f"Cannot list {err.filename}: {err.strerror}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        rel_dir = os.path.relpath(dirpath, root)
        if rel_dir == ".":
            rel_dir = ""

        # Filter ignored directories in-place
        dirnames[:] = [
            d for d in sorted(dirnames)
            if not matcher.matches(f"{rel_dir}/{d}" if rel_dir else d)
        ]

        for filename in sorted(filenames):
            ext = os.path.splitext(filename)[1].lower()
            if ext not in extensions:
                continue

            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if matcher.matches(rel_path):
                continue

            full_path = os.path.join(dirpath, filename)
            try:
                size = os.path.getsize(full_path)
            except OSError as e:
                logger.warning(f"Failed to stat {full_path}: {e}")
                continue

            # Skip files over max size
            if size > config.max_file_size:
                logger.debug(f"Skipping {full_path}: {size} bytes exceeds limit")
                continue

            found.append(full_path)

    return found
