"""Status report: JSON-serialisable dump of an index snapshot."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cradlemap import __version__
from cradlemap.config import BuildStats, KeyDefinition, Range
from cradlemap.graph.index import Index


def _range_dict(rng: Range | None) -> dict | None:
    return asdict(rng) if rng is not None else None


def _key_dict(definition: KeyDefinition) -> dict[str, Any]:
    return {
        "key": definition.key,
        "kind": definition.kind.value,
        "lifetime": definition.lifetime.value if definition.lifetime else None,
        "origin_file": definition.origin_file,
        "export_name": definition.export_name,
        "range": _range_dict(definition.range),
        "registered_in": definition.registered_in,
    }


def build_status(index: Index, stats: BuildStats | None = None) -> dict[str, Any]:
    """Every registered key plus a usage breakdown by kind."""
    stats = stats or BuildStats()
    return {
        "version": "1.0",
        "metadata": {
            "cradlemap_version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "build_duration_ms": stats.duration_ms,
            "phase_timings": stats.phase_timings,
        },
        "stats": {
            "roots": stats.roots,
            "files_found": stats.files_found,
            "files_indexed": stats.files_indexed,
            "files_failed": stats.files_failed,
            "keys": len(index.keys),
            "usages": len(index.references),
            "duplicates": len(index.duplicates),
        },
        "keys": [_key_dict(index.keys[k]) for k in sorted(index.keys)],
        "usages_by_kind": index.usage_counts(),
        "duplicates": [_key_dict(d) for d in index.duplicates],
    }


def write_output(data: dict[str, Any], output_path: str) -> None:
    """Write a status report to a JSON file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
