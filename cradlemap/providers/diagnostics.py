"""Unregistered-key diagnostics computed from an index snapshot."""

from __future__ import annotations

from cradlemap.config import Diagnostic, Severity
from cradlemap.graph.index import Index


def evaluate_diagnostics(
    index: Index,
    report_duplicates: bool = False,
) -> dict[str, list[Diagnostic]]:
    """Group diagnostics by file.

    Every file with at least one usage gets an entry, possibly empty, so a
    publisher replacing per-file diagnostics also clears fixed files.
    """
    by_file: dict[str, list[Diagnostic]] = {}

    for ref in index.references:
        diags = by_file.setdefault(ref.file, [])
        if ref.key not in index.keys:
            diags.append(Diagnostic(
                file=ref.file,
                range=ref.range,
                message=f'key "{ref.key}" is not registered in the container',
            ))

    if report_duplicates:
        for duplicate in index.duplicates:
            winner = index.keys[duplicate.key]
            if duplicate.registration_range is None:
                continue
            by_file.setdefault(duplicate.registered_in, []).append(Diagnostic(
                file=duplicate.registered_in,
                range=duplicate.registration_range,
                message=(
                    f'key "{duplicate.key}" is registered again in '
                    f"{winner.registered_in}; this registration is ignored"
                ),
                severity=Severity.WARNING,
                code="duplicate-key",
            ))

    return by_file
