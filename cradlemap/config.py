"""Core data types and configuration for cradlemap indexing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BindingKind(str, Enum):
    CLASS = "class"
    FUNCTION = "function"
    VALUE = "value"


class Lifetime(str, Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class ReferenceKind(str, Enum):
    RESOLVE_CALL = "resolveCall"
    CRADLE_ACCESS = "cradleAccess"
    CONSTRUCTOR_INJECTION = "constructorInjection"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Position:
    """Zero-indexed line/character position."""
    line: int
    character: int


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    def contains(self, pos: Position) -> bool:
        if pos.line < self.start.line or pos.line > self.end.line:
            return False
        if pos.line == self.start.line and pos.character < self.start.character:
            return False
        if pos.line == self.end.line and pos.character > self.end.character:
            return False
        return True


@dataclass(frozen=True)
class KeyDefinition:
    """One registration of a key in the container.

    ``origin_file``/``export_name``/``range`` describe where the bound symbol
    is declared; ``registered_in``/``registration_range`` locate the
    registration itself.
    """
    key: str
    origin_file: str
    kind: BindingKind
    export_name: str | None = None
    range: Range | None = None
    lifetime: Lifetime | None = None
    registered_in: str = ""
    registration_range: Range | None = None


@dataclass(frozen=True)
class Reference:
    """One usage site requesting a key."""
    file: str
    range: Range
    key: str
    kind: ReferenceKind


@dataclass(frozen=True)
class ImportBinding:
    """Origin of a local name bound by an import or require."""
    module_path: str
    exported_name: str | None = None
    is_namespace: bool = False
    range: Range | None = None


@dataclass
class FileIndex:
    """Registrations and usages extracted from a single file."""
    file: str
    registrations: list[KeyDefinition] = field(default_factory=list)
    usages: list[Reference] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class Location:
    file: str
    range: Range | None = None


@dataclass(frozen=True)
class Diagnostic:
    file: str
    range: Range
    message: str
    severity: Severity = Severity.ERROR
    code: str = "unregistered-key"
    source: str = "cradlemap"


@dataclass
class BuildStats:
    roots: int = 0
    files_found: int = 0
    files_indexed: int = 0
    files_failed: int = 0
    keys: int = 0
    references: int = 0
    duplicates: int = 0
    duration_ms: float = 0.0
    phase_timings: dict[str, float] = field(default_factory=dict)


DEFAULT_IGNORE = [
    "**/node_modules/**",
    "**/dist/**",
    "**/out/**",
    "**/build/**",
    "**/.git/**",
    "**/.vscode/**",
    "**/.idea/**",
]


@dataclass
class AnalysisConfig:
    roots: list[str] = field(default_factory=list)
    ignore_patterns: list[str] = field(default_factory=list)
    container_names: list[str] = field(default_factory=lambda: ["container"])
    extensions: list[str] | None = None
    max_workers: int = 8
    max_file_size: int = 1_000_000  # 1MB
    report_duplicates: bool = False
