"""Read-only queries against a published index."""

from cradlemap.providers.completion import CompletionItem, CompletionResult, provide_completions
from cradlemap.providers.context import ContextKind, CursorContext, detect_context, key_at_cursor
from cradlemap.providers.definition import find_definition
from cradlemap.providers.diagnostics import evaluate_diagnostics
from cradlemap.providers.hover import HoverInfo, provide_hover

__all__ = [
    "CompletionItem",
    "CompletionResult",
    "ContextKind",
    "CursorContext",
    "HoverInfo",
    "detect_context",
    "evaluate_diagnostics",
    "find_definition",
    "key_at_cursor",
    "provide_completions",
    "provide_hover",
]
