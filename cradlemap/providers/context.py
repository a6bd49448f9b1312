"""Text heuristics for the cursor's surroundings on a single line.

The cursor usually sits inside half-typed, syntactically invalid code, so
these checks run on raw line text instead of a syntax tree. They are
best-effort: each pattern is an independent check, tried in a fixed order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ContextKind(str, Enum):
    RESOLVE_STRING = "inResolveString"
    CRADLE_DOT = "afterCradleDot"
    DESTRUCTURING = "inConstructorDestructuring"


@dataclass(frozen=True)
class CursorContext:
    """Classification result.

    For RESOLVE_STRING, ``replace_start``/``replace_end`` are the character
    offsets of the partial key between the quotes.
    """
    kind: ContextKind
    replace_start: int | None = None
    replace_end: int | None = None


# .resolve('|  .resolve("abc|
_RESOLVE_STRING = re.compile(r"""\.resolve\s*\(\s*(['"])([^'"]*?)$""")
_CRADLE_DOT = re.compile(r"\.cradle\.$")
# constructor({a, |
_CONSTRUCTOR_BRACE = re.compile(r"constructor\s*\(\s*\{[^}]*$")
# function name({a, |   function ({a, |   const name = ({a, |   const name = function ({a, |
_FUNCTION_BRACE = re.compile(
    r"(?:(?:async\s+)?function\s*\*?\s*[\w$]*\s*\("
    r"|^\s*(?:const|let|var)?\s*[\w$]+\s*=\s*(?:async\s*)?(?:function\s*\*?\s*[\w$]*)?\s*\()"
    r"\s*\{[^}]*$"
)

_CRADLE_MEMBER = re.compile(r"\.cradle\.([\w$]+)")
_CONSTRUCTOR_PARAMS = re.compile(r"constructor\s*\(\s*\{([^}]+)\}")
_FUNCTION_PARAMS = re.compile(
    r"(?:function\s*[\w$]*\s*\(|^\s*(?:const|let|var)?\s*[\w$]+\s*=\s*(?:async\s*)?\()"
    r"\s*\{([^}]+)\}"
)
_WORD = re.compile(r"[\w$]+")


def detect_context(text_before: str, text_after: str) -> CursorContext | None:
    """Classify the cursor position for completion purposes."""
    match = _RESOLVE_STRING.search(text_before)
    if match:
        quote = match.group(1)
        closing = text_after.find(quote)
        # A quote right at the cursor means the literal is already closed
        if closing != 0:
            end = len(text_before) + (closing if closing > 0 else len(text_after))
            return CursorContext(ContextKind.RESOLVE_STRING, match.start(2), end)

    if _CRADLE_DOT.search(text_before):
        return CursorContext(ContextKind.CRADLE_DOT)

    if _CONSTRUCTOR_BRACE.search(text_before) or _FUNCTION_BRACE.search(text_before):
        return CursorContext(ContextKind.DESTRUCTURING)

    return None


def _word_at(line: str, character: int) -> tuple[str, int, int] | None:
    for match in _WORD.finditer(line):
        if match.start() <= character <= match.end():
            return match.group(0), match.start(), match.end()
    return None


def _param_names(params: str) -> set[str]:
    names = set()
    for param in params.split(","):
        name = param.split(":")[0].split("=")[0].strip()
        if name:
            names.add(name)
    return names


def key_at_cursor(line: str, character: int) -> tuple[str, int, int] | None:
    """Find a container key under the cursor from the line text alone.

    Returns (key, start, end) character offsets, or None.
    """
    text_before = line[:character]
    text_after = line[character:]

    match = _RESOLVE_STRING.search(text_before)
    if match:
        quote = match.group(1)
        closing = text_after.find(quote)
        if closing >= 0:
            key_after = text_after[:closing]
        else:
            key_after = _WORD.match(text_after).group(0) if _WORD.match(text_after) else ""
        key = match.group(2) + key_after
        if key:
            start = match.start(2)
            return key, start, start + len(key)

    word = _word_at(line, character)
    if word is None:
        return None
    text, start, end = word

    for match in _CRADLE_MEMBER.finditer(line):
        if match.span(1) == (start, end):
            return word

    for pattern in (_CONSTRUCTOR_PARAMS, _FUNCTION_PARAMS):
        match = pattern.search(line)
        if match and match.start(1) <= start and end <= match.end(1):
            if text in _param_names(match.group(1)):
                return word

    return None


def read_line(file_path: str, line: int) -> str | None:
    """Return one line of a file from disk, without its line terminator."""
    try:
        with open(file_path, encoding="utf-8", errors="replace") as f:
            for number, text in enumerate(f):
                if number == line:
                    return text.rstrip("\r\n")
    except OSError as e:
        logger.warning(f"Failed to read {file_path}: {e}")
    return None
