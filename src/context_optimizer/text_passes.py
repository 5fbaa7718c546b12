from __future__ import annotations

import re

from context_optimizer.config import PassDelta

TRUNCATION_MARKER = "// ... truncated ({omitted} lines omitted) ..."

_TRAILING_SPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n{4,}")
_LEADING_NEWLINES = re.compile(r"\A\n+")
_TRAILING_NEWLINES = re.compile(r"\n+\Z")


def minify_whitespace(content: str) -> str:
    """Normalize whitespace without touching line contents.

    Trailing spaces and tabs are trimmed, three or more consecutive blank lines
    collapse to two, leading blank lines go away and trailing newlines collapse
    to one. Applying it twice gives the same result as applying it once.

    Args:
        content (str): the text to normalize

    Returns:
        str: the normalized text
    """
    result = _TRAILING_SPACE.sub("", content)
    result = _BLANK_RUN.sub("\n\n\n", result)
    result = _LEADING_NEWLINES.sub("", result)
    return _TRAILING_NEWLINES.sub("\n", result)


def split_lines(content: str) -> list[str]:
    """Split on `\\n`; a final newline ends the last line rather than starting a new one."""
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def truncate_lines(content: str, max_lines: int) -> PassDelta:
    """Keep the first `max_lines` lines and append a marker line.

    Cuts only on line boundaries. A non-positive `max_lines` disables the pass.

    Args:
        content (str): the text to truncate
        max_lines (int): the number of lines to keep

    Returns:
        PassDelta: the (possibly) truncated content; `truncated` is set when lines were dropped
    """
    if max_lines <= 0:
        return PassDelta(content=content)
    lines = split_lines(content)
    if len(lines) <= max_lines:
        return PassDelta(content=content)
    omitted = len(lines) - max_lines
    kept = "\n".join(lines[:max_lines])
    marker = TRUNCATION_MARKER.format(omitted=omitted)
    return PassDelta(content=f"{kept}\n{marker}", truncated=True)
