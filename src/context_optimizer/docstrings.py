from __future__ import annotations

import re
from typing import TYPE_CHECKING

from context_optimizer.config import PassDelta, SyntaxFamily, language_profile
from context_optimizer.scanners import (
    ScanResult,
    inside_spans,
    quoted_spans,
    strip_brace_comments,
    strip_line_doc_blocks,
)

if TYPE_CHECKING:
    from collections.abc import Callable

# Body of a triple-quoted string up to its first unescaped closer.
_TRIPLE_BODY = r"(?:(?!(?P=q))[^\\]|\\[\s\S])*"

_MODULE_DOCSTRING = re.compile(
    r"\A(?P<lead>(?:[ \t]*(?:#[^\n]*)?\n)*)"
    r"[ \t]*[rRuU]?(?P<q>\"\"\"|''')" + _TRIPLE_BODY + r"(?P=q)[ \t]*(?:\n|\Z)",
)

_DEFINITION_DOCSTRING = re.compile(
    r"(?P<header>^[ \t]*(?:async[ \t]+)?(?:def|class)[ \t]+\w+"
    r"(?:\[[^\]\n]*\])?"
    r"(?:\([^()]*(?:\([^()]*\)[^()]*)*\))?"
    r"[^\n:]*:[ \t]*(?:#[^\n]*)?\n)"
    r"(?:[ \t]*\n)*[ \t]*[rRuU]?(?P<q>\"\"\"|''')" + _TRIPLE_BODY + r"(?P=q)[ \t]*(?:\n|\Z)",
    re.MULTILINE,
)


def strip_python_docstrings(content: str) -> ScanResult:
    """Remove the module docstring and every def/class docstring.

    A docstring is a triple-quoted string that is either the first statement
    of the file (leading comment lines such as a shebang are allowed) or the
    first thing after a `def`, `async def` or `class` header, possibly after
    blank lines. The docstring's own line goes with it. A string followed by
    more code on its closing line is left alone, as are all other
    triple-quoted strings. A header that sits inside a string literal (source
    embedded in a template, say) is not a header.

    Args:
        content (str): Python source

    Returns:
        ScanResult: the source without docstrings and the number removed
    """
    text, module_count = _MODULE_DOCSTRING.subn(r"\g<lead>", content, count=1)
    spans = quoted_spans(text, hash_comments=True)
    removed = 0

    def drop_docstring(m: re.Match[str]) -> str:
        nonlocal removed
        if inside_spans(m.start("header"), spans):
            return m.group(0)
        removed += 1
        return m.group("header")

    text = _DEFINITION_DOCSTRING.sub(drop_docstring, text)
    return ScanResult(text, module_count + removed)


def _docs_brace(content: str) -> ScanResult:
    return strip_brace_comments(content, keep_docs=False, keep_ordinary=True)


def _docs_identity(content: str) -> ScanResult:
    return ScanResult(content, 0)


DOCSTRING_HANDLERS: dict[SyntaxFamily, Callable[[str], ScanResult]] = {
    SyntaxFamily.BRACE: _docs_brace,
    SyntaxFamily.HASH: strip_python_docstrings,
    SyntaxFamily.LINE_DOC: strip_line_doc_blocks,
    SyntaxFamily.SQL: _docs_identity,
    SyntaxFamily.MARKUP: _docs_identity,
    SyntaxFamily.MARKUP_BRACE: _docs_brace,
    SyntaxFamily.STYLESHEET: _docs_identity,
    SyntaxFamily.PLAIN: _docs_identity,
}


def strip_docstrings(content: str, language_tag: str) -> PassDelta:
    """Run the documentation pass for one file.

    Ordinary comments are left for the comment pass; the count is the exact
    number of doc units removed.
    """
    profile = language_profile(language_tag)
    text, removed = DOCSTRING_HANDLERS[profile.docstrings](content)
    return PassDelta(content=text, docstrings_removed=removed)
