"""Lexical comment scanners, one per syntax family.

Every scanner makes a single forward pass over the content and only
interprets comment openers outside of quoted text, so `//`, `#` or `--`
inside a string, a template literal or a URL is echoed unchanged.
Unterminated strings or comments are not errors: the scan simply ends.
"""

from __future__ import annotations

import bisect
import math
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, NamedTuple

from context_optimizer.config import LanguageProfile, PassDelta, SyntaxFamily, language_profile

if TYPE_CHECKING:
    from collections.abc import Callable

COMMENT_CHARS_PER_UNIT = 50

_BRACE_QUOTES = frozenset("'\"`")
_HASH_QUOTES = frozenset("'\"`")
_TRIPLE_QUOTES = ('"""', "'''")
_MARKUP_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_LINE_DOC_BLOCK = re.compile(
    r"(?:^[ \t]*//[^\n]*\n)+(?=[ \t]*(?:package|func|type|var|const)\b)",
    re.MULTILINE,
)


class ScanMode(Enum):
    NORMAL = auto()
    QUOTED = auto()
    LINE_COMMENT = auto()
    BLOCK_COMMENT = auto()


@dataclass
class ScanState:
    """Per-call scanner state.

    Attributes:
        mode: what the scanner is currently inside of.
        quote: the delimiter that closes the current quoted body.
        escaped: the previous character was an unconsumed backslash.
        keep: the current comment is echoed rather than dropped.
    """

    mode: ScanMode = ScanMode.NORMAL
    quote: str = ""
    escaped: bool = False
    keep: bool = False

    def open_quote(self, quote: str) -> None:
        self.mode = ScanMode.QUOTED
        self.quote = quote
        self.escaped = False

    def open_comment(self, mode: ScanMode, *, keep: bool) -> None:
        self.mode = mode
        self.keep = keep

    def close(self) -> None:
        self.mode = ScanMode.NORMAL
        self.quote = ""
        self.escaped = False
        self.keep = False


class ScanResult(NamedTuple):
    text: str
    doc_comments_removed: int = 0


def strip_brace_comments(
    content: str,
    *,
    keep_docs: bool = False,
    keep_ordinary: bool = False,
    line_comments: bool = True,
) -> ScanResult:
    """Remove `//` and `/* */` comments from C-like source.

    A line comment whose third character is `/` or `!`, and a block comment
    whose third character is `*` or `!`, is a doc comment. `keep_docs` and
    `keep_ordinary` decide independently whether each kind is echoed or
    dropped. A dropped line comment keeps its newline; a dropped block
    comment leaves nothing behind. Doc line comments on consecutive lines
    form one doc unit.

    Single-quoted bodies also end at an unescaped newline, so a Rust lifetime
    or a stray apostrophe cannot hide the rest of the file from the scanner.

    Args:
        content (str): the source text
        keep_docs (bool): echo doc comments instead of dropping them
        keep_ordinary (bool): echo ordinary comments instead of dropping them
        line_comments (bool): recognize `//` at all (style sheets do not)

    Returns:
        ScanResult: the stripped text and the number of doc comments dropped
    """
    out: list[str] = []
    state = ScanState()
    doc_removed = 0
    in_line_doc = False
    line_doc_end = -1
    n = len(content)
    i = 0
    while i < n:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < n else ""

        if state.mode is ScanMode.LINE_COMMENT:
            if ch == "\n":
                if in_line_doc:
                    line_doc_end = i
                    in_line_doc = False
                state.close()
                out.append(ch)
            elif state.keep:
                out.append(ch)
            i += 1
            continue

        if state.mode is ScanMode.BLOCK_COMMENT:
            if ch == "*" and nxt == "/":
                if state.keep:
                    out.append("*/")
                state.close()
                i += 2
                continue
            if state.keep:
                out.append(ch)
            i += 1
            continue

        if state.mode is ScanMode.QUOTED:
            out.append(ch)
            if state.escaped:
                state.escaped = False
            elif ch == "\\":
                state.escaped = True
            elif ch == state.quote or (ch == "\n" and state.quote == "'"):
                state.close()
            i += 1
            continue

        if ch in _BRACE_QUOTES:
            state.open_quote(ch)
            out.append(ch)
            i += 1
            continue

        if ch == "/" and nxt == "/" and line_comments:
            is_doc = content[i + 2 : i + 3] in {"/", "!"}
            keep = keep_docs if is_doc else keep_ordinary
            state.open_comment(ScanMode.LINE_COMMENT, keep=keep)
            if keep:
                out.append("//")
            elif is_doc:
                in_line_doc = True
                if not _continues_doc_run(content, line_doc_end, i):
                    doc_removed += 1
            i += 2
            continue

        if ch == "/" and nxt == "*":
            is_doc = content[i + 2 : i + 3] in {"*", "!"}
            keep = keep_docs if is_doc else keep_ordinary
            state.open_comment(ScanMode.BLOCK_COMMENT, keep=keep)
            if keep:
                out.append("/*")
            elif is_doc:
                doc_removed += 1
            i += 2
            continue

        out.append(ch)
        i += 1

    return ScanResult("".join(out), doc_removed)


def _continues_doc_run(content: str, previous_end: int, index: int) -> bool:
    # only indentation between the previous doc line's newline and this one
    return previous_end >= 0 and content[previous_end + 1 : index].strip(" \t") == ""


def quoted_spans(content: str, *, hash_comments: bool) -> list[tuple[int, int]]:
    """Return the `[start, end)` offsets of every quoted body, delimiters included.

    Uses the same quoting rules as the comment scanners so that regex based
    passes can tell code from string contents. With `hash_comments` the rules
    are the Python ones (`#` comments, triple quotes); otherwise the brace
    ones (`//` and `/* */` comments, single quotes ending at a newline).
    An unterminated body runs to the end of the content.

    Args:
        content (str): the source text
        hash_comments (bool): scan with hash-family rules

    Returns:
        list[tuple[int, int]]: spans in increasing order
    """
    spans: list[tuple[int, int]] = []
    state = ScanState()
    start = 0
    n = len(content)
    i = 0
    while i < n:
        ch = content[i]

        if state.mode is ScanMode.QUOTED:
            if state.escaped:
                state.escaped = False
            elif ch == "\\":
                state.escaped = True
            elif content.startswith(state.quote, i):
                i += len(state.quote)
                spans.append((start, i))
                state.close()
                continue
            elif ch == "\n" and state.quote == "'" and not hash_comments:
                spans.append((start, i))
                state.close()
            i += 1
            continue

        if (hash_comments and ch == "#") or (not hash_comments and content.startswith("//", i)):
            end = content.find("\n", i)
            i = n if end == -1 else end
            continue
        if not hash_comments and content.startswith("/*", i):
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        triple = next((q for q in _TRIPLE_QUOTES if content.startswith(q, i)), "") if hash_comments else ""
        quote = triple or (ch if ch in _BRACE_QUOTES else "")
        if quote:
            state.open_quote(quote)
            start = i
            i += len(quote)
            continue
        i += 1

    if state.mode is ScanMode.QUOTED:
        spans.append((start, n))
    return spans


def inside_spans(index: int, spans: list[tuple[int, int]]) -> bool:
    """Check if `index` falls strictly inside one of the sorted `spans`."""
    pos = bisect.bisect_right(spans, (index, math.inf)) - 1
    return pos >= 0 and spans[pos][0] < index < spans[pos][1]


def strip_hash_comments(content: str, *, allow_shebang: bool = False) -> str:
    """Remove `#` comments from Python, Ruby and shell source.

    Triple-quoted strings, single/double-quoted strings and backtick strings
    are echoed untouched. With `allow_shebang`, a `#!` preceded only by
    whitespace on its line is kept with the rest of that line. `$#` and `${#`
    are shell parameter expansions, not comments.

    Args:
        content (str): the source text
        allow_shebang (bool): keep `#!` interpreter lines

    Returns:
        str: the source without comments; newlines are preserved
    """
    out: list[str] = []
    state = ScanState()
    line_start = True
    n = len(content)
    i = 0
    while i < n:
        ch = content[i]

        if state.mode is ScanMode.QUOTED:
            if state.escaped:
                state.escaped = False
            elif ch == "\\":
                state.escaped = True
            elif content.startswith(state.quote, i):
                out.append(state.quote)
                i += len(state.quote)
                state.close()
                continue
            out.append(ch)
            i += 1
            continue

        if ch == "\n":
            line_start = True
            out.append(ch)
            i += 1
            continue

        triple = next((q for q in _TRIPLE_QUOTES if content.startswith(q, i)), "")
        if triple:
            state.open_quote(triple)
            out.append(triple)
            line_start = False
            i += 3
            continue

        if ch in _HASH_QUOTES:
            state.open_quote(ch)
            out.append(ch)
            line_start = False
            i += 1
            continue

        if ch == "#":
            end = content.find("\n", i)
            if end == -1:
                end = n
            if allow_shebang and line_start and content.startswith("#!", i):
                out.append(content[i:end])
            elif _is_parameter_expansion(content, i):
                out.append(ch)
                line_start = False
                i += 1
                continue
            i = end
            continue

        if not ch.isspace():
            line_start = False
        out.append(ch)
        i += 1

    return "".join(out)


def _is_parameter_expansion(content: str, index: int) -> bool:
    return content[index - 1 : index] == "$" or content[max(0, index - 2) : index] == "${"


def strip_sql_comments(content: str) -> str:
    """Remove `--` line comments and `/* */` blocks from SQL.

    A quote closes the string unless the character before it is a backslash;
    doubled quotes (`'it''s'`) close and reopen, which leaves them intact.
    """
    out: list[str] = []
    state = ScanState()
    n = len(content)
    i = 0
    while i < n:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < n else ""

        if state.mode is ScanMode.QUOTED:
            out.append(ch)
            if ch == state.quote and content[i - 1] != "\\":
                state.close()
            i += 1
            continue

        if ch in {"'", '"'}:
            state.open_quote(ch)
            out.append(ch)
            i += 1
            continue

        if ch == "-" and nxt == "-":
            end = content.find("\n", i)
            i = n if end == -1 else end
            continue

        if ch == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        out.append(ch)
        i += 1

    return "".join(out)


def strip_markup_comments(content: str) -> str:
    """Remove `<!-- -->` comments; an unterminated opener is left as is."""
    return _MARKUP_COMMENT.sub("", content)


def strip_stylesheet_comments(content: str) -> str:
    """Remove `/* */` comments from CSS, SCSS and LESS.

    `//` is left alone: `url(http://...)` is common in style sheets.
    """
    return strip_brace_comments(content, line_comments=False).text


def _line_doc_blocks(content: str) -> list[re.Match[str]]:
    spans = quoted_spans(content, hash_comments=False)
    return [m for m in _LINE_DOC_BLOCK.finditer(content) if not inside_spans(m.start(), spans)]


def strip_line_doc_blocks(content: str) -> ScanResult:
    """Remove runs of `//` lines that sit directly on top of a Go declaration.

    Each contiguous run counts as one removed doc unit. Comments anywhere
    else are left for the ordinary comment pass, and lines inside a string
    literal are never touched.
    """
    blocks = _line_doc_blocks(content)
    pieces: list[str] = []
    last = 0
    for m in blocks:
        pieces.append(content[last : m.start()])
        last = m.end()
    pieces.append(content[last:])
    return ScanResult("".join(pieces), len(blocks))


def _comments_brace(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:
    return strip_brace_comments(content, keep_docs=preserve_docs).text


def _comments_line_doc(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:
    if not preserve_docs:
        return strip_brace_comments(content).text
    # doc blocks are whole comment lines outside strings, so the code between them scans on its own
    pieces: list[str] = []
    last = 0
    for m in _line_doc_blocks(content):
        pieces.append(strip_brace_comments(content[last : m.start()]).text)
        pieces.append(m.group(0))
        last = m.end()
    pieces.append(strip_brace_comments(content[last:]).text)
    return "".join(pieces)


def _comments_hash(content: str, profile: LanguageProfile, *, preserve_docs: bool) -> str:  # noqa: ARG001
    return strip_hash_comments(content, allow_shebang=profile.shebang)


def _comments_sql(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:  # noqa: ARG001
    return strip_sql_comments(content)


def _comments_markup(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:  # noqa: ARG001
    return strip_markup_comments(content)


def _comments_markup_brace(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:
    return strip_brace_comments(strip_markup_comments(content), keep_docs=preserve_docs).text


def _comments_stylesheet(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:  # noqa: ARG001
    return strip_stylesheet_comments(content)


def _comments_identity(content: str, _profile: LanguageProfile, *, preserve_docs: bool) -> str:  # noqa: ARG001
    return content


COMMENT_HANDLERS: dict[SyntaxFamily, Callable[..., str]] = {
    SyntaxFamily.BRACE: _comments_brace,
    SyntaxFamily.HASH: _comments_hash,
    SyntaxFamily.SQL: _comments_sql,
    SyntaxFamily.LINE_DOC: _comments_line_doc,
    SyntaxFamily.MARKUP: _comments_markup,
    SyntaxFamily.MARKUP_BRACE: _comments_markup_brace,
    SyntaxFamily.STYLESHEET: _comments_stylesheet,
    SyntaxFamily.PLAIN: _comments_identity,
}


def strip_comments(content: str, language_tag: str, *, preserve_docs: bool) -> PassDelta:
    """Run the ordinary comment pass for one file.

    The removed-comment count is an estimate: one unit per
    `COMMENT_CHARS_PER_UNIT` characters removed, rounded up.

    Args:
        content (str): the file content
        language_tag (str): the lowercase file extension
        preserve_docs (bool): keep doc comments (the docstring pass did not run)

    Returns:
        PassDelta: the stripped content and the estimated comment count
    """
    profile = language_profile(language_tag)
    stripped = COMMENT_HANDLERS[profile.comments](content, profile, preserve_docs=preserve_docs)
    removed = len(content) - len(stripped)
    count = math.ceil(removed / COMMENT_CHARS_PER_UNIT) if removed > 0 else 0
    return PassDelta(content=stripped, comments_removed=count)
