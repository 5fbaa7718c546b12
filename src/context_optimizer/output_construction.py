from __future__ import annotations

import io
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from context_optimizer.file_discovery import build_tree_lines

if TYPE_CHECKING:
    from pathlib import Path

    from context_optimizer.config import ExportResult, OptimizationStats
    from context_optimizer.settings import Settings


def now_iso() -> str:
    """Return the current local date and time in ISO 8601 format with timezone."""
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def render_stats(stats: OptimizationStats) -> list[str]:
    """Render the optimizer report as markdown bullet lines."""
    lines = [
        f"- tokens: {stats.original_tokens} -> {stats.optimized_tokens}"
        f" (saved {stats.tokens_saved}, {stats.savings_percent}%)",
        f"- comments_removed: {stats.comments_removed}",
        f"- docstrings_removed: {stats.docstrings_removed}",
    ]
    if stats.truncated_files:
        lines.append(f"- truncated: {len(stats.truncated_files)} files")
    return lines


def build_markdown(
    repo: Path,
    result: ExportResult,
    *,
    settings: Settings,
) -> str:
    """Build the export document.

    The document has a header with run information, the tree of the included
    files, an optimization summary when the optimizer ran, and one fenced
    block per included file in admission order.

    Args:
        repo (Path): the export root
        result (ExportResult): the collected export
        settings (Settings): output options; `compact` drops the blank line between blocks

    Returns:
        str: the markdown document
    """
    out = io.StringIO()
    out.write("# Project Export for LLM\n")
    out.write(f"root={repo}\n")
    out.write(f"generated_at={now_iso()}\n")
    out.write(f"files={len(result.entries)}\n")
    out.write(f"tokens~{result.total_optimized_tokens}\n\n")

    out.write("## Structure\n")
    out.write("```text\n")
    out.write("\n".join(build_tree_lines(repo.name, [e.rel for e in result.entries])))
    out.write("\n```\n\n")

    if result.stats is not None:
        out.write("## Optimization\n")
        out.write("\n".join(render_stats(result.stats)))
        if result.skipped_for_budget:
            out.write(f"\n- skipped_for_budget: {', '.join(result.skipped_for_budget)}")
        out.write("\n\n")

    separator = "\n" if settings.compact else "\n\n"
    for entry in result.entries:
        body = entry.content.rstrip("\n")
        out.write(f"## {entry.rel} tokens~{entry.optimized_tokens}\n")
        out.write(f"```{entry.language or 'text'}\n{body}\n```{separator}")

    return out.getvalue().rstrip() + "\n"
