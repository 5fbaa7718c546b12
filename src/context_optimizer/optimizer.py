from __future__ import annotations

import math
from typing import TYPE_CHECKING, NamedTuple

from context_optimizer.config import FileCandidate, OptimizationResult, OptimizationStats, normalize_language_tag
from context_optimizer.docstrings import strip_docstrings
from context_optimizer.logging import logger
from context_optimizer.scanners import strip_comments
from context_optimizer.text_passes import minify_whitespace, truncate_lines
from context_optimizer.tokens import estimate_tokens

if TYPE_CHECKING:
    from context_optimizer.config import OptimizerConfig, PassDelta


class OptimizerCheckpoint(NamedTuple):
    comments_removed: int
    docstrings_removed: int
    truncated_count: int


class ContentOptimizer:
    """Apply the configured passes to file contents and keep run-wide counters.

    One instance drives one export run; the counters are not synchronized, so
    parallel workers need an instance each.

    Attributes:
        config: the immutable configuration of this instance.
        comments_removed: estimated number of ordinary comments removed.
        docstrings_removed: exact number of doc comments and docstrings removed.
        truncated_files: paths of the files cut by the truncation pass, in order.
    """

    def __init__(self, config: OptimizerConfig) -> None:
        self.config = config
        self.comments_removed = 0
        self.docstrings_removed = 0
        self.truncated_files: list[str] = []

    def optimize(self, content: str, path: str, language_tag: str) -> str:
        """Optimize one file.

        Passes run in a fixed order: docstrings, comments, whitespace,
        truncation. When the optimizer is disabled the content is returned
        as is and no counter moves.

        Args:
            content (str): the file content
            path (str): the file path, recorded when the file is truncated
            language_tag (str): the lowercase file extension

        Returns:
            str: the optimized content
        """
        if not self.config.enabled:
            return content

        tag = normalize_language_tag(language_tag)
        optimized = content
        if self.config.remove_docstrings:
            optimized = self._fold(strip_docstrings(optimized, tag), path)
        if self.config.remove_comments:
            delta = strip_comments(optimized, tag, preserve_docs=not self.config.remove_docstrings)
            optimized = self._fold(delta, path)
        if self.config.minify_whitespace:
            optimized = minify_whitespace(optimized)
        if self.config.truncate_large_files:
            optimized = self._fold(truncate_lines(optimized, self.config.max_lines_per_file), path)
        return optimized

    def optimize_candidate(self, candidate: FileCandidate) -> OptimizationResult:
        """Optimize a `FileCandidate` and report token estimates before and after."""
        optimized = self.optimize(candidate.raw_content, candidate.path, candidate.language_tag)
        return OptimizationResult(
            optimized_content=optimized,
            original_tokens=estimate_tokens(candidate.raw_content),
            optimized_tokens=estimate_tokens(optimized),
        )

    def _fold(self, delta: PassDelta, path: str) -> str:
        self.comments_removed += delta.comments_removed
        self.docstrings_removed += delta.docstrings_removed
        if delta.truncated:
            self.truncated_files.append(path)
            logger.info("file_truncated", path=path, max_lines=self.config.max_lines_per_file)
        return delta.content

    def get_stats(self, original_tokens: int, optimized_tokens: int) -> OptimizationStats:
        """Build the run report from caller-supplied token totals and the counters.

        Args:
            original_tokens (int): estimated tokens before optimization
            optimized_tokens (int): estimated tokens after optimization

        Returns:
            OptimizationStats: the report; `savings_percent` is rounded half up
                and is 0 when `original_tokens` is 0
        """
        tokens_saved = original_tokens - optimized_tokens
        savings_percent = (
            math.floor(tokens_saved / original_tokens * 100 + 0.5) if original_tokens > 0 else 0
        )
        return OptimizationStats(
            original_tokens=original_tokens,
            optimized_tokens=optimized_tokens,
            tokens_saved=tokens_saved,
            savings_percent=savings_percent,
            truncated_files=list(self.truncated_files),
            comments_removed=self.comments_removed,
            docstrings_removed=self.docstrings_removed,
        )

    def checkpoint(self) -> OptimizerCheckpoint:
        """Snapshot the counters, to undo the work on a file that is not kept."""
        return OptimizerCheckpoint(self.comments_removed, self.docstrings_removed, len(self.truncated_files))

    def rollback(self, mark: OptimizerCheckpoint) -> None:
        """Restore the counters to `mark`, forgetting files truncated since then."""
        self.comments_removed = mark.comments_removed
        self.docstrings_removed = mark.docstrings_removed
        del self.truncated_files[mark.truncated_count :]

    def reset(self) -> None:
        """Zero the counters and forget truncated files; configuration is kept."""
        self.comments_removed = 0
        self.docstrings_removed = 0
        self.truncated_files = []
