from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from context_optimizer.config import OptimizationResult
from context_optimizer.optimizer import ContentOptimizer
from context_optimizer.prioritizer import filesystem_stat, prioritize
from context_optimizer.tokens import estimate_tokens

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from context_optimizer.config import OptimizerConfig
    from context_optimizer.prioritizer import StatProvider


@dataclass(frozen=True)
class OptimizationPipeline:
    """Everything the export loop needs: file order, optimizer and token ceiling.

    Attributes:
        enabled: whether the optimizer is active for this run.
        optimizer: the run's optimizer, or None when disabled.
        max_token_budget: the token ceiling; `math.inf` when unlimited.
        ordered_files: the files in admission order.
    """

    enabled: bool
    optimizer: ContentOptimizer | None
    max_token_budget: float
    ordered_files: list[str | Path] = field(default_factory=list)


def build_pipeline(
    config: OptimizerConfig | None,
    files: Sequence[str | Path],
    root: str | Path,
    stat_provider: StatProvider = filesystem_stat,
) -> OptimizationPipeline:
    """Wire prioritizer, optimizer and token ceiling together for one run.

    A missing or disabled configuration keeps the input order and an infinite
    ceiling. When enabled, a non-positive budget also means no ceiling.

    Args:
        config (OptimizerConfig | None): the optimizer configuration
        files (Sequence[str | Path]): the files selected for export
        root (str | Path): the export root
        stat_provider (StatProvider): modification time lookup used for ordering

    Returns:
        OptimizationPipeline: the pipeline for the export loop
    """
    if config is None or not config.enabled:
        return OptimizationPipeline(
            enabled=False,
            optimizer=None,
            max_token_budget=math.inf,
            ordered_files=list(files),
        )
    ordered = prioritize(files, root, stat_provider, config.prioritize_recent_files)
    budget = config.max_token_budget if config.max_token_budget > 0 else math.inf
    return OptimizationPipeline(
        enabled=True,
        optimizer=ContentOptimizer(config),
        max_token_budget=budget,
        ordered_files=ordered,
    )


def optimize_content(
    content: str,
    path: str,
    language_tag: str,
    optimizer: ContentOptimizer | None,
) -> OptimizationResult:
    """Optimize `content` when an optimizer is given and estimate tokens before and after."""
    optimized = optimizer.optimize(content, path, language_tag) if optimizer else content
    return OptimizationResult(
        optimized_content=optimized,
        original_tokens=estimate_tokens(content),
        optimized_tokens=estimate_tokens(optimized),
    )


def would_exceed_budget(total_tokens: float, new_tokens: float, max_token_budget: float) -> bool:
    """Tell whether admitting `new_tokens` on top of `total_tokens` breaks the ceiling."""
    return total_tokens + new_tokens > max_token_budget
