from __future__ import annotations

from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from context_optimizer.config import ExportEntry, ExportResult, SkippedFile, normalize_language_tag
from context_optimizer.logging import logger
from context_optimizer.pipeline import optimize_content, would_exceed_budget
from context_optimizer.prioritizer import relative_posix

if TYPE_CHECKING:
    from collections.abc import Callable

    from context_optimizer.optimizer import OptimizerCheckpoint
    from context_optimizer.pipeline import OptimizationPipeline

    Reader = Callable[[str | Path], str]


def read_text(path: str | Path) -> str:
    """Read a file as UTF-8, dropping undecodable bytes."""
    return Path(path).read_text(encoding="utf-8", errors="ignore")


def collect_export(
    pipeline: OptimizationPipeline,
    root: str | Path,
    reader: Reader = read_text,
    *,
    skip_empty: bool = False,
) -> ExportResult:
    """Run the budgeted export loop over `pipeline.ordered_files`.

    Files are taken strictly in order. Each one is read, optimized and then
    admitted only if its optimized tokens fit on top of what was already
    admitted; a file that does not fit is skipped whole and the loop goes on,
    since a later, smaller file may still fit. Read failures are recorded and
    do not stop the run. Optimizer counters only reflect admitted files.

    Args:
        pipeline (OptimizationPipeline): order, optimizer and ceiling for the run
        root (str | Path): the export root, used for relative paths
        reader (Reader): returns the text of a file
        skip_empty (bool): leave out files whose optimized content is blank

    Returns:
        ExportResult: admitted entries, skipped files and token totals
    """
    result = ExportResult()
    for file in pipeline.ordered_files:
        rel = relative_posix(file, root)
        try:
            content = reader(file)
        except Exception as e:  # noqa: BLE001
            logger.warning("read_failed", path=rel, error=str(e))
            result.skipped.append(SkippedFile(rel=rel, reason="error", detail=str(e)))
            continue

        tag = normalize_language_tag(PurePath(file).suffix)
        mark = pipeline.optimizer.checkpoint() if pipeline.optimizer is not None else None
        optimized = optimize_content(content, str(file), tag, pipeline.optimizer)

        if skip_empty and not optimized.optimized_content.strip():
            logger.info("skipped_empty", path=rel)
            _forget(pipeline, mark)
            result.skipped.append(SkippedFile(rel=rel, reason="empty"))
            continue

        if pipeline.enabled and would_exceed_budget(
            result.total_optimized_tokens,
            optimized.optimized_tokens,
            pipeline.max_token_budget,
        ):
            logger.info(
                "skipped_budget",
                path=rel,
                tokens=optimized.optimized_tokens,
                admitted_tokens=result.total_optimized_tokens,
            )
            _forget(pipeline, mark)
            result.skipped.append(SkippedFile(rel=rel, reason="budget"))
            continue

        result.total_original_tokens += optimized.original_tokens
        result.total_optimized_tokens += optimized.optimized_tokens
        result.entries.append(
            ExportEntry(
                rel=rel,
                language_tag=tag,
                content=optimized.optimized_content,
                original_tokens=optimized.original_tokens,
                optimized_tokens=optimized.optimized_tokens,
            ),
        )

    if pipeline.optimizer is not None:
        result.stats = pipeline.optimizer.get_stats(
            result.total_original_tokens,
            result.total_optimized_tokens,
        )
    logger.info(
        "export_collected",
        files=len(result.entries),
        skipped=len(result.skipped),
        tokens=result.total_optimized_tokens,
    )
    return result


def _forget(pipeline: OptimizationPipeline, mark: OptimizerCheckpoint | None) -> None:
    if pipeline.optimizer is not None and mark is not None:
        pipeline.optimizer.rollback(mark)
