from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, NamedTuple

from context_optimizer.config import ENTRY_BASE_NAMES, ENTRY_FILE_NAMES, SOURCE_DIRS
from context_optimizer.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    StatProvider = Callable[[str | Path], "FileStat"]

ENTRY_POINT_BONUS = 100
SHALLOW_BONUS = 10
SHALLOW_MAX_DEPTH = 2
SOURCE_DIR_BONUS = 5


class FileStat(NamedTuple):
    """What the prioritizer needs to know about a file on disk.

    `modified_time` is POSIX seconds; a `datetime` is accepted too.
    """

    modified_time: float | datetime


@dataclass(frozen=True)
class PriorityScore:
    path: str | Path
    relative_path: str
    score: int
    modified_time: float
    relative_depth: int


def filesystem_stat(path: str | Path) -> FileStat:
    """Stat provider backed by the local filesystem."""
    return FileStat(modified_time=Path(path).stat().st_mtime)


def relative_posix(path: str | Path, root: str | Path) -> str:
    """Path of `path` relative to `root` with POSIX separators.

    Falls back to the full path when `path` is not under `root`.
    """
    pure = PurePath(path)
    try:
        return pure.relative_to(root).as_posix()
    except ValueError:
        return pure.as_posix()


def _timestamp(value: float | datetime) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


def modified_time_or_epoch(path: str | Path, stat_provider: StatProvider) -> float:
    """Ask `stat_provider` for the mtime of `path`; any failure means epoch zero."""
    try:
        return _timestamp(stat_provider(path).modified_time)
    except Exception as e:  # noqa: BLE001
        logger.debug("stat_failed", path=str(path), error=str(e))
        return 0.0


def score_file(path: str | Path, root: str | Path, stat_provider: StatProvider) -> PriorityScore:
    """Score one file.

    +100 for a conventional entry point (`index`, `main`, `app`, ...) or project
    configuration file name, +10 when at most two levels below `root`, +5 when
    under a top-level source directory.

    Args:
        path (str | Path): the file to score
        root (str | Path): the export root
        stat_provider (StatProvider): returns the file's modification time

    Returns:
        PriorityScore: the score with the data used to break ties
    """
    rel = relative_posix(path, root)
    name = PurePath(path).name.lower()
    depth = len(rel.split("/"))

    score = 0
    if PurePath(name).stem in ENTRY_BASE_NAMES or name in ENTRY_FILE_NAMES:
        score += ENTRY_POINT_BONUS
    if depth <= SHALLOW_MAX_DEPTH:
        score += SHALLOW_BONUS
    if any(rel.startswith(f"{d}/") for d in SOURCE_DIRS):
        score += SOURCE_DIR_BONUS

    return PriorityScore(
        path=path,
        relative_path=rel,
        score=score,
        modified_time=modified_time_or_epoch(path, stat_provider),
        relative_depth=depth,
    )


def prioritize(
    files: Sequence[str | Path],
    root: str | Path,
    stat_provider: StatProvider = filesystem_stat,
    prefer_recent: bool = True,  # noqa: FBT001, FBT002
) -> list[str | Path]:
    """Order files for output and for greedy budget admission.

    Highest score first; ties go to the most recently modified file when
    `prefer_recent` is set (a failed stat sorts last), then to the
    case-sensitive relative path, so the order is fully deterministic.

    Args:
        files (Sequence[str | Path]): the candidate files
        root (str | Path): the export root
        stat_provider (StatProvider): returns each file's modification time
        prefer_recent (bool): break score ties by modification time

    Returns:
        list[str | Path]: the same file objects, best first
    """
    scores = [score_file(f, root, stat_provider) for f in files]

    def key(s: PriorityScore) -> tuple[int, float, str]:
        recency = -s.modified_time if prefer_recent else 0.0
        return (-s.score, recency, s.relative_path)

    return [s.path for s in sorted(scores, key=key)]
