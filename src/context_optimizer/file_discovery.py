from __future__ import annotations

import fnmatch
import os
import stat
import subprocess  # noqa: S404
from pathlib import Path
from typing import TYPE_CHECKING, Any

from context_optimizer.config import DEFAULT_EXCLUDES
from context_optimizer.exceptions import NotAGitRepositoryError
from context_optimizer.logging import logger
from context_optimizer.prioritizer import relative_posix

if TYPE_CHECKING:
    from collections.abc import Sequence


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular; unreadable paths are not."""
    try:
        return stat.S_ISREG(path.stat().st_mode)
    except OSError:
        return False


def sniff_text_utf8(path: Path, nbytes: int = 4096) -> bool:
    """Check whether the first `nbytes` of `path` decode as UTF-8.

    Args:
        path (Path): the file to probe
        nbytes (int, optional): how much to read. Defaults to 4096.

    Returns:
        bool: True for a regular file whose head is valid UTF-8
    """
    if not is_regular_file(path):
        return False
    try:
        with path.open("rb") as f:
            chunk = f.read(nbytes)
        chunk.decode("utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    return True


def git_ls_files(repo: Path) -> list[Path]:
    """List the files tracked by git under `repo`, honoring its ignore rules.

    Args:
        repo (Path): the root of the git repository

    Raises:
        NotAGitRepositoryError: if `repo` has no `.git` entry.

    Returns:
        list[Path]: absolute paths of the tracked files
    """
    if not (repo / ".git").exists():
        raise NotAGitRepositoryError(folder=repo)
    out = subprocess.run(
        ["git", "ls-files"],  # noqa: S607
        cwd=str(repo),
        text=True,
        capture_output=True,
        check=True,
    )
    return [(repo / line.strip()).resolve() for line in out.stdout.splitlines() if line.strip()]


def walk_files(repo: Path) -> list[Path]:
    """Walk `repo` recursively, pruning the directories in `DEFAULT_EXCLUDES`."""
    results: list[Path] = []
    for root, dirs, files in os.walk(repo):
        dirs[:] = [d for d in dirs if d not in DEFAULT_EXCLUDES]
        results.extend((Path(root) / f).resolve() for f in files)
    return [p for p in results if p.is_file()]


def discover_files(repo: Path, *, use_git: bool = True) -> list[Path]:
    """Collect candidate files, preferring `git ls-files` over a filesystem walk.

    Args:
        repo (Path): the export root
        use_git (bool): try git first; the walk is the fallback either way

    Returns:
        list[Path]: absolute paths of the files found
    """
    if use_git:
        try:
            return git_ls_files(repo)
        except (NotAGitRepositoryError, OSError, subprocess.CalledProcessError) as e:
            logger.info("git_listing_unavailable", repo=str(repo), reason=repr(e))
    return walk_files(repo)


def normalize_globs(globs: Sequence[str]) -> list[str]:
    """Strip blanks and use forward slashes in glob patterns; empty patterns are dropped."""
    return [g.strip().replace("\\", "/") for g in globs if g and g.strip()]


def match_any_glob(rel: str, globs: Sequence[str]) -> bool:
    """Check if a relative path matches any of the glob patterns."""
    return any(fnmatch.fnmatch(rel, g) for g in globs)


def apply_filters(
    files: Sequence[Path],
    repo: Path,
    includes: Sequence[str],
    excludes: Sequence[str],
) -> list[Path]:
    """Keep regular files outside the default excludes that pass the globs.

    A file must match one include pattern when any is given, and must not
    match any exclude pattern. Patterns apply to the POSIX path relative to
    `repo`.

    Args:
        files (Sequence[Path]): absolute paths of the candidates
        repo (Path): the export root
        includes (Sequence[str]): include globs
        excludes (Sequence[str]): exclude globs

    Returns:
        list[Path]: the kept files, deduplicated and sorted by relative path
    """
    inc = normalize_globs(includes)
    exc = normalize_globs(excludes)

    out: set[Path] = set()
    for f in files:
        if not is_regular_file(f):
            continue
        rel = relative_posix(f, repo)
        if any(part in DEFAULT_EXCLUDES for part in rel.split("/")):
            continue
        if inc and not match_any_glob(rel, inc):
            continue
        if exc and match_any_glob(rel, exc):
            continue
        out.add(f)
    return sorted(out, key=lambda p: relative_posix(p, repo))


def build_tree_lines(root_name: str, rel_paths: Sequence[str]) -> list[str]:
    """Render relative POSIX paths as an indented tree, directories first.

    Args:
        root_name (str): label of the top node
        rel_paths (Sequence[str]): the paths to draw

    Returns:
        list[str]: one string per tree line
    """
    tree: dict[str, Any] = {}
    for rp in {p.strip("/") for p in rel_paths if p.strip("/")}:
        cur = tree
        *dirs, name = rp.split("/")
        for part in dirs:
            cur = cur.setdefault(part, {})
        cur.setdefault("__files__", set()).add(name)

    lines: list[str] = [root_name]

    def walk(node: dict[str, Any], prefix: str) -> None:
        dirs = sorted((k for k in node if k != "__files__"), key=str.lower)
        files = sorted(node.get("__files__", set()), key=str.lower)
        entries = [(d, node[d]) for d in dirs] + [(f, None) for f in files]
        for idx, (name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            lines.append(prefix + ("└── " if last else "├── ") + name + ("/" if child is not None else ""))
            if child is not None:
                walk(child, prefix + ("    " if last else "│   "))

    walk(tree, "")
    return lines
