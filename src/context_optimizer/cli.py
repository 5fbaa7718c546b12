"""context-optimizer: export a project as one markdown document for an LLM.

Files are discovered with `git ls-files` (or a filesystem walk), filtered
with include/exclude globs, ordered by priority and optimized (docstrings,
comments, whitespace, truncation) until the approximate token budget is
used up.

Usage:
    context-optimizer --output context.md --optimize --max-token-budget 50000
    context-optimizer --output context.md --config optimizer.yaml --keep-docstrings
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from context_optimizer import __version__
from context_optimizer.exceptions import ConfigFileError
from context_optimizer.export import collect_export
from context_optimizer.file_discovery import apply_filters, discover_files, sniff_text_utf8
from context_optimizer.logging import logger, redirect_to_file
from context_optimizer.output_construction import build_markdown
from context_optimizer.pipeline import build_pipeline
from context_optimizer.settings import CONFIG_ENV_VAR, LOG_FILE_ENV_VAR, Settings, env_defaults, resolve_optimizer_config

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser; defaults come from the environment or `.env`."""
    env = env_defaults()
    p = argparse.ArgumentParser(
        prog="context-optimizer",
        description="Export a project as a token-budgeted markdown document for LLM consumption.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--repo", type=str, default=".", help="Export root.")
    p.add_argument("--output", type=str, required=True, help="Output markdown file.")
    p.add_argument("--no-git", action="store_true", help="Do not use git ls-files.")
    p.add_argument(
        "--log-file",
        type=str,
        default=env.get(LOG_FILE_ENV_VAR, ""),
        help=f"Log file path (env: {LOG_FILE_ENV_VAR}).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=env.get(CONFIG_ENV_VAR, ""),
        help=f"YAML optimizer configuration (env: {CONFIG_ENV_VAR}).",
    )

    p.add_argument("--include-glob", action="append", default=[], help="Include glob (repeatable).")
    p.add_argument("--exclude-glob", action="append", default=[], help="Exclude glob (repeatable).")
    p.add_argument("--skip-empty", action="store_true", help="Skip files left empty after optimization.")
    p.add_argument("--compact", action="store_true", help="Reduce markdown verbosity.")

    opt = p.add_argument_group("optimizer")
    opt.add_argument(
        "--optimize",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable the optimizer (overrides the configuration file).",
    )
    opt.add_argument("--max-token-budget", type=int, default=None, help="Token ceiling; 0 means unlimited.")
    opt.add_argument("--max-lines-per-file", type=int, default=None, help="Line cap per file.")
    opt.add_argument("--keep-comments", action="store_true", help="Do not strip ordinary comments.")
    opt.add_argument("--keep-docstrings", action="store_true", help="Do not strip docstrings and doc comments.")
    opt.add_argument("--no-minify", action="store_true", help="Do not normalize whitespace.")
    opt.add_argument("--no-truncate", action="store_true", help="Do not truncate large files.")
    opt.add_argument("--no-recent", action="store_true", help="Do not break priority ties by recency.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments into `Settings`."""
    args = build_parser().parse_args(argv)
    return Settings(**vars(args))


def select_files(repo: Path, settings: Settings) -> list[Path]:
    """Discover, filter and keep only UTF-8 text files; the output file itself is left out."""
    files = discover_files(repo, use_git=not settings.no_git)
    selected = apply_filters(
        files=files,
        repo=repo,
        includes=settings.include_glob,
        excludes=settings.exclude_glob,
    )
    output = Path(settings.output).resolve()
    return [f for f in selected if f.resolve() != output and sniff_text_utf8(f)]


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        redirect_to_file(settings.log_file)

    try:
        config = resolve_optimizer_config(settings)
    except ConfigFileError as e:
        logger.error("config_invalid", file=str(e.file), message=e.message)
        print(f"Invalid configuration {e.file}: {e.message}", file=sys.stderr)
        return 2

    repo = Path(settings.repo).resolve()
    files = select_files(repo, settings)
    pipeline = build_pipeline(config, files, repo)
    result = collect_export(pipeline, repo, skip_empty=settings.skip_empty)

    out_path = Path(settings.output)
    out_path.write_text(build_markdown(repo, result, settings=settings), encoding="utf-8")
    logger.info(
        "export_written",
        output=str(out_path),
        files=len(result.entries),
        skipped=len(result.skipped),
        tokens=result.total_optimized_tokens,
    )
    print(f"Wrote {out_path} files={len(result.entries)} tokens~{result.total_optimized_tokens}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
