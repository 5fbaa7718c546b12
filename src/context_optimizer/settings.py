from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from context_optimizer.config import OptimizerConfig
from context_optimizer.exceptions import ConfigFileError

ENV_FILE = find_dotenv(usecwd=True)

CONFIG_ENV_VAR = "CONTEXT_OPTIMIZER_CONFIG"
LOG_FILE_ENV_VAR = "CONTEXT_OPTIMIZER_LOG_FILE"

_CONFIG_SECTIONS = ("ai_context_optimizer", "aiContextOptimizer")


def env_defaults() -> dict[str, str]:
    """Read defaults from the process environment, falling back to the nearest `.env`."""
    values: dict[str, str] = {k: v for k, v in (dotenv_values(ENV_FILE) if ENV_FILE else {}).items() if v is not None}
    values.update(os.environ)
    return values


class Settings(BaseModel):
    """Command line settings of a context export."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    repo: Path = Field(default_factory=Path.cwd, description="Export root.")
    output: Path = Field(..., description="Output markdown file.")
    no_git: bool = Field(default=False, description="Do not use git ls-files.")
    log_file: str = Field(default="", description="Log file path.")
    config: str = Field(default="", description="YAML optimizer configuration file.")

    include_glob: list[str] = Field(default_factory=list, description="Include glob.")
    exclude_glob: list[str] = Field(default_factory=list, description="Exclude glob.")
    skip_empty: bool = Field(default=False, description="Skip files left empty after optimization.")
    compact: bool = Field(default=False, description="Reduce markdown verbosity.")

    optimize: bool | None = Field(default=None, description="Enable the optimizer.")
    max_token_budget: int | None = Field(default=None, description="Token ceiling; <= 0 is unlimited.")
    keep_comments: bool = Field(default=False, description="Do not strip ordinary comments.")
    keep_docstrings: bool = Field(default=False, description="Do not strip docstrings.")
    no_minify: bool = Field(default=False, description="Do not normalize whitespace.")
    no_truncate: bool = Field(default=False, description="Do not truncate large files.")
    max_lines_per_file: int | None = Field(default=None, description="Line cap per file.")
    no_recent: bool = Field(default=False, description="Do not order ties by recency.")

    def optimizer_overrides(self) -> dict[str, Any]:
        """Return the optimizer options explicitly set on the command line."""
        overrides: dict[str, Any] = {}
        if self.optimize is not None:
            overrides["enabled"] = self.optimize
        if self.max_token_budget is not None:
            overrides["max_token_budget"] = self.max_token_budget
        if self.max_lines_per_file is not None:
            overrides["max_lines_per_file"] = self.max_lines_per_file
        flags = {
            "remove_comments": self.keep_comments,
            "remove_docstrings": self.keep_docstrings,
            "minify_whitespace": self.no_minify,
            "truncate_large_files": self.no_truncate,
            "prioritize_recent_files": self.no_recent,
        }
        overrides.update({name: False for name, negated in flags.items() if negated})
        return overrides


def load_optimizer_config(path: str | Path) -> OptimizerConfig:
    """Load an `OptimizerConfig` from a YAML file.

    The options may sit at the top level or under an `ai_context_optimizer`
    (or `aiContextOptimizer`) mapping; snake_case and camelCase keys are both
    accepted. An empty file gives the defaults.

    Args:
        path (str | Path): the YAML file

    Raises:
        ConfigFileError: if the file cannot be read, is not a mapping or has invalid options.

    Returns:
        OptimizerConfig: the validated configuration
    """
    file = Path(path)
    try:
        data = yaml.safe_load(file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(file=file, message=f"Cannot read configuration: {e}") from e
    if not isinstance(data, dict):
        raise ConfigFileError(file=file, message="Configuration must be a mapping.")
    for section in _CONFIG_SECTIONS:
        if section in data:
            data = data[section] or {}
            break
    if not isinstance(data, dict):
        raise ConfigFileError(file=file, message="Optimizer section must be a mapping.")
    try:
        return OptimizerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigFileError(file=file, message=str(e)) from e


def resolve_optimizer_config(settings: Settings) -> OptimizerConfig:
    """Combine the configuration file (if any) with command line overrides.

    Raises:
        ConfigFileError: if the configuration file is invalid.
    """
    base = load_optimizer_config(settings.config) if settings.config else OptimizerConfig()
    overrides = settings.optimizer_overrides()
    return base.model_copy(update=overrides) if overrides else base
