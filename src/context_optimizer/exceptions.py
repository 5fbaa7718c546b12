from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ContextOptimizerError(Exception):
    """Base exception for errors in the context_optimizer module."""


@dataclass(frozen=True)
class ConfigFileError(ContextOptimizerError):
    """Raised when an optimizer configuration file cannot be loaded."""

    file: Path
    message: str = "The optimizer configuration file is invalid."


@dataclass(frozen=True)
class NotAGitRepositoryError(ContextOptimizerError):
    """Raised when the specified directory is not a Git repository."""

    folder: Path
    message: str = "The specified directory is not a Git repository."
