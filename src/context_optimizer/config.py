from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class SyntaxFamily(StrEnum):
    """Comment/string syntax shared by a group of languages.

    Each member selects one handler in the scanner and docstring dispatch
    tables. `PLAIN` is the identity handler used for unmapped extensions.
    """

    BRACE = auto()
    HASH = auto()
    SQL = auto()
    LINE_DOC = auto()
    MARKUP = auto()
    MARKUP_BRACE = auto()
    STYLESHEET = auto()
    PLAIN = auto()


class LanguageProfile(NamedTuple):
    """Families used by the comment pass and the docstring pass for one extension."""

    comments: SyntaxFamily
    docstrings: SyntaxFamily
    shebang: bool = False


_BRACE = LanguageProfile(SyntaxFamily.BRACE, SyntaxFamily.BRACE)

PLAIN_PROFILE = LanguageProfile(SyntaxFamily.PLAIN, SyntaxFamily.PLAIN)

EXT2PROFILE: dict[str, LanguageProfile] = {
    "bash": LanguageProfile(SyntaxFamily.HASH, SyntaxFamily.PLAIN, shebang=True),
    "c": _BRACE,
    "cpp": _BRACE,
    "cs": _BRACE,
    "css": LanguageProfile(SyntaxFamily.STYLESHEET, SyntaxFamily.PLAIN),
    "go": LanguageProfile(SyntaxFamily.LINE_DOC, SyntaxFamily.LINE_DOC),
    "html": LanguageProfile(SyntaxFamily.MARKUP, SyntaxFamily.PLAIN),
    "java": _BRACE,
    "js": _BRACE,
    "jsx": _BRACE,
    "kt": _BRACE,
    "less": LanguageProfile(SyntaxFamily.STYLESHEET, SyntaxFamily.PLAIN),
    "py": LanguageProfile(SyntaxFamily.HASH, SyntaxFamily.HASH, shebang=True),
    "rb": LanguageProfile(SyntaxFamily.HASH, SyntaxFamily.PLAIN),
    "rs": _BRACE,
    "scss": LanguageProfile(SyntaxFamily.STYLESHEET, SyntaxFamily.PLAIN),
    "sh": LanguageProfile(SyntaxFamily.HASH, SyntaxFamily.PLAIN, shebang=True),
    "sql": LanguageProfile(SyntaxFamily.SQL, SyntaxFamily.PLAIN),
    "svelte": LanguageProfile(SyntaxFamily.MARKUP_BRACE, SyntaxFamily.BRACE),
    "swift": _BRACE,
    "ts": _BRACE,
    "tsx": _BRACE,
    "vue": LanguageProfile(SyntaxFamily.MARKUP_BRACE, SyntaxFamily.BRACE),
    "xml": LanguageProfile(SyntaxFamily.MARKUP, SyntaxFamily.PLAIN),
    "zsh": LanguageProfile(SyntaxFamily.HASH, SyntaxFamily.PLAIN, shebang=True),
}

ENTRY_BASE_NAMES = frozenset(
    {
        "index",
        "main",
        "app",
        "server",
        "cli",
        "bootstrap",
        "startup",
        "init",
        "entry",
    },
)

ENTRY_FILE_NAMES = frozenset(
    {
        "package.json",
        "tsconfig.json",
        "vite.config.ts",
        "vite.config.js",
        "next.config.js",
        "next.config.ts",
        "webpack.config.js",
        "webpack.config.ts",
        "pyproject.toml",
        "setup.py",
        "cargo.toml",
        "go.mod",
    },
)

SOURCE_DIRS = ("src",)

DEFAULT_EXCLUDES = {
    ".git",
    ".venv",
    "venv",
    "env",
    "__pycache__",
    ".mypy_cache",
    ".ruff_cache",
    ".pytest_cache",
    ".ipynb_checkpoints",
    "node_modules",
    "dist",
    "build",
    "coverage",
    ".DS_Store",
    ".idea",
    ".vscode",
}

_FENCE_LANGUAGE: dict[str, str] = {
    "bash": "bash",
    "c": "c",
    "cpp": "cpp",
    "cs": "csharp",
    "css": "css",
    "go": "go",
    "h": "c",
    "hpp": "cpp",
    "html": "html",
    "java": "java",
    "js": "javascript",
    "json": "json",
    "jsx": "jsx",
    "kt": "kotlin",
    "less": "less",
    "md": "markdown",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "scss": "scss",
    "sh": "bash",
    "sql": "sql",
    "svelte": "svelte",
    "swift": "swift",
    "toml": "toml",
    "ts": "typescript",
    "tsx": "tsx",
    "vue": "vue",
    "xml": "xml",
    "yaml": "yaml",
    "yml": "yaml",
    "zsh": "zsh",
}


def normalize_language_tag(language_tag: str) -> str:
    """Return the lowercase extension without its leading dot."""
    return (language_tag or "").strip().lstrip(".").lower()


def language_profile(language_tag: str) -> LanguageProfile:
    """Look up the syntax families for an extension.

    Args:
        language_tag (str): the file extension, with or without a leading dot.

    Returns:
        LanguageProfile: the profile for the extension, or `PLAIN_PROFILE` when unmapped.
    """
    return EXT2PROFILE.get(normalize_language_tag(language_tag), PLAIN_PROFILE)


def guess_language(language_tag: str) -> str:
    """Get the code fence language for an extension, or empty string if none."""
    return _FENCE_LANGUAGE.get(normalize_language_tag(language_tag), "")


class OptimizerConfig(BaseModel):
    """Settings of one content optimizer instance.

    Field names are snake_case; the camelCase spelling used by editor
    settings files (`maxTokenBudget`, ...) is accepted as an alias.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    enabled: bool = Field(default=False, description="Run the optimizer at all.")
    max_token_budget: int = Field(
        default=100_000,
        description="Token ceiling for the whole export; <= 0 means unlimited.",
    )
    remove_comments: bool = Field(default=True, description="Strip ordinary comments.")
    remove_docstrings: bool = Field(default=True, description="Strip doc comments and docstrings.")
    minify_whitespace: bool = Field(default=True, description="Trim and collapse blank lines.")
    truncate_large_files: bool = Field(default=True, description="Cap files at max_lines_per_file.")
    max_lines_per_file: int = Field(
        default=500,
        description="Line cap per file; <= 0 disables truncation.",
    )
    prioritize_recent_files: bool = Field(
        default=True,
        description="Break priority ties by modification time.",
    )


class FileCandidate(BaseModel):
    """A file offered to the optimizer."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="File path used for reporting")
    language_tag: str = Field(..., description="Lowercase file extension")
    raw_content: str = Field(..., description="File content before optimization")


class OptimizationResult(BaseModel):
    """Optimized content with the token estimates before and after."""

    model_config = ConfigDict(frozen=True)

    optimized_content: str
    original_tokens: int = Field(..., ge=0)
    optimized_tokens: int = Field(..., ge=0)


class OptimizationStats(BaseModel):
    """Run-wide optimizer report."""

    original_tokens: int
    optimized_tokens: int
    tokens_saved: int
    savings_percent: int
    truncated_files: list[str] = Field(default_factory=list)
    comments_removed: int = 0
    docstrings_removed: int = 0


class ExportEntry(BaseModel):
    """A file admitted into the export document."""

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., description="File path relative to the export root")
    language_tag: str = Field("", description="Lowercase file extension")
    content: str = Field(..., description="Optimized content")
    original_tokens: int = Field(..., ge=0)
    optimized_tokens: int = Field(..., ge=0)

    @computed_field
    @property
    def language(self) -> str:
        """Get the suggested code fence language based on the extension."""
        return guess_language(self.language_tag)


class SkippedFile(BaseModel):
    """A file left out of the export, with the reason."""

    model_config = ConfigDict(frozen=True)

    rel: str
    reason: Literal["empty", "budget", "error"]
    detail: str = ""


class ExportResult(BaseModel):
    """Outcome of one budgeted export run."""

    entries: list[ExportEntry] = Field(default_factory=list)
    skipped: list[SkippedFile] = Field(default_factory=list)
    total_original_tokens: int = 0
    total_optimized_tokens: int = 0
    stats: OptimizationStats | None = None

    @computed_field
    @property
    def skipped_for_budget(self) -> list[str]:
        """Relative paths dropped because they did not fit the token budget."""
        return [s.rel for s in self.skipped if s.reason == "budget"]


@dataclass(frozen=True)
class PassDelta:
    """Output of one optimization pass plus what it removed.

    Passes never touch optimizer state; the optimizer folds these deltas
    into its running counters.
    """

    content: str
    comments_removed: int = 0
    docstrings_removed: int = 0
    truncated: bool = False
