from __future__ import annotations

import pytest

from context_optimizer.config import FileCandidate, OptimizerConfig
from context_optimizer.optimizer import ContentOptimizer


@pytest.fixture
def base_config() -> OptimizerConfig:
    return OptimizerConfig(
        enabled=True,
        max_token_budget=100_000,
        remove_comments=True,
        remove_docstrings=True,
        minify_whitespace=True,
        truncate_large_files=True,
        max_lines_per_file=2,
        prioritize_recent_files=True,
    )


@pytest.mark.unit
def test_optimize_removes_comments_minifies_and_truncates(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config)
    content = "\n".join(
        [
            "const a = 1; // comment",
            "",
            "/* block */",
            "const b = 2;",
            "",
            "",
            "const c = 3;",
        ],
    )

    optimized = optimizer.optimize(content, "src/index.ts", "ts")

    assert optimized.split("\n") == ["const a = 1;", "", "// ... truncated (5 lines omitted) ..."]
    stats = optimizer.get_stats(100, 80)
    assert stats.truncated_files == ["src/index.ts"]
    assert stats.comments_removed > 0


@pytest.mark.unit
def test_optimize_truncation_is_exact_line_prefix(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config)
    content = "\n".join(f"const v{i} = {i};" for i in range(7))

    optimized = optimizer.optimize(content, "src/values.ts", "ts")

    assert optimized == "const v0 = 0;\nconst v1 = 1;\n// ... truncated (5 lines omitted) ..."
    assert "5 lines omitted" in optimized
    assert optimizer.get_stats(0, 0).truncated_files == ["src/values.ts"]


@pytest.mark.unit
def test_optimize_disabled_is_passthrough(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config.model_copy(update={"enabled": False}))
    content = "const x = 1;   // comment\n\n\n\n\n/** doc */\n"

    assert optimizer.optimize(content, "src/index.ts", "ts") == content
    stats = optimizer.get_stats(10, 10)
    assert stats.comments_removed == 0
    assert stats.docstrings_removed == 0
    assert stats.truncated_files == []


@pytest.mark.unit
def test_doc_comment_kept_when_only_comments_removed() -> None:
    config = OptimizerConfig(
        enabled=True,
        remove_comments=True,
        remove_docstrings=False,
        minify_whitespace=False,
        truncate_large_files=False,
    )
    content = "/** Adds numbers. */\nfunction add(a, b) {\n  return a + b; // inline\n}\n"

    optimized = ContentOptimizer(config).optimize(content, "src/math.ts", "ts")

    assert optimized == "/** Adds numbers. */\nfunction add(a, b) {\n  return a + b; \n}\n"


@pytest.mark.unit
def test_inline_comment_kept_when_only_docstrings_removed() -> None:
    config = OptimizerConfig(
        enabled=True,
        remove_comments=False,
        remove_docstrings=True,
        minify_whitespace=False,
        truncate_large_files=False,
    )
    optimizer = ContentOptimizer(config)
    content = "/** Adds numbers. */\nfunction add(a, b) {\n  return a + b; // inline\n}\n"

    optimized = optimizer.optimize(content, "src/math.ts", "ts")

    assert "Adds numbers" not in optimized
    assert "// inline" in optimized
    assert optimizer.get_stats(0, 0).docstrings_removed == 1


@pytest.mark.unit
def test_python_docstrings_removed_hash_comment_kept() -> None:
    config = OptimizerConfig(enabled=True, remove_comments=False, remove_docstrings=True)
    optimizer = ContentOptimizer(config)
    content = '"""Module doc."""\n\n# note: keep\n\ndef run():\n    """Run doc."""\n    return 1\n'

    optimized = optimizer.optimize(content, "app.py", "py")

    assert "Module doc." not in optimized
    assert "Run doc." not in optimized
    assert "# note: keep" in optimized
    assert optimizer.get_stats(0, 0).docstrings_removed == 2  # noqa: PLR2004


@pytest.mark.unit
def test_url_in_python_string_survives_comment_removal() -> None:
    optimizer = ContentOptimizer(OptimizerConfig(enabled=True))
    content = 'URL = "https://example.com/#anchor"  # comment\n'

    assert optimizer.optimize(content, "settings.py", "py") == 'URL = "https://example.com/#anchor"\n'


@pytest.mark.unit
def test_unmapped_extension_only_gets_language_agnostic_passes() -> None:
    optimizer = ContentOptimizer(OptimizerConfig(enabled=True, max_lines_per_file=500))
    content = "# Title   \n<!-- keep -->\n// keep\n"

    assert optimizer.optimize(content, "README.md", "md") == "# Title\n<!-- keep -->\n// keep\n"
    assert optimizer.get_stats(0, 0).comments_removed == 0


@pytest.mark.unit
def test_get_stats_savings_and_copy(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config)
    optimizer.optimize("a\nb\nc\n", "src/a.ts", "ts")

    stats = optimizer.get_stats(100, 80)
    stats.truncated_files.append("other")

    assert stats.tokens_saved == 20  # noqa: PLR2004
    assert stats.savings_percent == 20  # noqa: PLR2004
    assert optimizer.truncated_files == ["src/a.ts"]
    assert optimizer.get_stats(0, 0).savings_percent == 0
    assert optimizer.get_stats(200, 199).savings_percent == 1


@pytest.mark.unit
def test_reset_clears_counters_and_keeps_config(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config)
    optimizer.optimize("/** d */\nx; // c\n1\n2\n", "src/a.ts", "ts")

    optimizer.reset()

    stats = optimizer.get_stats(0, 0)
    assert (stats.comments_removed, stats.docstrings_removed, stats.truncated_files) == (0, 0, [])
    assert optimizer.config is base_config


@pytest.mark.unit
def test_optimize_candidate_reports_tokens(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config.model_copy(update={"truncate_large_files": False}))
    candidate = FileCandidate(path="src/a.ts", language_tag="ts", raw_content="const a = 1; // comment\n")

    result = optimizer.optimize_candidate(candidate)

    assert result.optimized_content == "const a = 1;\n"
    assert result.original_tokens == 6  # noqa: PLR2004
    assert result.optimized_tokens == 4  # noqa: PLR2004


@pytest.mark.unit
def test_config_accepts_camel_case_aliases() -> None:
    config = OptimizerConfig.model_validate({"enabled": True, "maxTokenBudget": 42, "maxLinesPerFile": 7})

    assert config.max_token_budget == 42  # noqa: PLR2004
    assert config.max_lines_per_file == 7  # noqa: PLR2004


@pytest.mark.unit
def test_rollback_restores_counters_to_checkpoint(base_config: OptimizerConfig) -> None:
    optimizer = ContentOptimizer(base_config)
    optimizer.optimize("a\nb\nc\n", "src/kept.ts", "ts")
    mark = optimizer.checkpoint()

    optimizer.optimize("/** d */\nx; // c\n1\n2\n", "src/dropped.ts", "ts")
    optimizer.rollback(mark)

    stats = optimizer.get_stats(0, 0)
    assert stats.truncated_files == ["src/kept.ts"]
    assert (stats.comments_removed, stats.docstrings_removed) == (0, 0)


@pytest.mark.unit
def test_go_doc_block_kept_when_only_comments_removed() -> None:
    config = OptimizerConfig(
        enabled=True,
        remove_comments=True,
        remove_docstrings=False,
        minify_whitespace=False,
        truncate_large_files=False,
    )

    optimized = ContentOptimizer(config).optimize("// Add adds.\nfunc Add() {} // x\n", "add.go", "go")

    assert optimized == "// Add adds.\nfunc Add() {} \n"
