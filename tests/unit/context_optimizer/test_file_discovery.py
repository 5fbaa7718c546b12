from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from context_optimizer import file_discovery
from context_optimizer.exceptions import NotAGitRepositoryError
from context_optimizer.file_discovery import (
    apply_filters,
    build_tree_lines,
    discover_files,
    git_ls_files,
    normalize_globs,
    sniff_text_utf8,
    walk_files,
)


def make_tree(root: Path, rel_paths: list[str]) -> list[Path]:
    paths = []
    for rel in rel_paths:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"# {rel}\n", encoding="utf-8")
        paths.append(path)
    return paths


@pytest.mark.unit
def test_normalize_globs_strips_and_normalizes() -> None:
    globs = ["  src/**/*.py ", "\\tests\\*.py", "", "   "]

    assert normalize_globs(globs) == ["src/**/*.py", "/tests/*.py"]


@pytest.mark.unit
def test_apply_filters_include_exclude_and_default_excludes(tmp_path: Path) -> None:
    files = make_tree(
        tmp_path,
        ["src/app.py", "src/app_test.py", "docs/guide.md", "node_modules/lib/index.js", "src/b.py"],
    )

    kept = apply_filters(files, tmp_path, includes=["src/*"], excludes=["*_test.py"])

    assert kept == [tmp_path / "src" / "app.py", tmp_path / "src" / "b.py"]


@pytest.mark.unit
def test_apply_filters_skips_missing_files(tmp_path: Path) -> None:
    files = make_tree(tmp_path, ["a.txt"])

    assert apply_filters([*files, tmp_path / "ghost.txt"], tmp_path, includes=[], excludes=[]) == files


@pytest.mark.unit
def test_walk_files_prunes_default_excludes(tmp_path: Path) -> None:
    make_tree(tmp_path, ["src/app.py", ".git/config", "__pycache__/app.pyc", ".venv/bin/python"])

    found = walk_files(tmp_path)

    assert found == [(tmp_path / "src" / "app.py").resolve()]


@pytest.mark.unit
def test_git_ls_files_requires_git_directory(tmp_path: Path) -> None:
    with pytest.raises(NotAGitRepositoryError):
        git_ls_files(tmp_path)


@pytest.mark.unit
def test_discover_files_falls_back_to_walk(tmp_path: Path, mocker: MockerFixture) -> None:
    make_tree(tmp_path, ["main.go"])
    walk = mocker.spy(file_discovery, "walk_files")

    found = discover_files(tmp_path, use_git=True)

    assert found == [(tmp_path / "main.go").resolve()]
    walk.assert_called_once_with(tmp_path)


@pytest.mark.unit
def test_discover_files_uses_git_listing(tmp_path: Path, mocker: MockerFixture) -> None:
    listed = [tmp_path / "tracked.py"]
    mocker.patch.object(file_discovery, "git_ls_files", return_value=listed)
    walk = mocker.patch.object(file_discovery, "walk_files")

    assert discover_files(tmp_path) == listed
    walk.assert_not_called()


@pytest.mark.unit
def test_sniff_text_utf8(tmp_path: Path) -> None:
    text = tmp_path / "a.txt"
    text.write_text("héllo", encoding="utf-8")
    binary = tmp_path / "b.bin"
    binary.write_bytes(b"\xff\xfe\x00\x81")

    assert sniff_text_utf8(text) is True
    assert sniff_text_utf8(binary) is False
    assert sniff_text_utf8(tmp_path) is False


@pytest.mark.unit
def test_build_tree_lines_directories_first() -> None:
    lines = build_tree_lines("repo", ["src/app.py", "README.md", "src/core/util.py"])

    assert lines == [
        "repo",
        "├── src/",
        "│   ├── core/",
        "│   │   └── util.py",
        "│   └── app.py",
        "└── README.md",
    ]
