"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable

import pytest

from gitlet.core import Repository


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def repo(workspace: Path) -> Repository:
    """Create an initialized repository in the workspace."""
    repository = Repository.init(workspace)
    yield repository
    repository.close()


@pytest.fixture
def write_file(workspace: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes a text file into the workspace."""

    def _write(rel_path: str, content: str) -> Path:
        path = workspace / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def commit_file(repo: Repository, write_file: Callable[[str, str], Path]) -> Callable[..., str]:
    """Return a helper that writes, stages and commits a single file."""

    def _commit(rel_path: str, content: str, message: str = "") -> str:
        write_file(rel_path, content)
        repo.stage_add(rel_path)
        return repo.commit(message or f"Update {rel_path}")

    return _commit
