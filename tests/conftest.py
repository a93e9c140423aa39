"""
Shared fixtures for the repository sync tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional

import pytest


@pytest.fixture(autouse=True)
def isolated_log_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep CLI log files out of the user's home directory."""
    log_path = tmp_path / "logs" / "repo-sync.log"
    monkeypatch.setenv("REPO_SYNC_LOG", str(log_path))
    return log_path


@pytest.fixture()
def make_commit():
    """Factory for objects shaped like GitPython commits."""

    def _make(sha: str, parents: Optional[List[SimpleNamespace]] = None, message: str = "") -> SimpleNamespace:
        return SimpleNamespace(
            hexsha=sha,
            message=message or f"Commit {sha}\n",
            author=SimpleNamespace(name="Test Author", email="test@example.com"),
            committed_datetime=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            parents=parents or [],
        )

    return _make


@pytest.fixture()
def git_repo(tmp_path: Path):
    """Create a real repository with one initial commit.

    Yields a namespace with ``repo``, ``path`` and ``commit(filename, content, message)``.
    """
    from git import Actor, Repo

    path = tmp_path / "work"
    path.mkdir()
    repo = Repo.init(path)
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Test Author")
        cw.set_value("user", "email", "test@example.com")

    actor = Actor("Test Author", "test@example.com")

    def commit(filename: str, content: str, message: str):
        (path / filename).write_text(content)
        repo.index.add([filename])
        return repo.index.commit(message, author=actor, committer=actor)

    commit("README.md", "# work\n", "Initial commit")
    yield SimpleNamespace(repo=repo, path=path, commit=commit)
    repo.close()
