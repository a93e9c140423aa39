"""
Tests for commit divergence analysis.
"""

import shutil
from unittest.mock import MagicMock

import pytest

from repo_sync.divergence import DivergenceAnalyzer
from repo_sync.models import RepositoryError


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def _history(make_commit, shas):
    """Linear history, newest first, as ``iter_commits`` returns it."""
    commits = []
    parent = None
    for sha in reversed(shas):
        parent = make_commit(sha, [parent] if parent else [])
        commits.append(parent)
    return list(reversed(commits))


def _repo(history, reference_tip, reference_lineage):
    """Mock repository; ``reference_lineage`` is the set of hexshas reachable from the reference."""
    repo = MagicMock()
    repo.iter_commits.side_effect = lambda *a, **kw: iter(history)
    repo.commit.return_value = reference_tip
    repo.is_ancestor.side_effect = lambda commit, tip: commit.hexsha in reference_lineage
    return repo


class TestDivergenceAnalyzer:
    """Test DivergenceAnalyzer with mocked commit graphs."""

    def test_same_commit_yields_nothing(self, make_commit):
        history = _history(make_commit, ["c2", "c1"])
        repo = _repo(history, history[0], {"c2", "c1"})
        analyzer = DivergenceAnalyzer()

        assert list(analyzer.commits_ahead_of(repo, "main")) == []
        assert list(analyzer.commits_ahead_of(repo, "main")) == []

    def test_commits_after_fork_point(self, make_commit):
        history = _history(make_commit, ["f3", "f2", "f1", "base", "root"])
        reference_tip = make_commit("m1", [history[3]])
        repo = _repo(history, reference_tip, {"m1", "base", "root"})

        commits = list(DivergenceAnalyzer().commits_ahead_of(repo, "main"))

        assert [c.hash for c in commits] == ["f3", "f2", "f1"]
        assert commits[0].parents == ["f2"]
        repo.commit.assert_called_once_with("main")

    def test_walk_stops_at_fork_point(self, make_commit):
        history = _history(make_commit, ["f1", "base", "root"])
        repo = _repo(history, make_commit("m1"), {"m1", "base", "root"})

        list(DivergenceAnalyzer().commits_ahead_of(repo, "main"))

        checked = [call.args[0].hexsha for call in repo.is_ancestor.call_args_list]
        assert checked == ["f1", "base"]

    def test_unrelated_histories_yield_everything(self, make_commit):
        history = _history(make_commit, ["b2", "b1"])
        repo = _repo(history, make_commit("other"), {"other"})

        commits = list(DivergenceAnalyzer().commits_ahead_of(repo, "orphan"))

        assert [c.hash for c in commits] == ["b2", "b1"]

    def test_lazy_and_restartable(self, make_commit):
        history = _history(make_commit, ["f2", "f1", "base"])
        repo = _repo(history, make_commit("m1"), {"m1", "base"})
        analyzer = DivergenceAnalyzer()

        first = next(analyzer.commits_ahead_of(repo, "main"))
        again = list(analyzer.commits_ahead_of(repo, "main"))

        assert first.hash == "f2"
        assert [c.hash for c in again] == ["f2", "f1"]

    def test_count_ahead_of(self, make_commit):
        history = _history(make_commit, ["f2", "f1", "base"])
        repo = _repo(history, make_commit("m1"), {"m1", "base"})

        assert DivergenceAnalyzer().count_ahead_of(repo, "main") == 2

    def test_unresolvable_reference(self, make_commit):
        repo = MagicMock()
        repo.commit.side_effect = ValueError("Ref 'nope' did not resolve to an object")

        with pytest.raises(RepositoryError):
            list(DivergenceAnalyzer().commits_ahead_of(repo, "nope"))

    def test_ancestry_error_becomes_repository_error(self, make_commit):
        history = _history(make_commit, ["f1"])
        repo = _repo(history, make_commit("m1"), set())
        repo.is_ancestor.side_effect = RuntimeError("object missing")

        with pytest.raises(RepositoryError):
            list(DivergenceAnalyzer().commits_ahead_of(repo, "main"))


@requires_git
class TestDivergenceIntegration:
    """Divergence on a real repository."""

    def test_feature_branch_ahead_of_base(self, git_repo):
        repo = git_repo.repo
        repo.create_head("base")
        second = git_repo.commit("a.txt", "a\n", "Add a")
        third = git_repo.commit("b.txt", "b\n", "Add b")

        commits = list(DivergenceAnalyzer().commits_ahead_of(repo, "base"))

        assert [c.hash for c in commits] == [third.hexsha, second.hexsha]
        assert commits[0].summary == "Add b"

    def test_accepts_head_object(self, git_repo):
        repo = git_repo.repo
        base = repo.create_head("base")
        git_repo.commit("a.txt", "a\n", "Add a")

        assert DivergenceAnalyzer().count_ahead_of(repo, base) == 1

    def test_up_to_date_branch(self, git_repo):
        assert list(DivergenceAnalyzer().commits_ahead_of(git_repo.repo, "HEAD")) == []

    def test_diverged_reference(self, git_repo):
        repo = git_repo.repo
        current = repo.active_branch
        base = repo.create_head("base")
        base.checkout()
        git_repo.commit("upstream.txt", "u\n", "Upstream work")
        current.checkout()
        mine = git_repo.commit("mine.txt", "m\n", "My work")

        commits = list(DivergenceAnalyzer().commits_ahead_of(repo, "base"))

        assert [c.hash for c in commits] == [mine.hexsha]
