"""
Commit-graph divergence between the current branch and a reference branch.
"""

from __future__ import annotations

import logging
from typing import Iterator, Union

from git import Commit, Head, Repo

from .models import CommitInfo, RepositoryError


logger = logging.getLogger(__name__)


class DivergenceAnalyzer:
    """Finds the commits that would be replayed when rebasing onto a reference."""

    def commits_ahead_of(self, repo: Repo, reference: Union[str, Head]) -> Iterator[CommitInfo]:
        """
        Yield commits of the current history that the reference lineage lacks.

        History is walked from HEAD in git's default order (children before
        parents). The walk stops at the first commit already contained in the
        reference lineage, which is taken as the fork point. When the two
        histories never meet, every commit of the current history is yielded.

        Each call starts a fresh walk from the current tip.

        Args:
            repo: Repository to inspect
            reference: Branch name, revision, or Head to compare against

        Yields:
            CommitInfo for each rebase candidate, newest first
        """
        reference_tip = self._resolve(repo, reference)
        count = 0
        for commit in repo.iter_commits():
            if self._contains(repo, reference_tip, commit):
                logger.debug(f"Reached fork point {commit.hexsha[:8]} after {count} commit(s)")
                return
            count += 1
            yield CommitInfo.from_git(commit)
        logger.debug(f"History does not meet {reference_tip.hexsha[:8]}; yielded {count} commit(s)")

    def count_ahead_of(self, repo: Repo, reference: Union[str, Head]) -> int:
        return sum(1 for _ in self.commits_ahead_of(repo, reference))

    def _resolve(self, repo: Repo, reference: Union[str, Head]) -> Commit:
        try:
            if isinstance(reference, Head):
                return reference.commit
            return repo.commit(reference)
        except Exception as e:
            logger.error(f"Error resolving reference {reference}: {e}")
            raise RepositoryError(f"Could not resolve reference {reference}: {e}") from e

    def _contains(self, repo: Repo, reference_tip: Commit, commit: Commit) -> bool:
        """Return True if ``commit`` is part of the reference lineage."""
        if commit.hexsha == reference_tip.hexsha:
            return True
        try:
            return repo.is_ancestor(commit, reference_tip)
        except Exception as e:
            logger.error(f"Error testing ancestry of {commit.hexsha[:8]}: {e}")
            raise RepositoryError(f"Failed to test ancestry of {commit.hexsha}: {e}") from e
