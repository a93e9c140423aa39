"""
Unified synchronization surface for a working copy.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from git import Head

from .credentials import CredentialResolver, NoCredentials
from .divergence import DivergenceAnalyzer
from .fetch_coordinator import FetchCoordinator
from .git_manager import GitManager
from .models import CommitInfo, FetchOutcome, Remote, SubmoduleOutcome, SyncError
from .progress import ProgressSink, ensure_sink
from .submodule_sync import SubmoduleSynchronizer


logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Composes fetch, submodule update and divergence analysis for one repository."""

    def __init__(
        self,
        root_path: Optional[Path] = None,
        progress_sink: Optional[ProgressSink] = None,
        credentials: Optional[CredentialResolver] = None,
    ) -> None:
        """Initialize the orchestrator."""
        self.root_path = Path(root_path or Path.cwd()).resolve()
        self.git_manager = GitManager(self.root_path)
        self.progress_sink = ensure_sink(progress_sink)
        self.credentials = credentials or NoCredentials()
        self.fetch_coordinator = FetchCoordinator(self.credentials)
        self.submodule_synchronizer = SubmoduleSynchronizer(self.credentials)
        self.divergence_analyzer = DivergenceAnalyzer()
        logger.debug(f"Initialized sync orchestrator for {self.root_path}")

    def __enter__(self) -> SyncOrchestrator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.git_manager.close()

    @property
    def repo(self):
        return self.git_manager.repo

    @contextmanager
    def _reported(self):
        """Announce a failure on the progress sink before it propagates."""
        try:
            yield
        except SyncError as e:
            self.progress_sink.push(str(e))
            raise

    # --- Listing ---
    def get_current_branch(self) -> Optional[str]:
        with self._reported():
            return self.git_manager.get_current_branch()

    def get_branch_names(self) -> List[str]:
        with self._reported():
            return self.git_manager.get_branch_names()

    def get_remote_names(self) -> List[str]:
        with self._reported():
            return self.git_manager.get_remote_names()

    def get_default_remote_name(self, preferred: str = "origin") -> Optional[str]:
        with self._reported():
            return self.git_manager.get_default_remote_name(preferred)

    def get_remotes(self) -> List[Remote]:
        with self._reported():
            return self.fetch_coordinator.configured_remotes(self.repo)

    # --- Fetch ---
    def fetch(
        self,
        remotes: Optional[Iterable[Remote]] = None,
        prune: bool = False,
        progress_sink: Optional[ProgressSink] = None,
    ) -> List[FetchOutcome]:
        """Fetch the given remotes, or every configured remote when none are given."""
        sink = progress_sink or self.progress_sink
        with self._reported():
            repo = self.repo
        if remotes is None:
            return self.fetch_coordinator.fetch_all(repo, self.credentials, sink, prune)
        return self.fetch_coordinator.fetch(repo, remotes, self.credentials, sink, prune)

    def fetch_remote(
        self,
        remote: Union[str, Remote],
        prune: bool = False,
        progress_sink: Optional[ProgressSink] = None,
    ) -> List[FetchOutcome]:
        """Fetch one remote, given by snapshot or by configured name.

        An unknown name fetches nothing and returns an empty list.
        """
        sink = progress_sink or self.progress_sink
        with self._reported():
            repo = self.repo
        if isinstance(remote, Remote):
            return [self.fetch_coordinator.fetch_remote(repo, remote, self.credentials, sink, prune)]
        return self.fetch_coordinator.fetch_by_name(repo, remote, self.credentials, sink, prune)

    # --- Submodules ---
    def update_submodules(
        self, recursive: bool = True, progress_sink: Optional[ProgressSink] = None
    ) -> List[SubmoduleOutcome]:
        with self._reported():
            repo = self.repo
        return self.submodule_synchronizer.update(repo, recursive, progress_sink or self.progress_sink)

    # --- History ---
    def commits_ahead_of(self, reference: Union[str, Head]) -> Iterator[CommitInfo]:
        """Lazily yield the commits that would be rebased onto ``reference``."""
        with self._reported():
            yield from self.divergence_analyzer.commits_ahead_of(self.repo, reference)

    # --- Working tree ---
    def get_full_path(self, file_path: Union[str, Path]) -> Path:
        with self._reported():
            return self.git_manager.get_full_path(file_path)

    def revert_file_changes(self, *file_paths: Union[str, Path]) -> None:
        with self._reported():
            self.git_manager.revert_file_changes(*file_paths)

    def checkout_branch(self, branch_name: str) -> None:
        with self._reported():
            self.git_manager.checkout_branch(branch_name)

    def stage(self, file_path: Union[str, Path]) -> None:
        with self._reported():
            self.git_manager.stage(file_path)

    def remove(self, file_path: Union[str, Path]) -> None:
        with self._reported():
            self.git_manager.remove(file_path)

    # --- Hosting URLs ---
    def get_repo_url(self, remote_name: Optional[str] = None) -> Optional[str]:
        name = remote_name or self.get_default_remote_name()
        return self.git_manager.get_repo_url(name) if name else None

    def get_commit_url(self, commit_sha: Optional[str] = None, remote_name: Optional[str] = None) -> Optional[str]:
        name = remote_name or self.get_default_remote_name()
        if not name:
            return None
        with self._reported():
            return self.git_manager.get_commit_url(commit_sha, name)
