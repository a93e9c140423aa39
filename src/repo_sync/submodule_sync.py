"""
Recursive submodule initialization and update.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from git import Repo, Submodule

from .credentials import CredentialResolver, NoCredentials
from .fetch_coordinator import describe_git_error
from .models import ConfigurationError, Remote, SubmoduleFailure, SubmoduleOutcome
from .progress import ProgressSink, ensure_sink


logger = logging.getLogger(__name__)


class SubmoduleSynchronizer:
    """Initializes and updates submodules, isolating failures per submodule."""

    def __init__(self, credentials: Optional[CredentialResolver] = None) -> None:
        self.credentials = credentials or NoCredentials()

    def update(
        self,
        repo: Repo,
        recursive: bool = True,
        progress_sink: Optional[ProgressSink] = None,
    ) -> List[SubmoduleOutcome]:
        """
        Update every submodule declared by ``repo``, in declaration order.

        Each submodule is checked out at the commit recorded by ``repo``
        (detached HEAD), independent of the submodule's default branch.

        Args:
            repo: Repository whose submodules are updated
            recursive: Also update the submodules of each updated submodule
            progress_sink: Optional receiver of status messages

        Returns:
            One SubmoduleOutcome per top-level submodule. Nested results are
            attached to their parent outcome as ``children``.
        """
        sink = ensure_sink(progress_sink)
        outcomes: List[SubmoduleOutcome] = []

        for submodule in self._declared_submodules(repo, sink):
            outcomes.append(self._update_one(repo, submodule, recursive, sink))

        failed = [o.name for o in outcomes if not o.success]
        if failed:
            logger.warning(f"{len(failed)} submodule(s) failed to update in {repo.working_dir}: {failed}")
        elif outcomes:
            logger.info(f"Updated {len(outcomes)} submodule(s) in {repo.working_dir}")
        return outcomes

    def _declared_submodules(self, repo: Repo, sink: ProgressSink) -> List[Submodule]:
        try:
            return list(repo.submodules)
        except Exception as e:
            logger.error(f"Error reading submodules of {repo.working_dir}: {e}")
            message = f"Failed to read submodule configuration in {repo.working_dir}: {e}"
            sink.push(message)
            raise ConfigurationError(message) from e

    def _update_one(
        self, repo: Repo, submodule: Submodule, recursive: bool, sink: ProgressSink
    ) -> SubmoduleOutcome:
        name = submodule.name
        path = Path(repo.working_dir) / submodule.path
        outcome = SubmoduleOutcome(name=name, path=path, success=False)

        sink.push(f"Submodule update {name}")
        try:
            self._update_submodule(repo, submodule, sink)
            if recursive:
                outcome.recursed = True
                outcome.children = self._update_nested(name, path, sink)
            outcome.success = True
        except SubmoduleFailure as e:
            logger.warning(str(e))
            sink.push(str(e))
            outcome.error = e.description

        return outcome

    def _update_submodule(self, repo: Repo, submodule: Submodule, sink: ProgressSink) -> None:
        """Clone if needed and check out the recorded commit of one submodule.

        Only this submodule is touched (``--`` pathspec, no ``--recursive``);
        nesting is handled by opening the submodule as its own repository.
        """
        env = self.credentials.environment_for(Remote(submodule.name, url=submodule.url))
        try:
            with repo.git.custom_environment(**env):
                output = repo.git.submodule("update", "--init", "--", submodule.path)
        except Exception as e:
            logger.error(f"Error updating submodule {submodule.name}: {e}")
            raise SubmoduleFailure(submodule.name, describe_git_error(e)) from e

        for line in (output or "").splitlines():
            if line.strip():
                sink.push(line.strip())
        logger.debug(f"Updated submodule {submodule.name} at {submodule.path}")

    def _update_nested(self, name: str, path: Path, sink: ProgressSink) -> List[SubmoduleOutcome]:
        """Open the submodule as its own repository and update its submodules.

        The handle is owned by this frame and closed before returning.
        """
        try:
            with Repo(path) as sub_repo:
                return self.update(sub_repo, recursive=True, progress_sink=sink)
        except Exception as e:
            logger.error(f"Error updating nested submodules of {name}: {e}")
            raise SubmoduleFailure(name, describe_git_error(e)) from e
