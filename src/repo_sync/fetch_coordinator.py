"""
Remote fetch coordination with progress forwarding.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Union

from git import Repo, RemoteProgress
from git.exc import GitCommandError

from .credentials import CredentialResolver, NoCredentials
from .models import ConfigurationError, FetchOutcome, Remote, TransferProgress, TransportFailure
from .progress import ProgressSink, ensure_sink


logger = logging.getLogger(__name__)


_STAGE_NAMES = {
    RemoteProgress.COUNTING: "Counting objects",
    RemoteProgress.COMPRESSING: "Compressing objects",
    RemoteProgress.WRITING: "Writing objects",
    RemoteProgress.RECEIVING: "Receiving objects",
    RemoteProgress.RESOLVING: "Resolving deltas",
    RemoteProgress.FINDING_SOURCES: "Finding sources",
    RemoteProgress.CHECKING_OUT: "Checking out files",
}


def describe_git_error(error: Exception) -> str:
    """Return the most useful one-line description of a git failure."""
    if isinstance(error, GitCommandError):
        stderr = (error.stderr or "").strip() if isinstance(error.stderr, str) else ""
        if stderr:
            return stderr.replace("stderr: ", "", 1).strip().strip("'").strip()
    return str(error).strip()


class FetchProgress(RemoteProgress):
    """Translates GitPython transport callbacks into progress sink events.

    Receiving-stage updates become transfer progress with a completion ratio.
    Every other line reported by the transport (other stages, ``remote:`` text)
    is server progress and is forwarded verbatim as git printed it. A stage
    update without a source line (called directly rather than parsed) is
    rendered as ``"<stage>: <cur>[/<max>]<message>"``. Neither path ever
    requests cancellation.
    """

    def __init__(self, sink: ProgressSink) -> None:
        super().__init__()
        self.sink = sink

    def update(self, op_code, cur_count, max_count=None, message=""):
        stage = op_code & self.OP_MASK
        if stage == self.RECEIVING:
            self.on_transfer_progress(
                TransferProgress(
                    received_objects=int(cur_count or 0),
                    total_objects=int(max_count or 0),
                )
            )
            return

        # Line being parsed by RemoteProgress; None outside of parsing
        raw = (self._cur_line or "").strip()
        if raw:
            self.on_server_progress(raw)
            return

        name = _STAGE_NAMES.get(stage, "Progress")
        text = f"{name}: {int(cur_count or 0)}"
        if max_count:
            text += f"/{int(max_count)}"
        if message:
            text += f"{message}"
        self.on_server_progress(text)

    def line_dropped(self, line):
        text = line.strip()
        if text:
            self.on_server_progress(text)

    def on_server_progress(self, text: str) -> bool:
        self.sink.push(text)
        return True

    def on_transfer_progress(self, progress: TransferProgress) -> bool:
        self.sink.push(progress.describe(), progress.ratio)
        return True


class FetchCoordinator:
    """Drives fetches of one or more remotes with per-remote failure isolation."""

    def __init__(self, credentials: Optional[CredentialResolver] = None) -> None:
        self.credentials = credentials or NoCredentials()

    def configured_remotes(self, repo: Repo) -> List[Remote]:
        """Snapshot the remotes configured for ``repo``, in configuration order."""
        try:
            return [Remote.from_git(r) for r in repo.remotes]
        except Exception as e:
            logger.error(f"Error reading remotes from configuration: {e}")
            raise ConfigurationError(f"Failed to read remote configuration: {e}") from e

    def fetch(
        self,
        repo: Repo,
        remotes: Iterable[Remote],
        credentials: Optional[CredentialResolver] = None,
        progress_sink: Optional[ProgressSink] = None,
        prune: bool = False,
    ) -> List[FetchOutcome]:
        """
        Fetch each remote in order.

        A failure of one remote is recorded as its outcome and does not stop
        the remaining remotes, so the result always has one outcome per input.

        Returns:
            List of FetchOutcome in input order
        """
        sink = ensure_sink(progress_sink)
        resolver = credentials or self.credentials
        outcomes: List[FetchOutcome] = []

        for remote in remotes:
            try:
                self._fetch_one(repo, remote, resolver, sink, prune)
                outcomes.append(FetchOutcome.ok(remote.name))
            except TransportFailure as e:
                logger.warning(str(e))
                sink.push(str(e))
                outcomes.append(FetchOutcome.failed(remote.name, e.description))

        return outcomes

    def fetch_remote(
        self,
        repo: Repo,
        remote: Remote,
        credentials: Optional[CredentialResolver] = None,
        progress_sink: Optional[ProgressSink] = None,
        prune: bool = False,
    ) -> FetchOutcome:
        """Fetch a single remote."""
        return self.fetch(repo, [remote], credentials, progress_sink, prune)[0]

    def fetch_by_name(
        self,
        repo: Repo,
        remote_name: str,
        credentials: Optional[CredentialResolver] = None,
        progress_sink: Optional[ProgressSink] = None,
        prune: bool = False,
    ) -> List[FetchOutcome]:
        """Fetch the configured remote called ``remote_name``.

        An unknown name performs no fetch and returns an empty list.
        """
        sink = ensure_sink(progress_sink)
        remote = self.find_remote(repo, remote_name)
        if remote is None:
            logger.warning(f"Remote {remote_name} is not configured; nothing fetched")
            sink.push(f"Remote {remote_name} not found")
            return []
        return self.fetch(repo, [remote], credentials, sink, prune)

    def fetch_all(
        self,
        repo: Repo,
        credentials: Optional[CredentialResolver] = None,
        progress_sink: Optional[ProgressSink] = None,
        prune: bool = False,
    ) -> List[FetchOutcome]:
        """Fetch every configured remote."""
        sink = ensure_sink(progress_sink)
        try:
            remotes = self.configured_remotes(repo)
        except ConfigurationError as e:
            sink.push(str(e))
            raise
        return self.fetch(repo, remotes, credentials, sink, prune)

    def find_remote(self, repo: Repo, remote_name: str) -> Optional[Remote]:
        for remote in self.configured_remotes(repo):
            if remote.name == remote_name:
                return remote
        return None

    def _fetch_one(
        self,
        repo: Repo,
        remote: Remote,
        resolver: CredentialResolver,
        sink: ProgressSink,
        prune: bool,
    ) -> None:
        try:
            env = resolver.environment_for(remote)
            git_remote = repo.remote(remote.name)
            refspec: Optional[Union[str, Sequence[str]]] = list(remote.fetch_refspecs) or None
            with repo.git.custom_environment(**env):
                git_remote.fetch(refspec=refspec, progress=FetchProgress(sink), prune=prune)
            logger.info(f"Fetched updates from {remote.name} in {repo.working_dir}")
        except Exception as e:
            logger.error(f"Failed to fetch from {remote.name}: {e}")
            raise TransportFailure(remote.name, describe_git_error(e)) from e
