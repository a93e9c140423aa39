"""
Data models for the repository synchronization engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    # For type checkers only; keeps the data models free of GitPython imports
    from git import Commit, Remote as GitRemote


@dataclass
class CommitInfo:
    """Information about a Git commit."""

    hash: str
    message: str
    author: str
    author_email: str
    date: str
    parents: List[str] = field(default_factory=list)

    @classmethod
    def from_git(cls, commit: "Commit") -> CommitInfo:
        """Build from a GitPython commit object."""
        return cls(
            hash=commit.hexsha,
            message=commit.message.strip(),
            author=commit.author.name,
            author_email=commit.author.email,
            date=commit.committed_datetime.isoformat(),
            parents=[parent.hexsha for parent in commit.parents],
        )

    @property
    def short_hash(self) -> str:
        return self.hash[:8]

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.splitlines()[0] if self.message else ""


@dataclass(frozen=True)
class Remote:
    """Snapshot of a configured remote taken at operation start."""

    name: str
    fetch_refspecs: Tuple[str, ...] = ()
    url: Optional[str] = None

    @classmethod
    def from_git(cls, remote: "GitRemote") -> Remote:
        """Snapshot a GitPython remote from the repository configuration."""
        config = remote.repo.config_reader()
        # has_section/has_option do not trigger GitPython's lazy read
        config.read()
        section = f'remote "{remote.name}"'
        refspecs: Tuple[str, ...] = ()
        url = None
        if config.has_section(section):
            if config.has_option(section, "fetch"):
                refspecs = tuple(str(v) for v in config.get_values(section, "fetch"))
            if config.has_option(section, "url"):
                url = str(config.get_value(section, "url"))
        return cls(name=remote.name, fetch_refspecs=refspecs, url=url)


@dataclass(frozen=True)
class ProgressEvent:
    """A human-readable status message with an optional completion ratio."""

    message: str
    ratio: Optional[float] = None

    def __post_init__(self) -> None:
        if self.ratio is not None and not 0.0 <= self.ratio <= 1.0:
            raise ValueError(f"Progress ratio must be within [0.0, 1.0], got {self.ratio}")


@dataclass(frozen=True)
class TransferProgress:
    """Object counters reported by the transport while receiving a pack."""

    received_objects: int
    total_objects: int

    @property
    def ratio(self) -> Optional[float]:
        """Completion ratio, or None when the total is not known yet."""
        if not self.total_objects:
            return None
        return min(self.received_objects / self.total_objects, 1.0)

    def describe(self) -> str:
        return f"Received {self.received_objects} of {self.total_objects} objects"


@dataclass
class FetchOutcome:
    """Result of fetching a single remote."""

    remote_name: str
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, remote_name: str) -> FetchOutcome:
        return cls(remote_name=remote_name, success=True)

    @classmethod
    def failed(cls, remote_name: str, error: str) -> FetchOutcome:
        return cls(remote_name=remote_name, success=False, error=error)


@dataclass
class SubmoduleOutcome:
    """Result of updating a single submodule.

    Outcomes of nested submodules are kept in ``children`` so the result of a
    recursive update is a tree rooted at the top-level submodules.
    """

    name: str
    path: Path
    success: bool
    error: Optional[str] = None
    recursed: bool = False
    children: List[SubmoduleOutcome] = field(default_factory=list)

    def walk(self) -> List[SubmoduleOutcome]:
        """Return this outcome followed by all nested outcomes, depth-first."""
        outcomes = [self]
        for child in self.children:
            outcomes.extend(child.walk())
        return outcomes

    @property
    def all_succeeded(self) -> bool:
        return all(o.success for o in self.walk())


class SyncError(Exception):
    """Base exception for synchronization operations."""

    pass


class RepositoryError(SyncError):
    """Exception raised for Git repository related errors."""

    pass


class ConfigurationError(SyncError):
    """Exception raised when repository configuration cannot be read."""

    pass


class TransportFailure(SyncError):
    """Exception raised for network or authentication errors during fetch."""

    def __init__(self, remote_name: str, message: str) -> None:
        super().__init__(f"Failed to fetch from {remote_name}: {message}")
        self.remote_name = remote_name
        self.description = message


class SubmoduleFailure(SyncError):
    """Exception raised when a submodule cannot be initialized or updated."""

    def __init__(self, submodule_name: str, message: str) -> None:
        super().__init__(f"Failed to update submodule {submodule_name}: {message}")
        self.submodule_name = submodule_name
        self.description = message


class PathResolutionFailure(SyncError):
    """Exception raised for an invalid path argument."""

    pass
