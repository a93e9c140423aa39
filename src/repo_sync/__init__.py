"""
Repository Sync - fetch, submodule update and divergence analysis for git working copies.

This package drives remote fetches and recursive submodule updates for a local
repository while streaming progress to an observer, and computes the commits a
branch would replay when rebased onto a reference branch.
"""

__version__ = "0.1.0"

from .sync_orchestrator import SyncOrchestrator
from .models import (
    CommitInfo,
    FetchOutcome,
    ProgressEvent,
    Remote,
    SubmoduleOutcome,
    TransferProgress,
)
from .progress import ProgressSink, NullProgressSink, LoggingProgressSink, CollectingProgressSink
from .credentials import CredentialResolver, NoCredentials, AskPassCredentials, StaticCredentials
from .git_manager import GitManager
from .fetch_coordinator import FetchCoordinator
from .submodule_sync import SubmoduleSynchronizer
from .divergence import DivergenceAnalyzer

__all__ = [
    "SyncOrchestrator",
    "CommitInfo",
    "FetchOutcome",
    "ProgressEvent",
    "Remote",
    "SubmoduleOutcome",
    "TransferProgress",
    "ProgressSink",
    "NullProgressSink",
    "LoggingProgressSink",
    "CollectingProgressSink",
    "CredentialResolver",
    "NoCredentials",
    "AskPassCredentials",
    "StaticCredentials",
    "GitManager",
    "FetchCoordinator",
    "SubmoduleSynchronizer",
    "DivergenceAnalyzer",
]
