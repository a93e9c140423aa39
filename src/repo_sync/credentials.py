"""
Credential resolution for remote transports.

Git transports obtain credentials from the process environment (askpass
helpers, ssh commands, prompt switches). A resolver is asked once per remote
for the environment the fetch of that remote should run with.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from .models import Remote


logger = logging.getLogger(__name__)


class CredentialResolver(ABC):
    """Abstract interface for supplying transport credentials per remote."""

    @abstractmethod
    def environment_for(self, remote: Remote) -> Dict[str, str]:
        """
        Return environment overrides for fetching ``remote``.

        Args:
            remote: The remote about to be fetched

        Returns:
            Mapping of environment variable names to values
        """
        pass


class NoCredentials(CredentialResolver):
    """Supplies no credentials and keeps git from prompting on the terminal."""

    def environment_for(self, remote: Remote) -> Dict[str, str]:
        return {"GIT_TERMINAL_PROMPT": "0"}


class AskPassCredentials(CredentialResolver):
    """Delegates credential lookup to an askpass helper program."""

    def __init__(self, program: str) -> None:
        self.program = program

    def environment_for(self, remote: Remote) -> Dict[str, str]:
        logger.debug(f"Using askpass helper {self.program} for remote {remote.name}")
        return {
            "GIT_ASKPASS": self.program,
            "SSH_ASKPASS": self.program,
            "GIT_TERMINAL_PROMPT": "0",
        }


class StaticCredentials(CredentialResolver):
    """Fixed environment, optionally overridden for individual remotes."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        per_remote: Optional[Mapping[str, Mapping[str, str]]] = None,
    ) -> None:
        self.env = dict(env or {})
        self.per_remote = {name: dict(values) for name, values in (per_remote or {}).items()}

    def environment_for(self, remote: Remote) -> Dict[str, str]:
        merged = dict(self.env)
        merged.update(self.per_remote.get(remote.name, {}))
        return merged
