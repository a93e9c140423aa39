"""
UI-agnostic progress reporting interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .models import ProgressEvent


logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    """Write-only channel for human-readable status messages."""

    @abstractmethod
    def push(self, message: str, ratio: Optional[float] = None) -> None:
        """
        Publish a status message.

        Args:
            message: Human-readable status text
            ratio: Optional completion ratio in [0.0, 1.0]
        """
        pass

    def push_event(self, event: ProgressEvent) -> None:
        self.push(event.message, event.ratio)


class NullProgressSink(ProgressSink):
    """No-operation sink that discards every event."""

    def push(self, message: str, ratio: Optional[float] = None) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Sink that writes events to a logger."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.log = log or logger
        self.level = level

    def push(self, message: str, ratio: Optional[float] = None) -> None:
        if ratio is None:
            self.log.log(self.level, message)
        else:
            self.log.log(self.level, f"{message} ({ratio:.0%})")


class CollectingProgressSink(ProgressSink):
    """Sink that keeps every event in memory, in arrival order."""

    def __init__(self) -> None:
        self.events: List[ProgressEvent] = []

    def push(self, message: str, ratio: Optional[float] = None) -> None:
        self.events.append(ProgressEvent(message, ratio))

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.events]

    def clear(self) -> None:
        self.events.clear()


def ensure_sink(sink: Optional[ProgressSink]) -> ProgressSink:
    """Return the given sink, or a fresh no-op sink when none was supplied."""
    return sink if sink is not None else NullProgressSink()
