"""
Tests for progress sinks and credential resolvers.
"""

import logging

import pytest

from repo_sync.credentials import AskPassCredentials, CredentialResolver, NoCredentials, StaticCredentials
from repo_sync.models import ProgressEvent, Remote
from repo_sync.progress import (
    CollectingProgressSink, LoggingProgressSink, NullProgressSink, ProgressSink, ensure_sink,
)


class TestProgressSinks:
    """Test the progress sink implementations."""

    def test_sink_is_abstract(self):
        with pytest.raises(TypeError):
            ProgressSink()

    def test_null_sink_discards(self):
        sink = NullProgressSink()
        sink.push("anything", 0.5)
        sink.push_event(ProgressEvent("more"))

    def test_collecting_sink_keeps_order(self):
        sink = CollectingProgressSink()
        sink.push("first")
        sink.push_event(ProgressEvent("second", 0.5))

        assert sink.messages == ["first", "second"]
        assert sink.events[1] == ProgressEvent("second", 0.5)

        sink.clear()
        assert sink.events == []

    def test_collecting_sink_rejects_bad_ratio(self):
        with pytest.raises(ValueError):
            CollectingProgressSink().push("bad", 2.0)

    def test_logging_sink(self, caplog):
        log = logging.getLogger("repo_sync.tests.progress")
        sink = LoggingProgressSink(log)

        with caplog.at_level(logging.INFO, logger="repo_sync.tests.progress"):
            sink.push("Submodule update libA")
            sink.push("Received 1 of 4 objects", 0.25)

        assert [r.getMessage() for r in caplog.records] == [
            "Submodule update libA",
            "Received 1 of 4 objects (25%)",
        ]

    def test_ensure_sink(self):
        sink = CollectingProgressSink()
        assert ensure_sink(sink) is sink
        assert isinstance(ensure_sink(None), NullProgressSink)


class TestCredentialResolvers:
    """Test credential resolvers."""

    def test_resolver_is_abstract(self):
        with pytest.raises(TypeError):
            CredentialResolver()

    def test_no_credentials_disables_prompt(self):
        assert NoCredentials().environment_for(Remote("origin")) == {"GIT_TERMINAL_PROMPT": "0"}

    def test_askpass_helper(self):
        env = AskPassCredentials("/usr/local/bin/token-helper").environment_for(Remote("origin"))

        assert env["GIT_ASKPASS"] == "/usr/local/bin/token-helper"
        assert env["SSH_ASKPASS"] == "/usr/local/bin/token-helper"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_static_per_remote_override(self):
        resolver = StaticCredentials(
            {"GIT_SSH_COMMAND": "ssh -i default"},
            per_remote={"backup": {"GIT_SSH_COMMAND": "ssh -i backup"}},
        )

        assert resolver.environment_for(Remote("origin")) == {"GIT_SSH_COMMAND": "ssh -i default"}
        assert resolver.environment_for(Remote("backup")) == {"GIT_SSH_COMMAND": "ssh -i backup"}

    def test_static_returns_copies(self):
        resolver = StaticCredentials({"A": "1"})
        resolver.environment_for(Remote("origin"))["A"] = "changed"
        assert resolver.environment_for(Remote("origin")) == {"A": "1"}
