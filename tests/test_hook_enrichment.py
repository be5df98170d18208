"""
Tests for time-boxed summary lookups.
"""

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

from agentlinks.hooks.enrichment import fetch_summary
from agentlinks.models.canonical import ConversationSummary

SRC_DIR = Path(__file__).resolve().parents[1] / "src"

SUMMARY = ConversationSummary(
    conversation_id="c1",
    agent="cursor",
    format="modern",
    message_count=2,
    title="Fix login",
    relevant_files=["/work/app/src/login.ts"],
)


class StubRegistry:
    """Registry stand-in whose summary lookup is scripted per test."""

    def __init__(self, lookup):
        self.lookup = lookup
        self.calls = []

    def get_conversation_summary(self, conversation_id, agent=None, include_files=True):
        self.calls.append((conversation_id, agent, include_files))
        return self.lookup(conversation_id)


class TestFetchSummary:
    """Tests for fetch_summary."""

    def test_returns_summary(self):
        registry = StubRegistry(lambda cid: SUMMARY)

        assert fetch_summary("c1", agent="cursor", registry=registry) is SUMMARY
        assert registry.calls == [("c1", "cursor", True)]

    def test_unknown_conversation(self):
        assert fetch_summary("c1", registry=StubRegistry(lambda cid: None)) is None

    def test_reader_failure_is_none(self):
        def explode(cid):
            raise RuntimeError("database is locked")

        assert fetch_summary("c1", registry=StubRegistry(explode)) is None

    def test_timeout_is_none(self):
        release = threading.Event()

        def slow(cid):
            release.wait(5)
            return SUMMARY

        try:
            assert fetch_summary("c1", registry=StubRegistry(slow), timeout_seconds=0.05) is None
        finally:
            release.set()

    def test_default_registry_without_sources(self):
        """No assistant storage exists in the test sandbox."""
        assert fetch_summary("claude-code:nothing", agent="claude-code") is None

    def test_timed_out_lookup_does_not_hold_process_open(self, tmp_path):
        """A hook process exits once the time box expires, not when the lookup ends."""
        script = textwrap.dedent(
            """
            import time

            from agentlinks.hooks.enrichment import fetch_summary


            class SlowRegistry:
                def get_conversation_summary(self, conversation_id, agent=None, include_files=True):
                    time.sleep(6)


            assert fetch_summary("c1", registry=SlowRegistry(), timeout_seconds=0.2) is None
            """
        )
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(
            p for p in (str(SRC_DIR), env.get("PYTHONPATH")) if p
        )
        env["AGENTLINKS_DB_PATH"] = str(tmp_path / "links.sqlite")

        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script],
            env=env,
            capture_output=True,
            text=True,
            timeout=30,
        )
        elapsed = time.monotonic() - started

        assert completed.returncode == 0, completed.stderr
        assert elapsed < 4
