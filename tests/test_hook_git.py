"""
Tests for commit metadata collection with a stubbed git executable.
"""

import subprocess
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from agentlinks.exceptions import CommitMetadataError, NotAGitRepositoryError
from agentlinks.hooks.git import read_commit_metadata, run_git

HASH = "0123456789abcdef0123456789abcdef01234567"


class FakeGit:
    """Answers git invocations from a table keyed by the argument tuple."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    def __call__(self, cmd, **kwargs):
        args = tuple(cmd[1:])
        self.calls.append((args, kwargs))
        stdout = self.answers.get(args)
        if stdout is None:
            return SimpleNamespace(returncode=128, stdout="", stderr="fatal: nope")
        return SimpleNamespace(returncode=0, stdout=stdout + "\n", stderr="")


def git_answers(toplevel, revision="HEAD", date="2025-03-14T14:00:00+02:00"):
    return {
        ("rev-parse", "--show-toplevel"): toplevel,
        ("rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"): HASH,
        ("rev-parse", "--abbrev-ref", "HEAD"): "feature/login",
        ("log", "-1", "--format=%an <%ae>", HASH): "Dev <dev@example.com>",
        ("log", "-1", "--format=%s", HASH): "Fix login",
        ("log", "-1", "--format=%aI", HASH): date,
        (
            "diff-tree",
            "--no-commit-id",
            "--name-only",
            "-r",
            "--root",
            HASH,
        ): "src/login.ts\nsrc/auth.ts\n",
    }


class TestRunGit:
    """Tests for run_git."""

    def test_stdout_is_stripped(self, tmp_path):
        fake = FakeGit({("status",): "clean"})
        with patch("agentlinks.hooks.git.subprocess.run", fake):
            assert run_git(str(tmp_path), "status", timeout=3) == "clean"

        _, kwargs = fake.calls[0]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["timeout"] == 3
        assert kwargs["check"] is False

    def test_nonzero_exit_is_none(self, tmp_path):
        with patch("agentlinks.hooks.git.subprocess.run", FakeGit({})):
            assert run_git(str(tmp_path), "status") is None

    def test_timeout_raises(self, tmp_path):
        def hang(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        with patch("agentlinks.hooks.git.subprocess.run", hang):
            with pytest.raises(CommitMetadataError, match="timed out"):
                run_git(str(tmp_path), "status", timeout=1)

    def test_missing_git_raises(self, tmp_path):
        def missing(cmd, **kwargs):
            raise FileNotFoundError("git")

        with patch("agentlinks.hooks.git.subprocess.run", missing):
            with pytest.raises(CommitMetadataError, match="Failed to run git"):
                run_git(str(tmp_path), "status")


class TestReadCommitMetadata:
    """Tests for read_commit_metadata."""

    def test_head_commit(self, tmp_path):
        toplevel = str(tmp_path)
        with patch("agentlinks.hooks.git.subprocess.run", FakeGit(git_answers(toplevel))):
            commit = read_commit_metadata(str(tmp_path))

        assert commit.commit_hash == HASH
        assert commit.repo_path == toplevel
        assert commit.branch == "feature/login"
        assert commit.author == "Dev <dev@example.com>"
        assert commit.message == "Fix login"
        assert commit.committed_at == datetime(2025, 3, 14, 12, 0, tzinfo=UTC)
        assert commit.changed_files == ["src/login.ts", "src/auth.ts"]

    def test_explicit_hash_and_branch(self, tmp_path):
        answers = git_answers(str(tmp_path), revision="abc1234")
        fake = FakeGit(answers)
        with patch("agentlinks.hooks.git.subprocess.run", fake):
            commit = read_commit_metadata(str(tmp_path), commit_hash="abc1234", branch="release")

        assert commit.commit_hash == HASH
        assert commit.branch == "release"
        assert ("rev-parse", "--abbrev-ref", "HEAD") not in [args for args, _ in fake.calls]

    def test_unparsable_date_falls_back_to_now(self, tmp_path):
        answers = git_answers(str(tmp_path), date="garbage")
        with patch("agentlinks.hooks.git.subprocess.run", FakeGit(answers)):
            commit = read_commit_metadata(str(tmp_path))

        assert commit.committed_at.tzinfo is not None
        assert commit.committed_at.year >= 2025

    def test_missing_directory(self, tmp_path):
        with pytest.raises(NotAGitRepositoryError):
            read_commit_metadata(str(tmp_path / "absent"))

    def test_not_a_repository(self, tmp_path):
        with patch("agentlinks.hooks.git.subprocess.run", FakeGit({})):
            with pytest.raises(NotAGitRepositoryError):
                read_commit_metadata(str(tmp_path))

    def test_unresolvable_commit(self, tmp_path):
        answers = {("rev-parse", "--show-toplevel"): str(tmp_path)}
        with patch("agentlinks.hooks.git.subprocess.run", FakeGit(answers)):
            with pytest.raises(CommitMetadataError, match="Could not resolve commit"):
                read_commit_metadata(str(tmp_path), commit_hash="deadbeef")
