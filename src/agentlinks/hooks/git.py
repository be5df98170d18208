"""
Commit metadata from the local ``git`` executable.

Every command runs with a time box (``settings.git_timeout_seconds``) and is
never retried.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from agentlinks.config import settings
from agentlinks.exceptions import CommitMetadataError, NotAGitRepositoryError
from agentlinks.models.records import CommitInput
from agentlinks.utils.timeutils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def run_git(repo_path: str, *args: str, timeout: Optional[float] = None) -> Optional[str]:
    """
    Run a git command in ``repo_path``.

    Returns:
        Stripped stdout, or None when git exits non-zero

    Raises:
        CommitMetadataError: If git cannot be started or times out
    """
    timeout = timeout if timeout is not None else settings.git_timeout_seconds
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommitMetadataError(
            f"git {' '.join(args)} timed out after {timeout}s", repo_path=repo_path
        ) from e
    except OSError as e:
        raise CommitMetadataError(f"Failed to run git: {e}", repo_path=repo_path) from e

    if result.returncode != 0:
        logger.debug("git %s failed: %s", " ".join(args), result.stderr.strip())
        return None
    return result.stdout.strip()


def read_commit_metadata(
    repo_path: str,
    commit_hash: Optional[str] = None,
    branch: Optional[str] = None,
) -> CommitInput:
    """
    Read hash, branch, author, subject, date and changed files of a commit.

    Args:
        repo_path: Directory inside the repository
        commit_hash: Commit to read (defaults to HEAD)
        branch: Branch name to record (defaults to the current branch)

    Returns:
        CommitInput ready for the link store

    Raises:
        NotAGitRepositoryError: If ``repo_path`` is not inside a work tree
        CommitMetadataError: If the commit cannot be resolved
    """
    if not Path(repo_path).is_dir():
        raise NotAGitRepositoryError(repo_path)

    toplevel = run_git(repo_path, "rev-parse", "--show-toplevel")
    if not toplevel:
        raise NotAGitRepositoryError(repo_path)

    revision = commit_hash or "HEAD"
    resolved = run_git(toplevel, "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}")
    if not resolved:
        raise CommitMetadataError(f"Could not resolve commit {revision}", repo_path=toplevel)

    if branch is None:
        branch = run_git(toplevel, "rev-parse", "--abbrev-ref", "HEAD") or ""

    author = run_git(toplevel, "log", "-1", "--format=%an <%ae>", resolved) or ""
    message = run_git(toplevel, "log", "-1", "--format=%s", resolved) or ""
    date_text = run_git(toplevel, "log", "-1", "--format=%aI", resolved)

    committed_at = parse_timestamp(date_text)
    if committed_at is None:
        logger.warning("Unparsable commit date %r for %s", date_text, resolved)
        committed_at = utc_now()

    changed = run_git(
        toplevel, "diff-tree", "--no-commit-id", "--name-only", "-r", "--root", resolved
    )
    changed_files = [line for line in (changed or "").splitlines() if line.strip()]

    return CommitInput(
        commit_hash=resolved,
        repo_path=toplevel,
        committed_at=committed_at,
        branch=branch,
        author=author,
        message=message,
        changed_files=changed_files,
    )
