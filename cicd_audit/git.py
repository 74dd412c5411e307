"""Git subprocess helpers."""

from __future__ import annotations

import re
from pathlib import Path
from subprocess import CalledProcessError, run


class GitError(RuntimeError):
    """Raised when git command execution fails."""


_REMOTE_RE = re.compile(r"[:/]([\w.-]+)/([\w.-]+?)(?:\.git)?/?$")


def list_files(repo: Path) -> list[str]:
    """Return tracked and untracked-but-not-ignored files, repo-relative."""
    output = _run_git(repo, ["ls-files", "--cached", "--others", "--exclude-standard", "-z"])
    return sorted({item for item in output.split("\0") if item})


def get_commit_messages(repo: Path, limit: int = 50) -> list[str]:
    """Return up to ``limit`` commit messages from HEAD, newest first."""
    try:
        output = _run_git(repo, ["log", f"-n{limit}", "--format=%B%x00"])
    except GitError:
        if is_repository(repo) and get_head_revision(repo) is None:
            return []
        raise
    return [item.strip() for item in output.split("\0") if item.strip()]


def get_tags(repo: Path) -> list[str]:
    """Return tag names, newest first."""
    output = _run_git(repo, ["tag", "--list", "--sort=-creatordate"])
    return [line.strip() for line in output.splitlines() if line.strip()]


def get_current_branch(repo: Path) -> str | None:
    """Return the checked-out branch name, or None on a detached HEAD."""
    try:
        branch = _run_git(repo, ["symbolic-ref", "--short", "-q", "HEAD"]).strip()
    except GitError:
        return None
    return branch or None


def is_repository(repo: Path) -> bool:
    try:
        return _run_git(repo, ["rev-parse", "--is-inside-work-tree"]).strip() == "true"
    except GitError:
        return False


def get_head_revision(repo: Path) -> str | None:
    """Return HEAD revision if present."""
    try:
        return _run_git(repo, ["rev-parse", "--verify", "HEAD"]).strip()
    except GitError:
        return None


def get_remote_slug(repo: Path, remote: str = "origin") -> str | None:
    """Return ``owner/name`` parsed from a remote URL (best effort)."""
    try:
        url = _run_git(repo, ["config", "--get", f"remote.{remote}.url"]).strip()
    except GitError:
        return None
    match = _REMOTE_RE.search(url)
    if match is None:
        return None
    return f"{match.group(1)}/{match.group(2)}"


def _run_git(repo: Path, args: list[str]) -> str:
    try:
        completed = run(
            ["git", *args],
            cwd=repo,
            check=True,
            capture_output=True,
            text=True,
        )
    except CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitError(stderr or f"git {' '.join(args)} failed") from exc
    except FileNotFoundError as exc:
        raise GitError("git executable not found") from exc

    return completed.stdout
