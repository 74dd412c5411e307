"""Build a repository snapshot from a local checkout."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from cicd_audit.git import (
    GitError,
    get_commit_messages,
    get_current_branch,
    get_remote_slug,
    get_tags,
    list_files,
)
from cicd_audit.logger import get_logger
from cicd_audit.snapshot import RepositorySnapshot, WorkflowFile, WorkflowJob, WorkflowStep

log = get_logger(__name__)

WORKFLOWS_DIR = ".github/workflows/"
CHANGELOG_FILES = ("CHANGELOG.md", "CHANGELOG", "changelog.md")
COMMIT_SAMPLE_LIMIT = 50
_SKIP_DIRS = {".git", "node_modules", ".venv", "venv", "__pycache__", "target", "dist", "build"}


def collect_local_snapshot(repo: Path) -> RepositorySnapshot:
    """Collect the facts readable from a working copy.

    Workflow runs and branch protection live on the hosting service, so they
    stay unknown here and the checks needing them are skipped.
    """
    repo = repo.resolve()
    files = _collect_files(repo)

    workflows = tuple(
        parse_workflow(path, _read_text(repo / path))
        for path in sorted(files)
        if path.startswith(WORKFLOWS_DIR) and "/" not in path[len(WORKFLOWS_DIR) :]
    )

    changelog = None
    for name in CHANGELOG_FILES:
        if name in files:
            changelog = _read_text(repo / name)
            break

    try:
        commit_messages: tuple[str, ...] | None = tuple(
            get_commit_messages(repo, limit=COMMIT_SAMPLE_LIMIT)
        )
    except GitError as exc:
        log.info("Commit history unavailable for %s: %s", repo, exc)
        commit_messages = None

    try:
        releases: tuple[str, ...] | None = tuple(get_tags(repo))
    except GitError as exc:
        log.info("Tags unavailable for %s: %s", repo, exc)
        releases = None

    return RepositorySnapshot(
        repository=get_remote_slug(repo) or repo.name,
        default_branch=get_current_branch(repo) or "main",
        credential_supplied=False,
        workflows=workflows,
        runs=None,
        branch_protection=None,
        files=frozenset(files),
        changelog=changelog,
        commit_messages=commit_messages,
        releases=releases,
    )


def parse_workflow(path: str, content: str) -> WorkflowFile:
    """Parse a GitHub Actions workflow; unparsable YAML keeps only the raw content."""
    if not path.lower().endswith((".yml", ".yaml")):
        return WorkflowFile(path=path, content=content)
    try:
        loaded = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        log.warning("Could not parse workflow %s: %s", path, exc)
        return WorkflowFile(path=path, content=content)
    if not isinstance(loaded, dict):
        log.warning("Workflow %s is not a mapping", path)
        return WorkflowFile(path=path, content=content)

    # YAML 1.1 reads a bare `on` key as the boolean True.
    raw_triggers = loaded.get("on", loaded.get(True))
    jobs = loaded.get("jobs")
    return WorkflowFile(
        path=path,
        content=content,
        triggers=_parse_triggers(raw_triggers),
        jobs=tuple(
            _parse_job(str(job_id), job)
            for job_id, job in (jobs.items() if isinstance(jobs, dict) else ())
            if isinstance(job, dict)
        ),
    )


def _parse_triggers(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    if isinstance(value, dict):
        return tuple(str(key) for key in value)
    return ()


def _parse_job(job_id: str, job: dict[str, Any]) -> WorkflowJob:
    environment = job.get("environment")
    if isinstance(environment, dict):
        environment = environment.get("name")
    strategy = job.get("strategy")
    steps = job.get("steps")
    uses = job.get("uses")
    return WorkflowJob(
        job_id=job_id,
        name=_scalar(job.get("name")),
        runs_on=_scalar(job.get("runs-on")),
        environment=_scalar(environment) or None,
        has_matrix=isinstance(strategy, dict) and strategy.get("matrix") is not None,
        uses=uses if isinstance(uses, str) else None,
        steps=tuple(
            _parse_step(step) for step in (steps if isinstance(steps, list) else ()) if isinstance(step, dict)
        ),
    )


def _parse_step(step: dict[str, Any]) -> WorkflowStep:
    with_args = step.get("with")
    return WorkflowStep(
        name=_scalar(step.get("name")),
        uses=_scalar(step.get("uses")),
        run=_scalar(step.get("run")),
        with_args={
            str(key): _scalar(value)
            for key, value in (with_args.items() if isinstance(with_args, dict) else ())
        },
    )


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(_scalar(item) for item in value)
    return str(value)


def _collect_files(repo: Path) -> set[str]:
    try:
        return set(list_files(repo))
    except GitError as exc:
        log.info("git ls-files failed for %s (%s); walking the directory", repo, exc)
    found: set[str] = set()
    for root, dirs, names in os.walk(repo):
        dirs[:] = sorted(item for item in dirs if item not in _SKIP_DIRS)
        base = Path(root).relative_to(repo)
        for name in names:
            found.add((base / name).as_posix())
    return found


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        log.warning("Could not read %s: %s", path, exc)
        return ""
