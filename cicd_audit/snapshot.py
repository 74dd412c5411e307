"""Repository snapshot model and its JSON codec.

A snapshot is the read-only bundle of facts the checks evaluate. Every fact
field is optional: ``None`` means the fact is unknown (not collected, or not
readable with the supplied credentials), while an empty tuple means the fact
was collected and nothing was found. Checks must keep the two apart.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

from cicd_audit.errors import MalformedInput

# Facts that can only be read with an authenticated credential.
CREDENTIAL_FIELDS = frozenset({"branch_protection"})

FACT_FIELDS = (
    "workflows",
    "runs",
    "branch_protection",
    "files",
    "changelog",
    "commit_messages",
    "releases",
)


class SnapshotError(ValueError):
    """Raised when a snapshot document cannot be read at all."""


class Presence(str, Enum):
    """Three-state fact presence."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    """A single step of a workflow job."""

    name: str = ""
    uses: str = ""
    run: str = ""
    with_args: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "with_args", MappingProxyType(dict(self.with_args)))

    def text(self) -> str:
        """Lowercased searchable text for keyword signals."""
        parts = [self.name, self.uses, self.run]
        parts.extend(f"{key}: {value}" for key, value in self.with_args.items())
        return "\n".join(part for part in parts if part).lower()


@dataclass(frozen=True, slots=True)
class WorkflowJob:
    """A workflow job with the attributes checks look at."""

    job_id: str
    name: str = ""
    runs_on: str = ""
    environment: str | None = None
    has_matrix: bool = False
    uses: str | None = None
    steps: tuple[WorkflowStep, ...] = ()


@dataclass(frozen=True, slots=True)
class WorkflowFile:
    """A workflow definition file and its parsed metadata."""

    path: str
    content: str = ""
    triggers: tuple[str, ...] = ()
    jobs: tuple[WorkflowJob, ...] = ()

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def is_yaml(self) -> bool:
        return self.name.lower().endswith((".yml", ".yaml"))


@dataclass(frozen=True, slots=True)
class WorkflowRun:
    """A workflow run on the default branch; ``conclusion`` is None while in progress."""

    name: str = ""
    conclusion: str | None = None
    duration_seconds: int | None = None


@dataclass(frozen=True, slots=True)
class BranchProtection:
    """Protection settings of the default branch."""

    enabled: bool
    requires_pull_request_reviews: bool = False
    required_approving_review_count: int = 0
    enforce_admins: bool = False
    requires_status_checks: bool = False


@dataclass(frozen=True, slots=True)
class RepositorySnapshot:
    """Normalized, read-only facts about one repository."""

    repository: str
    default_branch: str = "main"
    credential_supplied: bool = False
    workflows: tuple[WorkflowFile, ...] | None = None
    runs: tuple[WorkflowRun, ...] | None = None
    branch_protection: BranchProtection | None = None
    files: frozenset[str] | None = None
    changelog: str | None = None
    commit_messages: tuple[str, ...] | None = None
    releases: tuple[str, ...] | None = None
    malformed: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "malformed", MappingProxyType(dict(self.malformed)))

    def file_presence(self, *candidates: str) -> Presence:
        """Return whether any candidate path is in the file listing."""
        if self.files is None:
            return Presence.UNKNOWN
        for candidate in candidates:
            if candidate in self.files:
                return Presence.PRESENT
        return Presence.ABSENT

    def yaml_workflows(self) -> list[WorkflowFile]:
        return [workflow for workflow in self.workflows or () if workflow.is_yaml]

    def iter_jobs(self) -> Iterator[WorkflowJob]:
        for workflow in self.yaml_workflows():
            yield from workflow.jobs

    def iter_steps(self) -> Iterator[WorkflowStep]:
        for job in self.iter_jobs():
            yield from job.steps


def load_snapshot(path: Path) -> RepositorySnapshot:
    """Load a snapshot from a JSON document."""
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid JSON in {path}: {exc}") from exc
    return snapshot_from_mapping(loaded)


def snapshot_from_mapping(data: Any) -> RepositorySnapshot:
    """Build a snapshot from decoded JSON.

    Fields with an unexpected shape are dropped to ``None`` and recorded in
    ``malformed`` so the affected checks can report them instead of failing.
    """
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot document must be a JSON object")

    malformed: dict[str, str] = {}
    parsers = {
        "workflows": _parse_workflows,
        "runs": _parse_runs,
        "branch_protection": _parse_branch_protection,
        "files": _parse_files,
        "changelog": _parse_optional_str,
        "commit_messages": _parse_str_tuple,
        "releases": _parse_str_tuple,
    }
    facts: dict[str, Any] = {}
    for name, parser in parsers.items():
        raw = data.get(name)
        if raw is None:
            facts[name] = None
            continue
        try:
            facts[name] = parser(raw, name)
        except MalformedInput as exc:
            malformed[name] = str(exc)
            facts[name] = None

    repository = data.get("repository")
    if repository is None:
        repository = ""
    if not isinstance(repository, str):
        raise SnapshotError("repository must be a string")
    default_branch = data.get("default_branch", "main")
    if not isinstance(default_branch, str) or not default_branch:
        raise SnapshotError("default_branch must be a non-empty string")
    credential_supplied = data.get("credential_supplied", False)
    if not isinstance(credential_supplied, bool):
        raise SnapshotError("credential_supplied must be a boolean")

    return RepositorySnapshot(
        repository=repository,
        default_branch=default_branch,
        credential_supplied=credential_supplied,
        malformed=malformed,
        **facts,
    )


def snapshot_to_dict(snapshot: RepositorySnapshot) -> dict[str, Any]:
    """Dump a snapshot into the JSON document format read by ``snapshot_from_mapping``."""
    workflows = None
    if snapshot.workflows is not None:
        workflows = [_workflow_to_dict(item) for item in snapshot.workflows]
    runs = None
    if snapshot.runs is not None:
        runs = [
            {
                "name": run.name,
                "conclusion": run.conclusion,
                "duration_seconds": run.duration_seconds,
            }
            for run in snapshot.runs
        ]
    protection = None
    if snapshot.branch_protection is not None:
        bp = snapshot.branch_protection
        protection = {
            "enabled": bp.enabled,
            "requires_pull_request_reviews": bp.requires_pull_request_reviews,
            "required_approving_review_count": bp.required_approving_review_count,
            "enforce_admins": bp.enforce_admins,
            "requires_status_checks": bp.requires_status_checks,
        }
    return {
        "repository": snapshot.repository,
        "default_branch": snapshot.default_branch,
        "credential_supplied": snapshot.credential_supplied,
        "workflows": workflows,
        "runs": runs,
        "branch_protection": protection,
        "files": sorted(snapshot.files) if snapshot.files is not None else None,
        "changelog": snapshot.changelog,
        "commit_messages": _list_or_none(snapshot.commit_messages),
        "releases": _list_or_none(snapshot.releases),
    }


def _workflow_to_dict(workflow: WorkflowFile) -> dict[str, Any]:
    return {
        "path": workflow.path,
        "content": workflow.content,
        "triggers": list(workflow.triggers),
        "jobs": [
            {
                "id": job.job_id,
                "name": job.name,
                "runs_on": job.runs_on,
                "environment": job.environment,
                "has_matrix": job.has_matrix,
                "uses": job.uses,
                "steps": [
                    {
                        "name": step.name,
                        "uses": step.uses,
                        "run": step.run,
                        "with": dict(step.with_args),
                    }
                    for step in job.steps
                ],
            }
            for job in workflow.jobs
        ],
    }


def _list_or_none(value: tuple[str, ...] | None) -> list[str] | None:
    return list(value) if value is not None else None


def _parse_workflows(value: Any, field_name: str) -> tuple[WorkflowFile, ...]:
    items = _as_object_list(value, field_name)
    parsed: list[WorkflowFile] = []
    for index, item in enumerate(items):
        prefix = f"{field_name}[{index}]"
        jobs = _as_object_list(item.get("jobs", []), f"{prefix}.jobs")
        parsed.append(
            WorkflowFile(
                path=_as_str(item.get("path"), f"{prefix}.path"),
                content=_as_str(item.get("content", ""), f"{prefix}.content"),
                triggers=_parse_str_tuple(item.get("triggers", []), f"{prefix}.triggers"),
                jobs=tuple(
                    _parse_job(job, f"{prefix}.jobs[{job_index}]")
                    for job_index, job in enumerate(jobs)
                ),
            )
        )
    return tuple(parsed)


def _parse_job(item: dict[str, Any], prefix: str) -> WorkflowJob:
    steps = _as_object_list(item.get("steps", []), f"{prefix}.steps")
    environment = item.get("environment")
    uses = item.get("uses")
    return WorkflowJob(
        job_id=_as_str(item.get("id"), f"{prefix}.id"),
        name=_as_str(item.get("name", ""), f"{prefix}.name"),
        runs_on=_as_str(item.get("runs_on", ""), f"{prefix}.runs_on"),
        environment=None if environment is None else _as_str(environment, f"{prefix}.environment"),
        has_matrix=_as_bool(item.get("has_matrix", False), f"{prefix}.has_matrix"),
        uses=None if uses is None else _as_str(uses, f"{prefix}.uses"),
        steps=tuple(
            _parse_step(step, f"{prefix}.steps[{step_index}]")
            for step_index, step in enumerate(steps)
        ),
    )


def _parse_step(item: dict[str, Any], prefix: str) -> WorkflowStep:
    with_args = item.get("with", {})
    if not isinstance(with_args, dict):
        raise MalformedInput(f"{prefix}.with must be an object")
    return WorkflowStep(
        name=_as_str(item.get("name", ""), f"{prefix}.name"),
        uses=_as_str(item.get("uses", ""), f"{prefix}.uses"),
        run=_as_str(item.get("run", ""), f"{prefix}.run"),
        with_args={str(key): _with_value(raw) for key, raw in with_args.items()},
    )


def _with_value(raw: Any) -> str:
    # Same spelling as YAML-parsed inputs: null is empty, booleans are lowercase.
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def _parse_runs(value: Any, field_name: str) -> tuple[WorkflowRun, ...]:
    items = _as_object_list(value, field_name)
    parsed: list[WorkflowRun] = []
    for index, item in enumerate(items):
        prefix = f"{field_name}[{index}]"
        conclusion = item.get("conclusion")
        duration = item.get("duration_seconds")
        if duration is not None:
            duration = _as_int(duration, f"{prefix}.duration_seconds")
            if duration < 0:
                raise MalformedInput(f"{prefix}.duration_seconds must be >= 0")
        parsed.append(
            WorkflowRun(
                name=_as_str(item.get("name", ""), f"{prefix}.name"),
                conclusion=None if conclusion is None else _as_str(conclusion, f"{prefix}.conclusion"),
                duration_seconds=duration,
            )
        )
    return tuple(parsed)


def _parse_branch_protection(value: Any, field_name: str) -> BranchProtection:
    if not isinstance(value, dict):
        raise MalformedInput(f"{field_name} must be an object")
    return BranchProtection(
        enabled=_as_bool(value.get("enabled"), f"{field_name}.enabled"),
        requires_pull_request_reviews=_as_bool(
            value.get("requires_pull_request_reviews", False),
            f"{field_name}.requires_pull_request_reviews",
        ),
        required_approving_review_count=_as_int(
            value.get("required_approving_review_count", 0),
            f"{field_name}.required_approving_review_count",
        ),
        enforce_admins=_as_bool(value.get("enforce_admins", False), f"{field_name}.enforce_admins"),
        requires_status_checks=_as_bool(
            value.get("requires_status_checks", False),
            f"{field_name}.requires_status_checks",
        ),
    )


def _parse_files(value: Any, field_name: str) -> frozenset[str]:
    return frozenset(_parse_str_tuple(value, field_name))


def _parse_optional_str(value: Any, field_name: str) -> str:
    return _as_str(value, field_name)


def _parse_str_tuple(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise MalformedInput(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise MalformedInput(f"{field_name} must be a list of strings")
        items.append(item)
    return tuple(items)


def _as_object_list(value: Any, field_name: str) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        raise MalformedInput(f"{field_name} must be a list of objects")
    output: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            raise MalformedInput(f"{field_name} must be a list of objects")
        output.append(item)
    return output


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise MalformedInput(f"{field_name} must be a string")
    return value


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedInput(f"{field_name} must be an integer")
    return value


def _as_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise MalformedInput(f"{field_name} must be a boolean")
    return value
