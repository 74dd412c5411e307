"""Shared evaluator signature and snapshot helpers."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from cicd_audit.errors import MissingData
from cicd_audit.models import SkipReason, Verdict
from cicd_audit.snapshot import CREDENTIAL_FIELDS, Presence, RepositorySnapshot

Evaluator = Callable[[RepositorySnapshot], Verdict]

Signal = tuple[str, re.Pattern[str]]

_FIELD_LABELS = {
    "workflows": "workflow files",
    "runs": "workflow runs",
    "branch_protection": "branch protection settings",
    "files": "repository file listing",
    "changelog": "changelog",
    "commit_messages": "commit history",
    "releases": "releases and tags",
}


def require(snapshot: RepositorySnapshot, field_name: str) -> Any:
    """Return a snapshot fact or raise ``MissingData`` when it is unknown."""
    value = getattr(snapshot, field_name)
    if value is None:
        raise MissingData(f"{describe_field(field_name)} not available", field_name=field_name)
    return value


def require_presence(snapshot: RepositorySnapshot, *candidates: str) -> bool:
    presence = snapshot.file_presence(*candidates)
    if presence is Presence.UNKNOWN:
        raise MissingData(f"{describe_field('files')} not available", field_name="files")
    return presence is Presence.PRESENT


def missing_fact_verdict(snapshot: RepositorySnapshot, field_name: str) -> Verdict:
    """Skipped verdict explaining why ``field_name`` cannot be used."""
    label = describe_field(field_name)
    diagnostic = snapshot.malformed.get(field_name)
    if diagnostic is not None:
        return Verdict.skipped(f"malformed input: {diagnostic}", SkipReason.MALFORMED_INPUT)
    if field_name in CREDENTIAL_FIELDS and not snapshot.credential_supplied:
        return Verdict.skipped(
            f"insufficient permissions: no credential supplied to read {label}",
            SkipReason.INSUFFICIENT_PERMISSIONS,
            remediation="Provide a token with repository administration read access.",
        )
    return Verdict.skipped(f"insufficient data: {label} not available")


def describe_field(field_name: str) -> str:
    return _FIELD_LABELS.get(field_name, field_name)


def pipeline_text(snapshot: RepositorySnapshot) -> str:
    """Lowercased concatenation of workflow sources and parsed step text."""
    chunks: list[str] = []
    for workflow in snapshot.yaml_workflows():
        if workflow.content:
            chunks.append(workflow.content.lower())
        for job in workflow.jobs:
            if job.uses:
                chunks.append(job.uses.lower())
            for step in job.steps:
                chunks.append(step.text())
    return "\n".join(chunks)


def keyword_signals(*keywords: str) -> tuple[Signal, ...]:
    """Build word-bounded, case-insensitive signals from literal keywords."""
    return tuple(
        (keyword, re.compile(r"(?<!\w)" + re.escape(keyword) + r"(?!\w)", re.IGNORECASE))
        for keyword in keywords
    )


def find_signals(text: str, signals: tuple[Signal, ...]) -> list[str]:
    """Return labels of matching signals, in declaration order and deduplicated."""
    found: list[str] = []
    for label, pattern in signals:
        if label not in found and pattern.search(text):
            found.append(label)
    return found


def joined(items: list[str], limit: int = 5) -> str:
    shown = ", ".join(items[:limit])
    if len(items) > limit:
        shown += f" (+{len(items) - limit} more)"
    return shown
