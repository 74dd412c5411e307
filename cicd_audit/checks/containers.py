"""Containerization checks."""

from __future__ import annotations

import re

from cicd_audit.checks.base import find_signals, joined, keyword_signals, pipeline_text, require, require_presence
from cicd_audit.models import Verdict
from cicd_audit.snapshot import RepositorySnapshot

_DOCKER_BUILD_SIGNALS = keyword_signals(
    "docker/build-push-action",
    "docker/setup-buildx-action",
    "docker/bake-action",
    "buildah",
    "kaniko",
) + (
    ("docker build", re.compile(r"\bdocker\s+(buildx\s+)?(build|bake)\b")),
    ("docker compose build", re.compile(r"\bdocker[ -]compose\s+([\w.-]+\s+)*build\b")),
)

_GHCR_RE = re.compile(r"\bghcr\.io\b")
_DOCKER_PUSH_RE = re.compile(r"\bdocker\s+(image\s+)?push\b")


def dockerfile_exists(snapshot: RepositorySnapshot) -> Verdict:
    if require_presence(snapshot, "Dockerfile"):
        return Verdict.passed("Dockerfile found at the repository root")
    return Verdict.failed("No Dockerfile at the repository root")


def docker_build_ci(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _DOCKER_BUILD_SIGNALS)
    if found:
        return Verdict.passed(f"Docker build detected in CI: {joined(found)}")
    return Verdict.failed("No Docker build step in the workflows")


def ghcr_published(snapshot: RepositorySnapshot) -> Verdict:
    """Registry reference (leading) and an explicit push (auxiliary)."""
    require(snapshot, "workflows")
    text = pipeline_text(snapshot)
    if not _GHCR_RE.search(text):
        return Verdict.failed("No publication to ghcr.io detected")

    pushes = [
        step
        for step in snapshot.iter_steps()
        if (
            step.uses.lower().startswith("docker/build-push-action")
            and step.with_args.get("push", "").lower() == "true"
        )
        or _DOCKER_PUSH_RE.search(step.run.lower())
    ]
    if pushes or _DOCKER_PUSH_RE.search(text) or re.search(r"\bpush:\s*true\b", text):
        return Verdict.passed("Image push to ghcr.io detected in the pipeline")
    return Verdict.warning(
        "ghcr.io is referenced but no explicit push step was found",
        "Set 'push: true' on docker/build-push-action with a ghcr.io tag.",
    )
