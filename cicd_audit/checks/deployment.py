"""Deployment checks."""

from __future__ import annotations

import re

from cicd_audit.checks.base import find_signals, joined, keyword_signals, pipeline_text, require
from cicd_audit.models import Verdict
from cicd_audit.snapshot import RepositorySnapshot, WorkflowFile

_DEPLOY_SIGNALS = keyword_signals(
    "deploy",
    "deployment",
    "actions/deploy-pages",
    "peaceiris/actions-gh-pages",
    "gh-pages",
    "aws-actions/amazon-ecs-deploy-task-definition",
    "azure/webapps-deploy",
    "google-github-actions/deploy-cloudrun",
    "akhileshns/heroku-deploy",
    "amondnet/vercel-action",
    "nwtgck/actions-netlify",
    "superfly/flyctl-actions",
    "flyctl deploy",
    "vercel",
    "netlify",
    "heroku",
) + (
    ("kubectl apply", re.compile(r"\bkubectl\s+(apply|rollout|set\s+image)\b")),
    ("helm upgrade", re.compile(r"\bhelm\s+upgrade\b")),
    ("terraform apply", re.compile(r"\bterraform\s+apply\b")),
)

# Environment name families; several spellings count as one environment.
_ENVIRONMENT_FAMILIES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("production", re.compile(r"\b(production|prod)\b")),
    ("staging", re.compile(r"\b(staging|stage)\b")),
    ("development", re.compile(r"\b(development|dev)\b")),
    ("preview", re.compile(r"\b(preview|review)\b")),
    ("qa", re.compile(r"\b(qa|uat|acceptance)\b")),
)

_SMOKE_SIGNALS = keyword_signals(
    "smoke",
    "smoke-test",
    "smoke_test",
    "e2e",
    "end-to-end",
    "end_to_end",
    "integration-test",
    "post-deploy",
    "post_deploy",
    "health-check",
    "healthcheck",
    "healthz",
    "playwright",
    "cypress",
    "puppeteer",
    "selenium",
)

_ROLLBACK_RE = re.compile(r"\b(rollback|roll-back|roll_back|undo-deploy|undo_deploy)\b")
_REVERT_RE = re.compile(r"\brevert\b")

ROLLBACK_WORKFLOW_NAMES = frozenset({"rollback.yml", "rollback.yaml", "revert.yml", "revert.yaml"})


def auto_deploy(snapshot: RepositorySnapshot) -> Verdict:
    """Deployment step (leading) triggered on push (auxiliary)."""
    require(snapshot, "workflows")
    deploying = [workflow for workflow in snapshot.yaml_workflows() if _deploys(workflow)]
    if not deploying:
        return Verdict.failed("No deployment step detected")
    on_push = [workflow.name for workflow in deploying if "push" in workflow.triggers]
    if on_push:
        return Verdict.passed(f"Automatic deployment on push: {joined(on_push)}")
    names = [workflow.name for workflow in deploying]
    return Verdict.warning(
        f"Deployment found in {joined(names)} but not triggered on push",
        f"Trigger the deployment workflow with 'on: push' to {snapshot.default_branch}.",
    )


def multi_environment(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    environments: list[str] = []
    for job in snapshot.iter_jobs():
        if job.environment:
            _add(environments, _environment_family(job.environment.lower()))
    for workflow in snapshot.yaml_workflows():
        for match in re.finditer(r"^\s*environment:[ \t]*['\"]?([\w.-]+)", workflow.content, re.MULTILINE):
            _add(environments, _environment_family(match.group(1).lower()))
    if len(environments) < 2:
        text = _job_labels(snapshot)
        for family, pattern in _ENVIRONMENT_FAMILIES:
            if pattern.search(text):
                _add(environments, family)

    if len(environments) >= 2:
        return Verdict.passed(f"Environments detected: {joined(environments)}")
    if environments:
        return Verdict.failed(f"Only one environment detected: {environments[0]}")
    return Verdict.failed("No deployment environment detected")


def smoke_tests(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _SMOKE_SIGNALS)
    if found:
        return Verdict.passed(f"Smoke/e2e tests detected: {joined(found)}")
    return Verdict.failed("No smoke or end-to-end test detected in the pipeline")


def rollback_strategy(snapshot: RepositorySnapshot) -> Verdict:
    """Explicit rollback (leading) or manual redeploy through workflow_dispatch (auxiliary)."""
    require(snapshot, "workflows")
    workflows = snapshot.yaml_workflows()
    dedicated = [workflow.name for workflow in workflows if workflow.name.lower() in ROLLBACK_WORKFLOW_NAMES]
    if not dedicated and snapshot.files is not None:
        dedicated = sorted(
            path
            for path in snapshot.files
            if path.startswith(".github/workflows/") and path.rsplit("/", 1)[-1] in ROLLBACK_WORKFLOW_NAMES
        )
    if dedicated:
        return Verdict.passed(f"Dedicated rollback workflow: {joined(dedicated)}")

    text = pipeline_text(snapshot)
    if _ROLLBACK_RE.search(text):
        return Verdict.passed("Rollback mechanism found in the workflows")

    dispatchable = [workflow for workflow in workflows if "workflow_dispatch" in workflow.triggers]
    if any(_REVERT_RE.search(workflow.content.lower()) for workflow in dispatchable):
        return Verdict.passed("workflow_dispatch with a revert option detected")
    if dispatchable:
        return Verdict.warning(
            "workflow_dispatch allows a manual redeploy but no explicit rollback exists",
            "Add a dedicated rollback workflow or a 'rollback' input on workflow_dispatch.",
        )
    return Verdict.failed("No rollback strategy detected")


def _deploys(workflow: WorkflowFile) -> bool:
    if any(job.environment for job in workflow.jobs):
        return True
    chunks = [workflow.content.lower()]
    chunks.extend(step.text() for job in workflow.jobs for step in job.steps)
    chunks.extend(job.job_id.lower() for job in workflow.jobs)
    return bool(find_signals("\n".join(chunks), _DEPLOY_SIGNALS))


def _environment_family(name: str) -> str:
    for family, pattern in _ENVIRONMENT_FAMILIES:
        if pattern.search(name):
            return family
    return name


def _add(items: list[str], value: str) -> None:
    if value and value not in items:
        items.append(value)


def _job_labels(snapshot: RepositorySnapshot) -> str:
    labels: list[str] = []
    for job in snapshot.iter_jobs():
        labels.extend([job.job_id, job.name])
        labels.extend(step.name for step in job.steps)
    return "\n".join(label for label in labels if label).lower()
