"""Pipeline CI checks."""

from __future__ import annotations

import re

from cicd_audit.checks.base import find_signals, joined, keyword_signals, pipeline_text, require
from cicd_audit.errors import Inconclusive, MissingData
from cicd_audit.models import Verdict
from cicd_audit.snapshot import RepositorySnapshot, WorkflowRun

MAX_AVERAGE_DURATION_SECONDS = 300

SUCCESS_CONCLUSIONS = frozenset({"success"})
FAILURE_CONCLUSIONS = frozenset(
    {"failure", "timed_out", "cancelled", "action_required", "startup_failure"}
)

_SETUP_CACHE_RE = re.compile(
    r"cache:\s*['\"]?(npm|yarn|pnpm|pip|pipenv|poetry|gradle|maven|sbt|go)\b"
)
_CACHE_OFF_VALUES = {"", "false", "none", "null", "off"}
_DOCKER_CACHE_RE = re.compile(r"(--)?cache-(from|to)\b")
_STRATEGY_RE = re.compile(r"^\s*strategy:", re.MULTILINE)
_MATRIX_RE = re.compile(r"^\s+matrix:", re.MULTILINE)
_REUSABLE_CALL_RE = re.compile(r"uses:\s*['\"]?[\w./-]*\.github/workflows/[\w.-]+\.ya?ml")

_NOTIFICATION_SIGNALS = keyword_signals(
    "slackapi/slack-github-action",
    "8398a7/action-slack",
    "rtcamp/action-slack-notify",
    "act10ns/slack",
    "slack_webhook",
    "slack-webhook",
    "discord_webhook",
    "discord-webhook",
    "rjstone/discord-webhook-notify",
    "sarisia/actions-status-discord",
    "appleboy/telegram-action",
    "teams_webhook",
    "microsoft-teams",
    "notify",
)


def latest_run(snapshot: RepositorySnapshot) -> WorkflowRun | None:
    """Newest recorded run on the default branch, or None when none exist."""
    runs: tuple[WorkflowRun, ...] = require(snapshot, "runs")
    return runs[0] if runs else None


def run_outcome(run: WorkflowRun) -> bool | None:
    """True for success, False for failure, None when the conclusion is not decisive."""
    if run.conclusion is None:
        return None
    conclusion = run.conclusion.lower()
    if conclusion in SUCCESS_CONCLUSIONS:
        return True
    if conclusion in FAILURE_CONCLUSIONS:
        return False
    return None


def pipeline_exists(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    names = [workflow.name for workflow in snapshot.yaml_workflows()]
    if not names:
        return Verdict.failed("No YAML workflow found under .github/workflows/")
    return Verdict.passed(f"{len(names)} workflow(s) found: {joined(names)}")


def pipeline_green(snapshot: RepositorySnapshot) -> Verdict:
    run = latest_run(snapshot)
    if run is None:
        return Verdict.failed(
            f"No workflow run recorded on {snapshot.default_branch}",
            f"Run your pipeline at least once on {snapshot.default_branch}.",
        )
    outcome = run_outcome(run)
    label = run.name or "unknown"
    if outcome is None:
        state = run.conclusion or "in progress"
        raise Inconclusive(f"Latest run '{label}' has no decisive conclusion ({state})")
    if outcome:
        return Verdict.passed(f"Latest run '{label}' succeeded")
    return Verdict.failed(f"Latest run '{label}' concluded with status: {run.conclusion}")


def pipeline_fast(snapshot: RepositorySnapshot) -> Verdict:
    runs: tuple[WorkflowRun, ...] = require(snapshot, "runs")
    durations = [
        run.duration_seconds
        for run in runs
        if run.conclusion is not None and run.duration_seconds is not None
    ]
    if not durations:
        raise MissingData("No completed run with a recorded duration", field_name="runs")

    total = sum(durations)
    count = len(durations)
    average = (2 * total + count) // (2 * count)
    evidence = f"Average duration {_format_duration(average)} over {count} completed run(s)"
    if total <= MAX_AVERAGE_DURATION_SECONDS * count:
        return Verdict.passed(evidence)
    return Verdict.failed(f"{evidence}, above the 5 min threshold")


def ci_cache(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    kinds: list[str] = []
    for step in snapshot.iter_steps():
        uses = step.uses.lower()
        if uses.startswith("actions/cache"):
            _add(kinds, "actions/cache")
        elif uses.startswith("actions/setup-") and _cache_enabled(step.with_args.get("cache", "")):
            _add(kinds, "setup-* built-in cache")
        if "cache-from" in step.with_args or "cache-to" in step.with_args:
            _add(kinds, "Docker layer cache")

    text = pipeline_text(snapshot)
    if not kinds:
        if "actions/cache" in text:
            _add(kinds, "actions/cache")
        if _SETUP_CACHE_RE.search(text):
            _add(kinds, "setup-* built-in cache")
        if _DOCKER_CACHE_RE.search(text):
            _add(kinds, "Docker layer cache")

    if kinds:
        return Verdict.passed(f"CI cache detected: {joined(kinds)}")
    return Verdict.failed("No caching mechanism found in the pipeline")


def matrix_testing(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    jobs = [
        f"{workflow.name}:{job.job_id}"
        for workflow in snapshot.yaml_workflows()
        for job in workflow.jobs
        if job.has_matrix
    ]
    if jobs:
        return Verdict.passed(f"Matrix strategy used by {joined(jobs)}")
    matrix_files = [
        workflow.name
        for workflow in snapshot.yaml_workflows()
        if _STRATEGY_RE.search(workflow.content) and _MATRIX_RE.search(workflow.content)
    ]
    if matrix_files:
        return Verdict.passed(f"Matrix strategy declared in {joined(matrix_files)}")
    return Verdict.failed("No strategy matrix found in any job")


def reusable_workflows(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    workflows = snapshot.yaml_workflows()
    defining = [workflow.name for workflow in workflows if "workflow_call" in workflow.triggers]
    if not defining:
        defining = [
            workflow.name for workflow in workflows if "workflow_call:" in workflow.content
        ]
    if defining:
        return Verdict.passed(f"Reusable workflow defined (workflow_call): {joined(defining)}")

    calls = [
        job.uses
        for workflow in workflows
        for job in workflow.jobs
        if job.uses and ".github/workflows/" in job.uses
    ]
    if not calls:
        calls = [
            match.group(0).split("uses:", 1)[1].strip(" '\"")
            for workflow in workflows
            for match in _REUSABLE_CALL_RE.finditer(workflow.content)
        ]
    if calls:
        return Verdict.passed(f"Reusable workflow called: {joined(sorted(set(calls)))}")
    return Verdict.failed("No reusable workflow defined or called")


def ci_notifications(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _NOTIFICATION_SIGNALS)
    if found:
        return Verdict.passed(f"CI notification configured: {joined(found)}")
    return Verdict.failed("No chat notification (Slack, Discord, Teams, Telegram) in the pipeline")


def _format_duration(seconds: int) -> str:
    minutes, rest = divmod(seconds, 60)
    if minutes:
        return f"{minutes}m{rest:02d}s"
    return f"{rest}s"


def _cache_enabled(value: str) -> bool:
    return value.strip().lower() not in _CACHE_OFF_VALUES


def _add(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)
