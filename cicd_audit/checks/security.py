"""Security checks."""

from __future__ import annotations

import re

from cicd_audit.checks.base import (
    find_signals,
    joined,
    keyword_signals,
    pipeline_text,
    require,
    require_presence,
)
from cicd_audit.models import Verdict
from cicd_audit.snapshot import BranchProtection, RepositorySnapshot

# Matched against raw workflow sources; evidence only names the pattern.
_SECRET_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("AWS access key", re.compile(r"\b(AKIA|ASIA)[0-9A-Z]{16}\b")),
    ("GitHub token", re.compile(r"\b(ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9]{36}\b")),
    ("GitHub fine-grained token", re.compile(r"\bgithub_pat_[A-Za-z0-9_]{22,}\b")),
    ("OpenAI/Stripe style key", re.compile(r"\b(sk|rk)[-_](live_|test_|proj-)?[A-Za-z0-9]{20,}\b")),
    ("Slack token", re.compile(r"\bxox[abprs]-[A-Za-z0-9-]{10,}\b")),
    ("private key block", re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----")),
    (
        "inline credential",
        re.compile(
            r"(?i)\b(password|passwd|secret_key|api_key|apikey|access_token)\s*[:=]\s*"
            r"(?!\s*\$\{\{)['\"]?[^\s'\"$]{6,}"
        ),
    ),
)

_SAST_SIGNALS = keyword_signals(
    "codeql",
    "github/codeql-action",
    "trivy",
    "aquasecurity/trivy-action",
    "snyk",
    "semgrep",
    "bandit",
    "safety",
    "pip-audit",
    "npm audit",
    "cargo audit",
    "govulncheck",
    "osv-scanner",
    "grype",
    "anchore",
    "checkov",
    "tfsec",
    "brakeman",
    "gosec",
    "dependency-review-action",
)

_SECRET_SCAN_SIGNALS = keyword_signals(
    "gitleaks",
    "gitleaks/gitleaks-action",
    "trufflehog",
    "trufflesecurity/trufflehog",
    "detect-secrets",
    "ggshield",
    "gitguardian",
    "secretlint",
    "talisman",
)

DEPENDENCY_UPDATE_FILES = (
    ".github/dependabot.yml",
    ".github/dependabot.yaml",
    "renovate.json",
    "renovate.json5",
    ".github/renovate.json",
    ".github/renovate.json5",
    ".renovaterc",
    ".renovaterc.json",
)


def no_secrets_in_code(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    hits: list[str] = []
    for workflow in snapshot.yaml_workflows():
        sources = [workflow.content]
        sources.extend(step.run for job in workflow.jobs for step in job.steps)
        sources.extend(
            value for job in workflow.jobs for step in job.steps for value in step.with_args.values()
        )
        for label, pattern in _SECRET_PATTERNS:
            if any(pattern.search(source) for source in sources if source):
                hits.append(f"{label} in {workflow.name}")
    if hits:
        return Verdict.failed(f"Suspicious patterns detected: {joined(hits)}")
    return Verdict.passed("No hardcoded secret detected in the workflows")


def security_scan(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _SAST_SIGNALS)
    if found:
        return Verdict.passed(f"Security scanner(s) detected: {joined(found)}")
    return Verdict.failed("No security scanner detected in the pipeline")


def secret_scanning(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _SECRET_SCAN_SIGNALS)
    if found:
        return Verdict.passed(f"Secret scanning detected: {joined(found)}")
    return Verdict.failed("No secret-scanning tool detected in the pipeline")


def dependabot_configured(snapshot: RepositorySnapshot) -> Verdict:
    if require_presence(snapshot, ".github/dependabot.yml", ".github/dependabot.yaml"):
        return Verdict.passed("Dependabot configured")
    if require_presence(snapshot, *DEPENDENCY_UPDATE_FILES[2:]):
        return Verdict.passed("Renovate configured")
    return Verdict.failed("Neither Dependabot nor Renovate is configured")


def branch_protection(snapshot: RepositorySnapshot) -> Verdict:
    """Protection enabled (leading) with mandatory reviews (auxiliary)."""
    protection: BranchProtection = require(snapshot, "branch_protection")
    branch = snapshot.default_branch
    if not protection.enabled:
        return Verdict.failed(f"No protection configured on {branch}")
    if protection.requires_pull_request_reviews:
        reviewers = protection.required_approving_review_count
        detail = f" ({reviewers} approval(s) required)" if reviewers else ""
        return Verdict.passed(f"{branch} is protected with mandatory pull request reviews{detail}")
    return Verdict.warning(
        f"{branch} is protected but pull request reviews are not required",
        "Enable 'Require pull request reviews before merging' in the protection rule.",
    )
