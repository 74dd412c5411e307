"""Best Practices checks."""

from __future__ import annotations

import re

from cicd_audit.checks.base import find_signals, joined, keyword_signals, pipeline_text, require, require_presence
from cicd_audit.models import SkipReason, Verdict
from cicd_audit.scoring import percentage_of
from cicd_audit.snapshot import RepositorySnapshot

COMMIT_SAMPLE_SIZE = 20
CONVENTIONAL_THRESHOLD_PERCENT = 80

_CONVENTIONAL_RE = re.compile(
    r"^(feat|fix|docs|style|refactor|test|chore|ci|build|perf|revert)(\([^()\n]*\))?!?: \S"
)
_MERGE_PREFIXES = ("Merge pull request", "Merge branch", "Merge remote")
_VERSION_HEADER_RE = re.compile(r"^##\s+(\[|v?\d+\.\d+)")

_CHANGELOG_SIGNALS = keyword_signals(
    "release-please",
    "googleapis/release-please-action",
    "semantic-release",
    "conventional-changelog",
    "auto-changelog",
    "standard-version",
    "changesets",
    "changesets/action",
    "git-cliff",
    "towncrier",
    "release-drafter",
)

_RELEASE_TOOL_SIGNALS = keyword_signals(
    "release-please",
    "semantic-release",
    "softprops/action-gh-release",
    "actions/create-release",
    "ncipollo/release-action",
    "goreleaser",
    "gh release create",
)

README_FILES = ("README.md", "README", "README.rst", "README.txt", "readme.md")
CODEOWNERS_FILES = ("CODEOWNERS", ".github/CODEOWNERS", "docs/CODEOWNERS")


def is_conventional_commit(message: str) -> bool:
    """Whether the subject line follows Conventional Commits."""
    subject = message.splitlines()[0] if message else ""
    return bool(_CONVENTIONAL_RE.match(subject))


def readme_exists(snapshot: RepositorySnapshot) -> Verdict:
    if require_presence(snapshot, *README_FILES):
        return Verdict.passed("README found at the repository root")
    return Verdict.failed("No README at the repository root")


def gitignore_exists(snapshot: RepositorySnapshot) -> Verdict:
    if require_presence(snapshot, ".gitignore"):
        return Verdict.passed(".gitignore found")
    return Verdict.failed("No .gitignore at the repository root")


def codeowners_exists(snapshot: RepositorySnapshot) -> Verdict:
    if require_presence(snapshot, *CODEOWNERS_FILES):
        return Verdict.passed("CODEOWNERS file found")
    return Verdict.failed("No CODEOWNERS file found")


def conventional_commits(snapshot: RepositorySnapshot) -> Verdict:
    messages: tuple[str, ...] = require(snapshot, "commit_messages")
    sample = [
        message
        for message in messages[:COMMIT_SAMPLE_SIZE]
        if not message.startswith(_MERGE_PREFIXES)
    ]
    if not sample:
        return Verdict.skipped(
            "not applicable: no non-merge commit in the recent history",
            SkipReason.NOT_APPLICABLE,
        )

    conventional = sum(1 for message in sample if is_conventional_commit(message))
    percent = percentage_of(conventional, len(sample))
    evidence = f"{conventional}/{len(sample)} conventional commits ({percent}%)"
    if conventional * 100 >= CONVENTIONAL_THRESHOLD_PERCENT * len(sample):
        return Verdict.passed(evidence)
    return Verdict.failed(f"{evidence}, below {CONVENTIONAL_THRESHOLD_PERCENT}%")


def auto_changelog(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _CHANGELOG_SIGNALS)
    if found:
        return Verdict.passed(f"Automated changelog tooling detected: {joined(found)}")

    if snapshot.changelog:
        headers = sum(
            1 for line in snapshot.changelog.splitlines() if _VERSION_HEADER_RE.match(line)
        )
        if headers >= 2:
            return Verdict.passed(f"CHANGELOG.md maintained with {headers} version entries")
    return Verdict.failed("No automated changelog tooling found")


def release_tagging(snapshot: RepositorySnapshot) -> Verdict:
    """Published releases (leading) or release tooling awaiting a first release (auxiliary)."""
    releases: tuple[str, ...] = require(snapshot, "releases")
    if releases:
        return Verdict.passed(f"{len(releases)} release(s)/tag(s) found; latest: {releases[0]}")

    if snapshot.workflows is not None:
        found = find_signals(pipeline_text(snapshot), _RELEASE_TOOL_SIGNALS)
        if found:
            return Verdict.warning(
                f"Release tooling detected ({joined(found)}) but no release published yet",
                "Merge to the default branch to trigger the first release.",
            )
    return Verdict.failed("No release or tag found")
