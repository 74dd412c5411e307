"""Quality & Tests checks."""

from __future__ import annotations

import re

from cicd_audit.checks.base import find_signals, joined, keyword_signals, pipeline_text, require
from cicd_audit.checks.pipeline import latest_run, run_outcome
from cicd_audit.errors import MissingData
from cicd_audit.models import Verdict
from cicd_audit.snapshot import RepositorySnapshot

_TEST_SIGNALS = keyword_signals(
    "pytest",
    "tox",
    "nox",
    "unittest",
    "jest",
    "vitest",
    "mocha",
    "phpunit",
    "rspec",
    "ctest",
) + (
    ("npm test", re.compile(r"\b(npm|yarn|pnpm|bun)\s+(run\s+)?test\b")),
    ("cargo test", re.compile(r"\bcargo\s+(test|nextest)\b")),
    ("go test", re.compile(r"\bgo\s+test\b")),
    ("dotnet test", re.compile(r"\bdotnet\s+test\b")),
    ("mix test", re.compile(r"\bmix\s+test\b")),
    ("gradle test", re.compile(r"\bgradlew?\s+[\w:\s-]*\b(test|check)\b")),
    ("mvn verify", re.compile(r"\bmvnw?\s+[\w:\s-]*\b(test|verify)\b")),
    ("make test", re.compile(r"\bmake\s+test\b")),
)
_TEST_STEP_NAME_RE = re.compile(r"\btests?\b", re.IGNORECASE)

_LINT_SIGNALS = keyword_signals(
    "lint",
    "ruff",
    "flake8",
    "pylint",
    "black",
    "mypy",
    "eslint",
    "prettier",
    "clippy",
    "rustfmt",
    "golangci-lint",
    "gofmt",
    "rubocop",
    "stylelint",
    "shellcheck",
    "hadolint",
    "pre-commit",
) + (("fmt --check", re.compile(r"\bfmt\s+(--\s+)?--check\b")),)

_COVERAGE_SIGNALS = keyword_signals(
    "coverage",
    "pytest-cov",
    "--cov",
    "codecov",
    "coveralls",
    "lcov",
    "tarpaulin",
    "llvm-cov",
    "jacoco",
    "istanbul",
    "nyc",
    "c8",
    "cobertura",
)

_QUALITY_GATE_SIGNALS = keyword_signals(
    "sonarcloud",
    "sonarqube",
    "sonar-scanner",
    "sonarsource/sonarcloud-github-action",
    "sonarsource/sonarqube-scan-action",
    "codeclimate",
    "paambaati/codeclimate-action",
    "codacy",
    "codacy/codacy-analysis-cli-action",
    "codecov",
    "deepsource",
    "qlty",
)


def detect_test_signals(snapshot: RepositorySnapshot) -> list[str]:
    """Test runners or test steps found in the pipeline."""
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _TEST_SIGNALS)
    for step in snapshot.iter_steps():
        if step.name and _TEST_STEP_NAME_RE.search(step.name) and "test step" not in found:
            found.append("test step")
    return found


def tests_exist(snapshot: RepositorySnapshot) -> Verdict:
    found = detect_test_signals(snapshot)
    if found:
        return Verdict.passed(f"Test execution detected in CI: {joined(found)}")
    return Verdict.failed("No test step detected in the workflows")


def tests_pass(snapshot: RepositorySnapshot) -> Verdict:
    """Tests detected in CI (leading) and latest run green (auxiliary).

    Without a test step the check fails whatever the pipeline state; with one,
    an unknown or undecided latest run only lowers confidence to a warning.
    """
    found = detect_test_signals(snapshot)
    if not found:
        return Verdict.failed(
            "No test step detected in the workflows",
            "Add a test step to your pipeline before checking that tests pass.",
        )

    try:
        run = latest_run(snapshot)
    except MissingData:
        return Verdict.warning(
            "Tests run in CI but the latest run status is unknown",
            "Re-run the analysis with workflow run data to confirm the tests pass.",
        )
    if run is None:
        return Verdict.warning(
            f"Tests run in CI but no run is recorded on {snapshot.default_branch}",
            f"Run your pipeline on {snapshot.default_branch} to confirm the tests pass.",
        )

    outcome = run_outcome(run)
    label = run.name or "CI"
    if outcome is None:
        return Verdict.warning(
            f"Tests run in CI but the latest run '{label}' has no decisive conclusion",
            "Wait for the run to finish and analyze again.",
        )
    if outcome:
        return Verdict.passed(f"Pipeline '{label}' is green with test steps ({joined(found)})")
    return Verdict.failed(
        f"Pipeline '{label}' concluded with status '{run.conclusion}'; tests may be failing"
    )


def lint_in_ci(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _LINT_SIGNALS)
    if found:
        return Verdict.passed(f"Lint/format step detected: {joined(found)}")
    return Verdict.failed("No linter or formatter detected in the workflows")


def coverage_configured(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _COVERAGE_SIGNALS)
    if found:
        return Verdict.passed(f"Coverage collection detected: {joined(found)}")
    return Verdict.failed("No coverage configuration detected")


def quality_gate(snapshot: RepositorySnapshot) -> Verdict:
    require(snapshot, "workflows")
    found = find_signals(pipeline_text(snapshot), _QUALITY_GATE_SIGNALS)
    if found:
        return Verdict.passed(f"Quality gate detected: {joined(found)}")
    return Verdict.failed("No code quality platform detected")
