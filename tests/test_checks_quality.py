"""Tests for the Quality & Tests checks."""

from __future__ import annotations

import pytest

from cicd_audit.catalog import default_catalog
from cicd_audit.checks import quality
from cicd_audit.models import CheckStatus
from cicd_audit.runner import run
from cicd_audit.snapshot import WorkflowRun
from tests.helpers_snapshot import bare_snapshot, full_snapshot, workflows

NO_TEST_WORKFLOW = """\
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: npm ci
      - run: npm run build
"""

NODE_TEST_WORKFLOW = """\
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: npm ci
      - run: npm test -- --coverage
      - run: npx eslint .
"""


def test_tests_exist_detects_runner_commands() -> None:
    verdict = quality.tests_exist(bare_snapshot(workflows=workflows(ci=NODE_TEST_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS
    assert "npm test" in verdict.evidence


def test_tests_exist_detects_named_test_step() -> None:
    content = "on: push\njobs:\n  t:\n    steps:\n      - name: Unit tests\n        run: ./scripts/check.sh\n"
    verdict = quality.tests_exist(bare_snapshot(workflows=workflows(ci=content)))
    assert verdict.status is CheckStatus.PASS
    assert "test step" in verdict.evidence


def test_tests_exist_fails_without_test_step() -> None:
    verdict = quality.tests_exist(bare_snapshot(workflows=workflows(ci=NO_TEST_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


@pytest.mark.parametrize(
    "runs",
    [
        (WorkflowRun(name="CI", conclusion="success", duration_seconds=30),),
        (WorkflowRun(name="CI", conclusion="failure", duration_seconds=30),),
        (WorkflowRun(name="CI", conclusion=None),),
        (),
        None,
    ],
    ids=["green", "failed", "in-progress", "no-runs", "runs-unknown"],
)
def test_tests_pass_fails_without_tests_whatever_the_pipeline_state(
    runs: tuple[WorkflowRun, ...] | None,
) -> None:
    snapshot = bare_snapshot(workflows=workflows(ci=NO_TEST_WORKFLOW), runs=runs)
    assert quality.tests_exist(snapshot).status is CheckStatus.FAIL
    assert quality.tests_pass(snapshot).status is CheckStatus.FAIL

    results = run(snapshot, default_catalog().subset(["tests_exist", "tests_pass"]))
    assert [item.status for item in results] == [CheckStatus.FAIL, CheckStatus.FAIL]


def test_tests_pass_passes_with_tests_and_green_run() -> None:
    verdict = quality.tests_pass(full_snapshot())
    assert verdict.status is CheckStatus.PASS
    assert "pytest" in verdict.evidence


def test_tests_pass_fails_when_latest_run_failed() -> None:
    snapshot = full_snapshot(runs=(WorkflowRun(name="CI", conclusion="failure"),))
    verdict = quality.tests_pass(snapshot)
    assert verdict.status is CheckStatus.FAIL
    assert "failure" in verdict.evidence


def test_tests_pass_warns_when_run_status_unknown() -> None:
    assert quality.tests_pass(full_snapshot(runs=None)).status is CheckStatus.WARNING
    assert quality.tests_pass(full_snapshot(runs=())).status is CheckStatus.WARNING
    in_progress = full_snapshot(runs=(WorkflowRun(name="CI", conclusion=None),))
    verdict = quality.tests_pass(in_progress)
    assert verdict.status is CheckStatus.WARNING
    assert verdict.remediation is not None


def test_lint_in_ci_detects_eslint() -> None:
    verdict = quality.lint_in_ci(bare_snapshot(workflows=workflows(ci=NODE_TEST_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS
    assert "eslint" in verdict.evidence


def test_lint_in_ci_fails_without_linter() -> None:
    verdict = quality.lint_in_ci(bare_snapshot(workflows=workflows(ci=NO_TEST_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


def test_coverage_configured_detects_pytest_cov_flag() -> None:
    verdict = quality.coverage_configured(full_snapshot())
    assert verdict.status is CheckStatus.PASS
    assert "--cov" in verdict.evidence


def test_coverage_configured_fails_without_coverage() -> None:
    verdict = quality.coverage_configured(bare_snapshot(workflows=workflows(ci=NO_TEST_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


def test_quality_gate_detects_sonarcloud() -> None:
    verdict = quality.quality_gate(full_snapshot())
    assert verdict.status is CheckStatus.PASS
    assert "sonarcloud" in verdict.evidence


def test_quality_gate_fails_without_platform() -> None:
    verdict = quality.quality_gate(bare_snapshot(workflows=workflows(ci=NODE_TEST_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL
