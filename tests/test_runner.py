"""Tests for the evaluation runner."""

from __future__ import annotations

import logging

import pytest

from cicd_audit.catalog import default_catalog
from cicd_audit.checks import EVALUATORS
from cicd_audit.models import CheckStatus, SkipReason, Verdict
from cicd_audit.runner import run
from cicd_audit.snapshot import RepositorySnapshot, WorkflowRun, snapshot_from_mapping
from tests.helpers_snapshot import bare_snapshot, full_snapshot, unknown_snapshot


def test_full_snapshot_passes_every_check() -> None:
    results = run(full_snapshot(), default_catalog())
    assert len(results) == 30
    failing = [(item.check_id, item.status, item.evidence) for item in results if item.status is not CheckStatus.PASS]
    assert failing == []
    assert all(item.remediation is None for item in results)


def test_results_follow_catalog_order() -> None:
    catalog = default_catalog()
    results = run(full_snapshot(), catalog)
    assert [item.check_id for item in results] == catalog.ids()


def test_parallel_run_matches_sequential_run() -> None:
    catalog = default_catalog()
    for snapshot in (full_snapshot(), bare_snapshot(), unknown_snapshot()):
        assert run(snapshot, catalog, max_workers=8) == run(snapshot, catalog)


def test_invalid_worker_count_is_rejected() -> None:
    with pytest.raises(ValueError):
        run(full_snapshot(), default_catalog(), max_workers=0)


def test_unknown_snapshot_skips_everything() -> None:
    results = run(unknown_snapshot(), default_catalog())
    assert {item.status for item in results} == {CheckStatus.SKIPPED}
    assert all(item.remediation for item in results)
    by_id = {item.check_id: item for item in results}
    protection = by_id["branch_protection"]
    assert protection.skip_reason is SkipReason.INSUFFICIENT_PERMISSIONS
    assert protection.evidence.startswith("insufficient permissions")
    assert by_id["pipeline_exists"].skip_reason is SkipReason.INSUFFICIENT_DATA
    assert by_id["pipeline_exists"].evidence == "insufficient data: workflow files not available"


def test_bare_snapshot_fails_instead_of_skipping() -> None:
    results = run(bare_snapshot(), default_catalog())
    skipped = {item.check_id for item in results if item.status is CheckStatus.SKIPPED}
    passed = {item.check_id for item in results if item.status is CheckStatus.PASS}
    assert skipped == {"pipeline_fast", "conventional_commits"}
    assert passed == {"no_secrets_in_code"}
    assert all(
        item.status is CheckStatus.FAIL
        for item in results
        if item.check_id not in skipped | passed
    )


def test_failed_results_carry_remediation_template() -> None:
    results = run(bare_snapshot(), default_catalog())
    by_id = {item.check_id: item for item in results}
    assert by_id["readme_exists"].remediation == "Add a README.md at the repository root."
    assert by_id["readme_exists"].skip_reason is None


def test_in_progress_run_skips_binary_pipeline_green() -> None:
    snapshot = full_snapshot(runs=(WorkflowRun(name="CI", conclusion=None),))
    results = {item.check_id: item for item in run(snapshot, default_catalog())}
    assert results["pipeline_green"].status is CheckStatus.SKIPPED
    assert results["pipeline_green"].evidence.startswith("insufficient data")
    assert results["tests_pass"].status is CheckStatus.WARNING


def test_malformed_field_is_reported_per_check() -> None:
    snapshot = snapshot_from_mapping({"repository": "acme/app", "files": "README.md"})
    results = {item.check_id: item for item in run(snapshot, default_catalog())}
    readme = results["readme_exists"]
    assert readme.status is CheckStatus.SKIPPED
    assert readme.skip_reason is SkipReason.MALFORMED_INPUT
    assert "files must be a list of strings" in readme.evidence


def test_crashing_evaluator_is_absorbed(caplog: pytest.LogCaptureFixture) -> None:
    def explode(snapshot: RepositorySnapshot) -> Verdict:
        raise KeyError("jobs")

    evaluators = dict(EVALUATORS, ci_cache=explode)
    with caplog.at_level(logging.WARNING, logger="cicd_audit"):
        results = run(full_snapshot(), default_catalog(), evaluators=evaluators)

    by_id = {item.check_id: item for item in results}
    assert len(results) == 30
    assert by_id["ci_cache"].status is CheckStatus.SKIPPED
    assert by_id["ci_cache"].skip_reason is SkipReason.EVALUATION_ERROR
    assert "KeyError" in by_id["ci_cache"].evidence
    assert by_id["pipeline_exists"].status is CheckStatus.PASS
    assert any("ci_cache" in record.getMessage() for record in caplog.records)


def test_evaluator_returning_non_verdict_is_absorbed(caplog: pytest.LogCaptureFixture) -> None:
    evaluators = dict(EVALUATORS, ci_cache=lambda snapshot: None)
    with caplog.at_level(logging.WARNING, logger="cicd_audit"):
        results = run(full_snapshot(), default_catalog(), evaluators=evaluators, max_workers=4)

    by_id = {item.check_id: item for item in results}
    assert len(results) == 30
    assert by_id["ci_cache"].status is CheckStatus.SKIPPED
    assert by_id["ci_cache"].skip_reason is SkipReason.EVALUATION_ERROR
    assert "NoneType" in by_id["ci_cache"].evidence
    assert by_id["matrix_testing"].status is CheckStatus.PASS
    assert any("instead of a verdict" in record.getMessage() for record in caplog.records)


def test_binary_check_returning_warning_is_a_contract_violation() -> None:
    evaluators = dict(EVALUATORS, readme_exists=lambda snapshot: Verdict.warning("meh"))
    results = {item.check_id: item for item in run(full_snapshot(), default_catalog(), evaluators=evaluators)}
    assert results["readme_exists"].status is CheckStatus.SKIPPED
    assert results["readme_exists"].skip_reason is SkipReason.EVALUATION_ERROR


def test_missing_evaluator_is_skipped() -> None:
    evaluators = {key: value for key, value in EVALUATORS.items() if key != "smoke_tests"}
    results = {item.check_id: item for item in run(full_snapshot(), default_catalog(), evaluators=evaluators)}
    assert results["smoke_tests"].status is CheckStatus.SKIPPED
    assert results["smoke_tests"].skip_reason is SkipReason.EVALUATION_ERROR


def test_reduced_catalog_runs_only_selected_checks() -> None:
    catalog = default_catalog().subset(["readme_exists", "branch_protection"])
    results = run(bare_snapshot(), catalog)
    assert [item.check_id for item in results] == ["branch_protection", "readme_exists"]
