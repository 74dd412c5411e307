"""Tests for human and JSON report rendering."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import click

from cicd_audit import __version__
from cicd_audit.catalog import default_catalog
from cicd_audit.output import build_json_payload, render_human, render_json
from cicd_audit.runner import run
from cicd_audit.scoring import aggregate
from cicd_audit.snapshot import BranchProtection
from tests.helpers_snapshot import bare_snapshot, full_snapshot

FIXED_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)


def test_json_payload_shape_and_meta() -> None:
    snapshot = full_snapshot(branch_protection=BranchProtection(enabled=True))
    report = aggregate(run(snapshot, default_catalog()), repository="acme/app", generated_at=FIXED_TIME)
    payload = json.loads(render_json(report))

    assert payload["repository"] == "acme/app"
    assert payload["overall_percentage"] == 100
    assert payload["grade"] == "Excellent"
    assert payload["meta"] == {"generated_at": "2026-10-01T12:00:00Z", "version": __version__}
    assert [item["category"] for item in payload["categories"]] == [
        "pipeline_ci",
        "quality_tests",
        "security",
        "containerization",
        "deployment",
        "best_practices",
    ]
    protection = next(item for item in payload["results"] if item["check_id"] == "branch_protection")
    assert protection["status"] == "warning"
    assert protection["title"] == "Protection de branche"
    assert protection["remediation"]
    assert protection["skip_reason"] is None


def test_json_keeps_non_ascii_titles_readable() -> None:
    report = aggregate(run(full_snapshot(), default_catalog()), repository="acme/app", generated_at=FIXED_TIME)
    assert "Tests présents" in render_json(report)


def test_json_reports_empty_category_as_null() -> None:
    snapshot = full_snapshot(branch_protection=None, credential_supplied=False)
    catalog = default_catalog().subset(["branch_protection", "readme_exists"])
    report = aggregate(run(snapshot, catalog), repository="acme/app", generated_at=FIXED_TIME)
    payload = build_json_payload(report)
    security = payload["categories"][0]
    assert security["category"] == "security"
    assert security["percentage"] is None
    assert security["evaluated_count"] == 0
    skipped = payload["results"][0]
    assert skipped["status"] == "skipped"
    assert skipped["skip_reason"] == "insufficient permissions"


def test_render_human_lists_failures_with_remediation() -> None:
    report = aggregate(run(bare_snapshot(), default_catalog()), repository="acme/bare")
    text = click.unstyle(render_human(report))
    assert "CI/CD score for acme/bare: 4% (Poor)" in text
    assert "Pipeline CI: 0% (0/6)" in text
    assert "[FAIL] README présent [readme_exists]" in text
    assert "fix: Add a README.md at the repository root." in text
    assert "Skipped (2):" in text


def test_render_human_verbose_includes_passed_checks() -> None:
    report = aggregate(run(full_snapshot(), default_catalog()), repository="acme/app")
    quiet = click.unstyle(render_human(report))
    verbose = click.unstyle(render_human(report, verbose=True))
    assert "To improve:" not in quiet
    assert "Passed:" not in quiet
    assert "[PASS] Pipeline CI existe" in verbose


def test_render_human_handles_unrated_report() -> None:
    report = aggregate([], repository="")
    text = click.unstyle(render_human(report))
    assert "n/a (Not rated)" in text
    assert "<unnamed>" in text
