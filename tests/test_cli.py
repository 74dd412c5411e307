"""CLI tests for the score and snapshot commands."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from cicd_audit import __version__
from cicd_audit.cli import app
from cicd_audit.snapshot import snapshot_to_dict
from tests.helpers_git import commit_all, init_repo, write_file
from tests.helpers_snapshot import CI_WORKFLOW, bare_snapshot, full_snapshot

runner = CliRunner()


def test_root_help_works() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "CI/CD" in result.stdout
    assert "score" in result.stdout
    assert "snapshot" in result.stdout
    assert "config-validate" in result.stdout


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_score_snapshot_json(tmp_path: Path) -> None:
    snapshot_path = _write_snapshot(tmp_path, snapshot_to_dict(full_snapshot()))
    result = runner.invoke(app, ["score", "--snapshot", str(snapshot_path), "--format", "json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["overall_percentage"] == 100
    assert len(payload["results"]) == 30
    assert payload["repository"] == "acme/app"


def test_score_snapshot_human(tmp_path: Path) -> None:
    snapshot_path = _write_snapshot(tmp_path, snapshot_to_dict(bare_snapshot()))
    result = runner.invoke(app, ["score", "--snapshot", str(snapshot_path)])
    assert result.exit_code == 0
    assert "CI/CD score for acme/bare: 4% (Poor)" in result.stdout
    assert "To improve:" in result.stdout


def test_score_fail_below_gate(tmp_path: Path) -> None:
    snapshot_path = _write_snapshot(tmp_path, snapshot_to_dict(bare_snapshot()))
    failing = runner.invoke(
        app, ["score", "--snapshot", str(snapshot_path), "--format", "json", "--fail-below", "50"]
    )
    assert failing.exit_code == 1
    assert json.loads(failing.stdout)["overall_percentage"] == 4

    passing = runner.invoke(
        app, ["score", "--snapshot", str(snapshot_path), "--format", "json", "--fail-below", "4"]
    )
    assert passing.exit_code == 0


def test_score_unrated_report_never_trips_gate(tmp_path: Path) -> None:
    snapshot_path = _write_snapshot(tmp_path, {"repository": "acme/unknown"})
    result = runner.invoke(
        app, ["score", "--snapshot", str(snapshot_path), "--format", "json", "--fail-below", "90"]
    )
    assert result.exit_code == 0
    assert json.loads(result.stdout)["overall_percentage"] is None


def test_score_rejects_invalid_snapshot(tmp_path: Path) -> None:
    snapshot_path = tmp_path / "snapshot.json"
    snapshot_path.write_text("[1, 2]", encoding="utf-8")
    result = runner.invoke(app, ["score", "--snapshot", str(snapshot_path)])
    assert result.exit_code == 2
    assert "JSON object" in result.output


def test_score_rejects_missing_snapshot_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["score", "--snapshot", str(tmp_path / "missing.json")])
    assert result.exit_code == 2
    assert "--snapshot" in result.output


def test_score_rejects_bad_format(tmp_path: Path) -> None:
    snapshot_path = _write_snapshot(tmp_path, {"repository": "x"})
    result = runner.invoke(app, ["score", "--snapshot", str(snapshot_path), "--format", "xml"])
    assert result.exit_code == 2
    assert "human, json" in result.output


def test_score_workers_option_keeps_output_identical(tmp_path: Path) -> None:
    snapshot_path = _write_snapshot(tmp_path, snapshot_to_dict(full_snapshot()))
    single = runner.invoke(app, ["score", "--snapshot", str(snapshot_path), "--format", "json"])
    pooled = runner.invoke(
        app, ["score", "--snapshot", str(snapshot_path), "--format", "json", "--workers", "6"]
    )
    first = json.loads(single.stdout)
    second = json.loads(pooled.stdout)
    first.pop("meta")
    second.pop("meta")
    assert first == second


def test_score_local_repository(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "README.md", "# app\n")
    write_file(repo, ".github/workflows/ci.yml", CI_WORKFLOW)
    commit_all(repo, "feat: bootstrap")

    result = runner.invoke(app, ["score", "--repo", str(repo), "--format", "json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    statuses = {item["check_id"]: item["status"] for item in payload["results"]}
    assert statuses["pipeline_exists"] == "pass"
    assert statuses["pipeline_green"] == "skipped"


def test_snapshot_command_outputs_loadable_json(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "README.md", "# app\n")
    commit_all(repo, "docs: readme")

    out_path = tmp_path / "out" / "snapshot.json"
    result = runner.invoke(app, ["snapshot", "--repo", str(repo), "--out", str(out_path)])
    assert result.exit_code == 0, result.output
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["files"] == ["README.md"]
    assert payload["runs"] is None
    assert payload["commit_messages"] == ["docs: readme"]

    rescored = runner.invoke(app, ["score", "--snapshot", str(out_path), "--format", "json"])
    assert rescored.exit_code == 0


def _write_snapshot(tmp_path: Path, data: dict[str, object]) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
