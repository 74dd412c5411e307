"""Output rendering."""

from __future__ import annotations

import json
from typing import Any

import click

from cicd_audit import __version__
from cicd_audit.catalog import CheckCatalog
from cicd_audit.models import CategoryScore, CheckResult, CheckStatus, ScoreReport

_STATUS_MARKERS = {
    CheckStatus.PASS: ("PASS", "green"),
    CheckStatus.WARNING: ("WARN", "yellow"),
    CheckStatus.FAIL: ("FAIL", "red"),
    CheckStatus.SKIPPED: ("SKIP", "bright_black"),
}


def render_human(report: ScoreReport, *, verbose: bool = False) -> str:
    """Render a compact colorized summary."""
    label, color = _score_grade(report)
    overall = "n/a" if report.overall_percentage is None else f"{report.overall_percentage}%"
    lines: list[str] = [
        click.style(
            f"CI/CD score for {report.repository or '<unnamed>'}: {overall} ({label})",
            fg=color,
            bold=True,
        ),
        f"{report.passed_or_warned_count}/{report.evaluated_count} evaluated checks passed",
    ]

    lines.append(click.style("Categories:", bold=True))
    for category_score in report.categories:
        lines.append(f"- {_format_category(category_score)}")

    actionable = [
        result
        for result in report.results
        if result.status in {CheckStatus.FAIL, CheckStatus.WARNING}
    ]
    if actionable:
        lines.append(click.style("To improve:", bold=True))
        for result in actionable:
            lines.append(f"{_marker(result)} {result.title} [{result.check_id}]")
            lines.append(f"   evidence: {result.evidence}")
            if result.remediation:
                lines.append(f"   fix: {result.remediation}")

    skipped = [result for result in report.results if result.status is CheckStatus.SKIPPED]
    if skipped:
        lines.append(click.style(f"Skipped ({len(skipped)}):", bold=True))
        for result in skipped:
            lines.append(f"{_marker(result)} {result.title}: {result.evidence}")

    if verbose:
        passed = [result for result in report.results if result.status is CheckStatus.PASS]
        if passed:
            lines.append(click.style("Passed:", bold=True))
            for result in passed:
                lines.append(f"{_marker(result)} {result.title}: {result.evidence}")
    return "\n".join(lines)


def render_json(report: ScoreReport) -> str:
    """Render stable JSON output for CI and automation."""
    return json.dumps(build_json_payload(report), sort_keys=True, ensure_ascii=False)


def build_json_payload(report: ScoreReport) -> dict[str, Any]:
    """Build stable JSON payload for CI and automation."""
    meta: dict[str, Any] = {
        "generated_at": report.generated_at.isoformat().replace("+00:00", "Z"),
        "version": __version__,
    }
    return {
        "repository": report.repository,
        "overall_percentage": report.overall_percentage,
        "grade": report.grade_label,
        "evaluated_count": report.evaluated_count,
        "passed_or_warned_count": report.passed_or_warned_count,
        "categories": [_serialize_category(item) for item in report.categories],
        "results": [_serialize_result(item) for item in report.results],
        "meta": meta,
    }


def render_catalog_human(catalog: CheckCatalog, enabled_ids: set[str]) -> str:
    lines: list[str] = []
    current = None
    for definition in catalog:
        if definition.category is not current:
            current = definition.category
            lines.append(click.style(f"{current.label}:", bold=True))
        state = "enabled" if definition.check_id in enabled_ids else "disabled"
        lines.append(
            f"- {definition.check_id} ({definition.kind.value}, {state}): {definition.title}"
        )
        lines.append(f"  {definition.description}")
    return "\n".join(lines)


def render_catalog_json(catalog: CheckCatalog, enabled_ids: set[str]) -> str:
    payload = [
        {
            "id": definition.check_id,
            "category": definition.category.value,
            "kind": definition.kind.value,
            "title": definition.title,
            "description": definition.description,
            "remediation": definition.remediation,
            "required_fields": list(definition.required_fields),
            "enabled": definition.check_id in enabled_ids,
        }
        for definition in catalog
    ]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _serialize_category(category_score: CategoryScore) -> dict[str, Any]:
    return {
        "category": category_score.category.value,
        "label": category_score.category.label,
        "evaluated_count": category_score.evaluated_count,
        "passed_or_warned_count": category_score.passed_or_warned_count,
        "percentage": category_score.percentage,
    }


def _serialize_result(result: CheckResult) -> dict[str, Any]:
    return {
        "check_id": result.check_id,
        "category": result.category.value,
        "title": result.title,
        "status": result.status.value,
        "evidence": result.evidence,
        "remediation": result.remediation,
        "skip_reason": result.skip_reason.value if result.skip_reason is not None else None,
    }


def _format_category(category_score: CategoryScore) -> str:
    label = category_score.category.label
    if category_score.percentage is None:
        return f"{label}: n/a (nothing evaluated)"
    return (
        f"{label}: {category_score.percentage}% "
        f"({category_score.passed_or_warned_count}/{category_score.evaluated_count})"
    )


def _marker(result: CheckResult) -> str:
    text, color = _STATUS_MARKERS[result.status]
    return click.style(f"[{text}]", fg=color)


def _score_grade(report: ScoreReport) -> tuple[str, str]:
    pct = report.overall_percentage
    if pct is None:
        return (report.grade_label, "bright_black")
    if pct >= 70:
        return (report.grade_label, "green")
    if pct >= 50:
        return (report.grade_label, "yellow")
    return (report.grade_label, "red")
