"""Score aggregation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from cicd_audit.models import Category, CategoryScore, CheckResult, CheckStatus, ScoreReport


def percentage_of(numerator: int, denominator: int) -> int:
    """Return ``100 * numerator / denominator`` rounded half up, in exact integer arithmetic."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0 or numerator > denominator:
        raise ValueError("numerator must be between 0 and denominator")
    return (200 * numerator + denominator) // (2 * denominator)


def score_category(category: Category, results: Iterable[CheckResult]) -> CategoryScore:
    evaluated = 0
    passed = 0
    for result in results:
        if result.status is CheckStatus.SKIPPED:
            continue
        evaluated += 1
        if result.counts_as_passed:
            passed += 1
    return CategoryScore(
        category=category,
        evaluated_count=evaluated,
        passed_or_warned_count=passed,
        percentage=percentage_of(passed, evaluated) if evaluated else None,
    )


def aggregate(
    results: Iterable[CheckResult],
    *,
    repository: str,
    generated_at: datetime | None = None,
) -> ScoreReport:
    """Reduce check results into category scores and a pooled overall score.

    Categories are reported in canonical order when they hold at least one
    result. Skipped results are excluded from every denominator; a warning
    counts as passed. The overall percentage pools evaluated checks across
    categories, so a category with more checks weighs more.
    """
    ordered = tuple(results)
    by_category: dict[Category, list[CheckResult]] = {}
    for result in ordered:
        by_category.setdefault(result.category, []).append(result)

    categories = tuple(
        score_category(category, by_category[category])
        for category in Category
        if category in by_category
    )

    evaluated = sum(item.evaluated_count for item in categories)
    passed = sum(item.passed_or_warned_count for item in categories)
    overall = percentage_of(passed, evaluated) if evaluated else None

    if generated_at is None:
        generated_at = datetime.now(tz=UTC).replace(microsecond=0)
    return ScoreReport(
        repository=repository,
        overall_percentage=overall,
        categories=categories,
        results=ordered,
        generated_at=generated_at,
    )
