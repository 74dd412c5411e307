"""Check definitions, results, and score report models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Category(str, Enum):
    """Functional grouping of checks, declared in canonical report order."""

    PIPELINE_CI = "pipeline_ci"
    QUALITY_TESTS = "quality_tests"
    SECURITY = "security"
    CONTAINERIZATION = "containerization"
    DEPLOYMENT = "deployment"
    BEST_PRACTICES = "best_practices"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    Category.PIPELINE_CI: "Pipeline CI",
    Category.QUALITY_TESTS: "Quality & Tests",
    Category.SECURITY: "Security",
    Category.CONTAINERIZATION: "Containerization",
    Category.DEPLOYMENT: "Deployment",
    Category.BEST_PRACTICES: "Best Practices",
}


class CheckKind(str, Enum):
    """Evaluation shape of a check."""

    BINARY = "binary"
    THRESHOLD = "threshold"
    COMPOSITE = "composite"
    PERCENTAGE = "percentage"

    @property
    def allows_warning(self) -> bool:
        return self is CheckKind.COMPOSITE


class CheckStatus(str, Enum):
    """Verdict of a single check."""

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    """Why a check could not be evaluated."""

    INSUFFICIENT_DATA = "insufficient data"
    NOT_APPLICABLE = "not applicable"
    INSUFFICIENT_PERMISSIONS = "insufficient permissions"
    MALFORMED_INPUT = "malformed input"
    EVALUATION_ERROR = "evaluation error"


@dataclass(frozen=True, slots=True)
class CheckDefinition:
    """Static description of one check in the catalog."""

    check_id: str
    category: Category
    kind: CheckKind
    title: str
    description: str
    remediation: str
    required_fields: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Verdict:
    """Raw outcome returned by an evaluator function."""

    status: CheckStatus
    evidence: str
    remediation: str | None = None
    skip_reason: SkipReason | None = None

    @classmethod
    def passed(cls, evidence: str) -> Verdict:
        return cls(CheckStatus.PASS, evidence)

    @classmethod
    def failed(cls, evidence: str, remediation: str | None = None) -> Verdict:
        return cls(CheckStatus.FAIL, evidence, remediation)

    @classmethod
    def warning(cls, evidence: str, remediation: str | None = None) -> Verdict:
        return cls(CheckStatus.WARNING, evidence, remediation)

    @classmethod
    def skipped(
        cls,
        evidence: str,
        reason: SkipReason = SkipReason.INSUFFICIENT_DATA,
        remediation: str | None = None,
    ) -> Verdict:
        return cls(CheckStatus.SKIPPED, evidence, remediation, reason)


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Evaluated check, one per catalog entry per run."""

    check_id: str
    category: Category
    title: str
    status: CheckStatus
    evidence: str
    remediation: str | None = None
    skip_reason: SkipReason | None = None

    @classmethod
    def from_verdict(cls, definition: CheckDefinition, verdict: Verdict) -> CheckResult:
        """Bind a verdict to its definition, filling the remediation template."""
        remediation: str | None = None
        if verdict.status is not CheckStatus.PASS:
            remediation = verdict.remediation or definition.remediation
        skip_reason = verdict.skip_reason
        if verdict.status is CheckStatus.SKIPPED and skip_reason is None:
            skip_reason = SkipReason.INSUFFICIENT_DATA
        if verdict.status is not CheckStatus.SKIPPED:
            skip_reason = None
        return cls(
            check_id=definition.check_id,
            category=definition.category,
            title=definition.title,
            status=verdict.status,
            evidence=verdict.evidence,
            remediation=remediation,
            skip_reason=skip_reason,
        )

    @property
    def counts_as_passed(self) -> bool:
        return self.status in {CheckStatus.PASS, CheckStatus.WARNING}


@dataclass(frozen=True, slots=True)
class CategoryScore:
    """Score for one category; ``percentage`` is None when nothing was evaluated."""

    category: Category
    evaluated_count: int
    passed_or_warned_count: int
    percentage: int | None


@dataclass(frozen=True, slots=True)
class ScoreReport:
    """Immutable result of one evaluation request."""

    repository: str
    overall_percentage: int | None
    categories: tuple[CategoryScore, ...]
    results: tuple[CheckResult, ...]
    generated_at: datetime

    @property
    def evaluated_count(self) -> int:
        return sum(item.evaluated_count for item in self.categories)

    @property
    def passed_or_warned_count(self) -> int:
        return sum(item.passed_or_warned_count for item in self.categories)

    @property
    def grade_label(self) -> str:
        pct = self.overall_percentage
        if pct is None:
            return "Not rated"
        if pct >= 90:
            return "Excellent"
        if pct >= 70:
            return "Good"
        if pct >= 50:
            return "Needs work"
        return "Poor"

    def results_for(self, category: Category) -> list[CheckResult]:
        return [result for result in self.results if result.category is category]
