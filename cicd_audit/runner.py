"""Evaluation runner: one result per catalog entry, in catalog order."""

from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor

from cicd_audit.catalog import CheckCatalog
from cicd_audit.checks import EVALUATORS, Evaluator
from cicd_audit.checks.base import missing_fact_verdict
from cicd_audit.errors import Inconclusive, MalformedInput, MissingData
from cicd_audit.logger import get_logger
from cicd_audit.models import CheckDefinition, CheckResult, CheckStatus, SkipReason, Verdict
from cicd_audit.snapshot import RepositorySnapshot

log = get_logger(__name__)


def run(
    snapshot: RepositorySnapshot,
    catalog: CheckCatalog,
    *,
    max_workers: int = 1,
    evaluators: Mapping[str, Evaluator] | None = None,
) -> list[CheckResult]:
    """Evaluate every catalog check against ``snapshot``.

    Evaluator failures never abort the batch: each one becomes a skipped
    result carrying a diagnostic. With ``max_workers > 1`` checks run on a
    thread pool; the returned list is in catalog order either way.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    registry = EVALUATORS if evaluators is None else evaluators
    definitions = catalog.definitions()

    if max_workers == 1 or len(definitions) <= 1:
        results = [evaluate_check(definition, snapshot, registry) for definition in definitions]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                definition.check_id: executor.submit(evaluate_check, definition, snapshot, registry)
                for definition in definitions
            }
            by_id = {check_id: future.result() for check_id, future in futures.items()}
        results = [by_id[definition.check_id] for definition in definitions]

    skipped = sum(1 for result in results if result.status is CheckStatus.SKIPPED)
    log.debug(
        "Evaluated %d checks for %s (%d skipped)",
        len(results),
        snapshot.repository or "<unnamed>",
        skipped,
    )
    return results


def evaluate_check(
    definition: CheckDefinition,
    snapshot: RepositorySnapshot,
    evaluators: Mapping[str, Evaluator] = EVALUATORS,
) -> CheckResult:
    """Evaluate a single check, converting evaluator failures into skipped results."""
    return CheckResult.from_verdict(definition, _verdict_for(definition, snapshot, evaluators))


def _verdict_for(
    definition: CheckDefinition,
    snapshot: RepositorySnapshot,
    evaluators: Mapping[str, Evaluator],
) -> Verdict:
    check_id = definition.check_id
    evaluator = evaluators.get(check_id)
    if evaluator is None:
        log.warning("No evaluator registered for check %s", check_id)
        return Verdict.skipped(
            f"evaluation error: no evaluator registered for {check_id}",
            SkipReason.EVALUATION_ERROR,
        )

    for field_name in definition.required_fields:
        if getattr(snapshot, field_name) is None:
            return missing_fact_verdict(snapshot, field_name)

    try:
        verdict = evaluator(snapshot)
    except MissingData as exc:
        if exc.field_name is not None and getattr(snapshot, exc.field_name, None) is None:
            return missing_fact_verdict(snapshot, exc.field_name)
        return Verdict.skipped(f"insufficient data: {exc}")
    except Inconclusive as exc:
        if definition.kind.allows_warning:
            return Verdict.warning(str(exc))
        return Verdict.skipped(f"insufficient data: {exc}")
    except MalformedInput as exc:
        log.warning("Check %s met malformed input: %s", check_id, exc)
        return Verdict.skipped(f"malformed input: {exc}", SkipReason.MALFORMED_INPUT)
    except Exception as exc:  # noqa: BLE001
        log.warning("Check %s raised %s: %s", check_id, type(exc).__name__, exc)
        return Verdict.skipped(
            f"evaluation error: unexpected data shape: {type(exc).__name__}: {exc}",
            SkipReason.EVALUATION_ERROR,
        )

    if not isinstance(verdict, Verdict):
        log.warning("Check %s returned %s instead of a verdict", check_id, type(verdict).__name__)
        return Verdict.skipped(
            f"evaluation error: evaluator returned {type(verdict).__name__}, not a verdict",
            SkipReason.EVALUATION_ERROR,
        )
    if verdict.status is CheckStatus.WARNING and not definition.kind.allows_warning:
        log.warning("Check %s (%s) returned a warning", check_id, definition.kind.value)
        return Verdict.skipped(
            f"evaluation error: {definition.kind.value} check returned a warning",
            SkipReason.EVALUATION_ERROR,
        )
    return verdict
