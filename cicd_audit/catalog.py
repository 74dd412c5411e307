"""Check catalog: the fixed set of check definitions."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from cicd_audit.errors import ConfigurationError
from cicd_audit.models import Category, CheckDefinition, CheckKind
from cicd_audit.snapshot import FACT_FIELDS

EXPECTED_TOTAL = 30

EXPECTED_CATEGORY_COUNTS: dict[Category, int] = {
    Category.PIPELINE_CI: 7,
    Category.QUALITY_TESTS: 5,
    Category.SECURITY: 5,
    Category.CONTAINERIZATION: 3,
    Category.DEPLOYMENT: 4,
    Category.BEST_PRACTICES: 6,
}


@dataclass(frozen=True, slots=True)
class CheckCatalog:
    """Read-only, ordered collection of check definitions."""

    entries: tuple[CheckDefinition, ...]

    def __post_init__(self) -> None:
        _validate_entries(self.entries)

    def definitions(self) -> tuple[CheckDefinition, ...]:
        return self.entries

    def get(self, check_id: str) -> CheckDefinition:
        for definition in self.entries:
            if definition.check_id == check_id:
                return definition
        raise KeyError(check_id)

    def ids(self) -> list[str]:
        return [definition.check_id for definition in self.entries]

    def subset(self, check_ids: Iterable[str]) -> CheckCatalog:
        """Return a reduced catalog keeping catalog order."""
        wanted = set(check_ids)
        unknown = wanted.difference(self.ids())
        if unknown:
            raise ValueError(f"Unknown check ids: {', '.join(sorted(unknown))}")
        return CheckCatalog(tuple(item for item in self.entries if item.check_id in wanted))

    def without(self, check_ids: Iterable[str]) -> CheckCatalog:
        excluded = set(check_ids)
        return self.subset(item for item in self.ids() if item not in excluded)

    def __iter__(self) -> Iterator[CheckDefinition]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def default_catalog() -> CheckCatalog:
    """Build the full catalog and verify its size and category layout."""
    catalog = CheckCatalog(DEFAULT_DEFINITIONS)
    verify_full_catalog(catalog)
    return catalog


def verify_full_catalog(catalog: CheckCatalog) -> None:
    """Fail fast when the catalog does not have the expected shape."""
    if len(catalog) != EXPECTED_TOTAL:
        raise ConfigurationError(
            f"Catalog must define {EXPECTED_TOTAL} checks, found {len(catalog)}"
        )
    counts = {category: 0 for category in Category}
    for definition in catalog:
        counts[definition.category] += 1
    mismatched = [
        f"{category.label}: expected {expected}, found {counts[category]}"
        for category, expected in EXPECTED_CATEGORY_COUNTS.items()
        if counts[category] != expected
    ]
    if mismatched:
        raise ConfigurationError("Catalog category counts mismatch: " + "; ".join(mismatched))


def _validate_entries(entries: tuple[CheckDefinition, ...]) -> None:
    seen: set[str] = set()
    for definition in entries:
        if not definition.check_id:
            raise ConfigurationError("Check definitions need a non-empty id")
        if definition.check_id in seen:
            raise ConfigurationError(f"Duplicate check id: {definition.check_id}")
        seen.add(definition.check_id)
        if not isinstance(definition.category, Category):
            raise ConfigurationError(
                f"Check {definition.check_id} has unknown category {definition.category!r}"
            )
        if not isinstance(definition.kind, CheckKind):
            raise ConfigurationError(
                f"Check {definition.check_id} has unknown kind {definition.kind!r}"
            )
        unknown_fields = [item for item in definition.required_fields if item not in FACT_FIELDS]
        if unknown_fields:
            raise ConfigurationError(
                f"Check {definition.check_id} requires unknown snapshot fields: "
                + ", ".join(unknown_fields)
            )


def _check(
    check_id: str,
    category: Category,
    kind: CheckKind,
    title: str,
    description: str,
    remediation: str,
    *required_fields: str,
) -> CheckDefinition:
    return CheckDefinition(
        check_id=check_id,
        category=category,
        kind=kind,
        title=title,
        description=description,
        remediation=remediation,
        required_fields=required_fields,
    )


_CI = Category.PIPELINE_CI
_QT = Category.QUALITY_TESTS
_SEC = Category.SECURITY
_CNT = Category.CONTAINERIZATION
_DEP = Category.DEPLOYMENT
_BP = Category.BEST_PRACTICES

DEFAULT_DEFINITIONS: tuple[CheckDefinition, ...] = (
    # Pipeline CI
    _check(
        "pipeline_exists", _CI, CheckKind.BINARY,
        "Pipeline CI existe",
        "At least one YAML workflow exists under .github/workflows/.",
        "Create .github/workflows/ci.yml describing your CI pipeline.",
        "workflows",
    ),
    _check(
        "pipeline_green", _CI, CheckKind.BINARY,
        "Pipeline vert sur main",
        "The latest workflow run on the default branch succeeded.",
        "Fix the failing jobs so the default branch pipeline is green.",
        "runs",
    ),
    _check(
        "pipeline_fast", _CI, CheckKind.THRESHOLD,
        "Pipeline rapide (< 5 min)",
        "Average duration of recent completed runs is at most 5 minutes.",
        "Cache dependencies, parallelize jobs and split slow suites to keep runs under 5 minutes.",
        "runs",
    ),
    _check(
        "ci_cache", _CI, CheckKind.BINARY,
        "Cache CI",
        "The pipeline caches dependencies or Docker layers between runs.",
        "Add actions/cache or enable the built-in cache of setup-* actions (cache: npm, cache: pip).",
        "workflows",
    ),
    _check(
        "matrix_testing", _CI, CheckKind.BINARY,
        "Tests en matrice",
        "A job uses a strategy matrix to test several versions or platforms.",
        "Add 'strategy: matrix:' to test across language versions or operating systems.",
        "workflows",
    ),
    _check(
        "reusable_workflows", _CI, CheckKind.BINARY,
        "Workflows réutilisables",
        "The repository defines (workflow_call) or calls a reusable workflow.",
        "Extract shared jobs into a workflow triggered by 'workflow_call' and call it with 'uses:'.",
        "workflows",
    ),
    _check(
        "ci_notifications", _CI, CheckKind.BINARY,
        "Notifications CI",
        "The pipeline notifies a chat channel (Slack, Discord, Teams, Telegram).",
        "Add a notification step such as slackapi/slack-github-action or a Discord webhook.",
        "workflows",
    ),
    # Quality & Tests
    _check(
        "tests_exist", _QT, CheckKind.BINARY,
        "Tests présents",
        "A test step runs in the CI pipeline.",
        "Add a test step (pytest, npm test, cargo test, go test...) to your pipeline.",
        "workflows",
    ),
    _check(
        "tests_pass", _QT, CheckKind.COMPOSITE,
        "Tests passent dans CI",
        "Tests run in CI and the latest default-branch run is green.",
        "Fix the failing tests so the pipeline passes on the default branch.",
        "workflows",
    ),
    _check(
        "lint_in_ci", _QT, CheckKind.BINARY,
        "Lint dans la CI",
        "A lint or format check runs in the pipeline.",
        "Add a lint step (ruff, eslint, clippy, golangci-lint...) to your pipeline.",
        "workflows",
    ),
    _check(
        "coverage_configured", _QT, CheckKind.BINARY,
        "Coverage configurée",
        "Code coverage is collected in the pipeline.",
        "Collect coverage in CI (pytest-cov, codecov, tarpaulin, istanbul...).",
        "workflows",
    ),
    _check(
        "quality_gate", _QT, CheckKind.BINARY,
        "Quality gate",
        "A code quality platform gates the pipeline (SonarCloud, Code Climate, Codacy...).",
        "Integrate SonarCloud, Code Climate or Codacy to enforce a quality gate.",
        "workflows",
    ),
    # Security
    _check(
        "no_secrets_in_code", _SEC, CheckKind.BINARY,
        "Pas de secrets dans le code",
        "No hardcoded credentials appear in workflow definitions.",
        "Move credentials to repository secrets and reference them as ${{ secrets.NAME }}.",
        "workflows",
    ),
    _check(
        "security_scan", _SEC, CheckKind.BINARY,
        "Scan de sécurité",
        "A SAST or dependency vulnerability scanner runs in the pipeline.",
        "Add CodeQL, Trivy, Snyk, Semgrep or Bandit to your pipeline.",
        "workflows",
    ),
    _check(
        "secret_scanning", _SEC, CheckKind.BINARY,
        "Détection de secrets",
        "A secret-scanning tool runs in the pipeline.",
        "Add gitleaks, TruffleHog or detect-secrets to catch leaked credentials.",
        "workflows",
    ),
    _check(
        "dependabot_configured", _SEC, CheckKind.BINARY,
        "Dependabot / Renovate",
        "Automated dependency updates are configured.",
        "Add .github/dependabot.yml or a renovate.json configuration.",
        "files",
    ),
    _check(
        "branch_protection", _SEC, CheckKind.COMPOSITE,
        "Protection de branche",
        "The default branch is protected and requires pull request reviews.",
        "Enable branch protection with required pull request reviews in the repository settings.",
        "branch_protection",
    ),
    # Containerization
    _check(
        "dockerfile_exists", _CNT, CheckKind.BINARY,
        "Dockerfile présent",
        "A Dockerfile exists at the repository root.",
        "Add a Dockerfile at the repository root.",
        "files",
    ),
    _check(
        "docker_build_ci", _CNT, CheckKind.BINARY,
        "Docker build dans CI",
        "The pipeline builds a Docker image.",
        "Add 'docker build' or docker/build-push-action to your pipeline.",
        "workflows",
    ),
    _check(
        "ghcr_published", _CNT, CheckKind.COMPOSITE,
        "Image publiée sur GHCR",
        "The pipeline pushes the image to GitHub Container Registry.",
        "Use docker/build-push-action with 'push: true' and a ghcr.io image tag.",
        "workflows",
    ),
    # Deployment
    _check(
        "auto_deploy", _DEP, CheckKind.COMPOSITE,
        "Déploiement automatique",
        "A deployment runs automatically on push to the default branch.",
        "Trigger your deployment job on push to the default branch.",
        "workflows",
    ),
    _check(
        "multi_environment", _DEP, CheckKind.BINARY,
        "Multi-environnements",
        "The pipeline deploys to at least two environments (staging, production...).",
        "Declare GitHub environments (staging, production) on your deployment jobs.",
        "workflows",
    ),
    _check(
        "smoke_tests", _DEP, CheckKind.BINARY,
        "Tests smoke / e2e",
        "Smoke, end-to-end or post-deploy checks run in the pipeline.",
        "Add post-deploy smoke tests (health check curl, Playwright, Cypress).",
        "workflows",
    ),
    _check(
        "rollback_strategy", _DEP, CheckKind.COMPOSITE,
        "Stratégie de rollback",
        "A rollback workflow or rollback step is defined.",
        "Add .github/workflows/rollback.yml or a workflow_dispatch input that redeploys a previous version.",
        "workflows",
    ),
    # Best Practices
    _check(
        "readme_exists", _BP, CheckKind.BINARY,
        "README présent",
        "A README file exists at the repository root.",
        "Add a README.md at the repository root.",
        "files",
    ),
    _check(
        "gitignore_exists", _BP, CheckKind.BINARY,
        ".gitignore présent",
        "A .gitignore file exists at the repository root.",
        "Add a .gitignore suited to your stack.",
        "files",
    ),
    _check(
        "codeowners_exists", _BP, CheckKind.BINARY,
        "CODEOWNERS présent",
        "A CODEOWNERS file assigns reviewers.",
        "Add a CODEOWNERS file at the root, in .github/ or in docs/.",
        "files",
    ),
    _check(
        "conventional_commits", _BP, CheckKind.PERCENTAGE,
        "Conventional Commits",
        "At least 80% of recent non-merge commits follow Conventional Commits.",
        "Prefix commit subjects with feat:, fix:, chore:, ci:, docs:... (Conventional Commits).",
        "commit_messages",
    ),
    _check(
        "auto_changelog", _BP, CheckKind.BINARY,
        "Changelog automatisé",
        "The changelog is generated automatically or maintained per release.",
        "Configure release-please or semantic-release to generate the changelog.",
        "workflows",
    ),
    _check(
        "release_tagging", _BP, CheckKind.COMPOSITE,
        "Releases et tags",
        "Releases or version tags are published.",
        "Publish tagged releases, manually or with release-please.",
        "releases",
    ),
)
