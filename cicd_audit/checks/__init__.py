"""Check evaluators, keyed by check id."""

from cicd_audit.checks import containers, deployment, pipeline, practices, quality, security
from cicd_audit.checks.base import Evaluator

EVALUATORS: dict[str, Evaluator] = {
    # Pipeline CI
    "pipeline_exists": pipeline.pipeline_exists,
    "pipeline_green": pipeline.pipeline_green,
    "pipeline_fast": pipeline.pipeline_fast,
    "ci_cache": pipeline.ci_cache,
    "matrix_testing": pipeline.matrix_testing,
    "reusable_workflows": pipeline.reusable_workflows,
    "ci_notifications": pipeline.ci_notifications,
    # Quality & Tests
    "tests_exist": quality.tests_exist,
    "tests_pass": quality.tests_pass,
    "lint_in_ci": quality.lint_in_ci,
    "coverage_configured": quality.coverage_configured,
    "quality_gate": quality.quality_gate,
    # Security
    "no_secrets_in_code": security.no_secrets_in_code,
    "security_scan": security.security_scan,
    "secret_scanning": security.secret_scanning,
    "dependabot_configured": security.dependabot_configured,
    "branch_protection": security.branch_protection,
    # Containerization
    "dockerfile_exists": containers.dockerfile_exists,
    "docker_build_ci": containers.docker_build_ci,
    "ghcr_published": containers.ghcr_published,
    # Deployment
    "auto_deploy": deployment.auto_deploy,
    "multi_environment": deployment.multi_environment,
    "smoke_tests": deployment.smoke_tests,
    "rollback_strategy": deployment.rollback_strategy,
    # Best Practices
    "readme_exists": practices.readme_exists,
    "gitignore_exists": practices.gitignore_exists,
    "codeowners_exists": practices.codeowners_exists,
    "conventional_commits": practices.conventional_commits,
    "auto_changelog": practices.auto_changelog,
    "release_tagging": practices.release_tagging,
}

__all__ = ["EVALUATORS", "Evaluator"]
