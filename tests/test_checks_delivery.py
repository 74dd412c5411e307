"""Tests for the Containerization and Deployment checks."""

from __future__ import annotations

from cicd_audit.checks import containers, deployment
from cicd_audit.models import CheckStatus
from tests.helpers_snapshot import DEPLOY_WORKFLOW, bare_snapshot, full_snapshot, workflows

BUILD_ONLY_WORKFLOW = """\
on: push
jobs:
  image:
    runs-on: ubuntu-latest
    steps:
      - run: docker build -t ghcr.io/acme/app:${{ github.sha }} .
"""

MANUAL_DEPLOY_WORKFLOW = """\
on:
  workflow_dispatch:
jobs:
  deploy:
    runs-on: ubuntu-latest
    steps:
      - run: helm upgrade --install app ./chart
"""

REVERT_WORKFLOW = """\
on:
  workflow_dispatch:
    inputs:
      revert_to:
        description: Tag to revert to
jobs:
  redeploy:
    runs-on: ubuntu-latest
    steps:
      - run: ./scripts/release.sh ${{ inputs.revert_to }}
"""


def test_dockerfile_exists_checks_repository_root() -> None:
    assert containers.dockerfile_exists(full_snapshot()).status is CheckStatus.PASS
    nested = bare_snapshot(files=frozenset({"docker/Dockerfile"}))
    assert containers.dockerfile_exists(nested).status is CheckStatus.FAIL


def test_docker_build_ci_detects_run_command() -> None:
    verdict = containers.docker_build_ci(bare_snapshot(workflows=workflows(image=BUILD_ONLY_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS
    assert "docker build" in verdict.evidence


def test_docker_build_ci_fails_without_build() -> None:
    verdict = containers.docker_build_ci(bare_snapshot(workflows=workflows(deploy=MANUAL_DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


def test_ghcr_published_passes_with_push_true() -> None:
    assert containers.ghcr_published(full_snapshot()).status is CheckStatus.PASS


def test_ghcr_published_warns_when_registry_referenced_without_push() -> None:
    verdict = containers.ghcr_published(bare_snapshot(workflows=workflows(image=BUILD_ONLY_WORKFLOW)))
    assert verdict.status is CheckStatus.WARNING
    assert "push" in (verdict.remediation or "")


def test_ghcr_published_fails_without_registry() -> None:
    verdict = containers.ghcr_published(bare_snapshot(workflows=workflows(deploy=DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


def test_auto_deploy_passes_for_push_triggered_deploy() -> None:
    verdict = deployment.auto_deploy(bare_snapshot(workflows=workflows(deploy=DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS
    assert "deploy.yml" in verdict.evidence


def test_auto_deploy_warns_for_manual_only_deploy() -> None:
    verdict = deployment.auto_deploy(bare_snapshot(workflows=workflows(deploy=MANUAL_DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.WARNING


def test_auto_deploy_fails_without_deployment() -> None:
    verdict = deployment.auto_deploy(bare_snapshot(workflows=workflows(image=BUILD_ONLY_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


def test_multi_environment_counts_distinct_environments() -> None:
    verdict = deployment.multi_environment(bare_snapshot(workflows=workflows(deploy=DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS
    assert "staging" in verdict.evidence
    assert "production" in verdict.evidence


def test_multi_environment_treats_aliases_as_one_environment() -> None:
    content = """\
on: push
jobs:
  a:
    environment: prod
    steps: []
  b:
    environment: production
    steps: []
"""
    verdict = deployment.multi_environment(bare_snapshot(workflows=workflows(deploy=content)))
    assert verdict.status is CheckStatus.FAIL
    assert "production" in verdict.evidence


def test_multi_environment_falls_back_to_job_names() -> None:
    content = """\
on: push
jobs:
  deploy-dev:
    steps: []
  deploy-prod:
    steps: []
"""
    verdict = deployment.multi_environment(bare_snapshot(workflows=workflows(deploy=content)))
    assert verdict.status is CheckStatus.PASS


def test_smoke_tests_detects_health_check() -> None:
    verdict = deployment.smoke_tests(bare_snapshot(workflows=workflows(deploy=DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS
    assert "smoke" in verdict.evidence


def test_smoke_tests_fails_without_post_deploy_checks() -> None:
    verdict = deployment.smoke_tests(bare_snapshot(workflows=workflows(deploy=MANUAL_DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL


def test_rollback_strategy_detects_dedicated_workflow() -> None:
    verdict = deployment.rollback_strategy(full_snapshot())
    assert verdict.status is CheckStatus.PASS
    assert "rollback.yml" in verdict.evidence


def test_rollback_strategy_accepts_dispatch_with_revert_input() -> None:
    verdict = deployment.rollback_strategy(bare_snapshot(workflows=workflows(redeploy=REVERT_WORKFLOW)))
    assert verdict.status is CheckStatus.PASS


def test_rollback_strategy_warns_for_plain_dispatch() -> None:
    verdict = deployment.rollback_strategy(bare_snapshot(workflows=workflows(deploy=MANUAL_DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.WARNING


def test_rollback_strategy_fails_without_any_mechanism() -> None:
    verdict = deployment.rollback_strategy(bare_snapshot(workflows=workflows(deploy=DEPLOY_WORKFLOW)))
    assert verdict.status is CheckStatus.FAIL
