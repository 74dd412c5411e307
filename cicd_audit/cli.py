"""CLI entrypoint for cicd-audit."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from cicd_audit import __version__
from cicd_audit.catalog import CheckCatalog, default_catalog
from cicd_audit.config import AppConfig, catalog_from_config, default_config_template, load_app_config
from cicd_audit.local import collect_local_snapshot
from cicd_audit.logger import configure_logging
from cicd_audit.output import render_catalog_human, render_catalog_json, render_human, render_json
from cicd_audit.runner import run
from cicd_audit.scoring import aggregate
from cicd_audit.snapshot import RepositorySnapshot, SnapshotError, load_snapshot, snapshot_to_dict

OUTPUT_FORMATS = ("human", "json")

RepoOption = Annotated[Path, typer.Option(help="Repository path.")]
FormatOption = Annotated[str, typer.Option(help="Output format: human|json.")]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to a cicd-audit TOML config file."),
]

app = typer.Typer(
    name="cicd-audit",
    no_args_is_help=True,
    help="Audit a repository's CI/CD setup and produce a categorized score.",
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Audit CI/CD readiness."""
    _ = version


@app.command("score")
def score_command(
    repo: RepoOption = Path("."),
    snapshot_file: Annotated[
        Path | None,
        typer.Option("--snapshot", help="Score a JSON snapshot instead of a local checkout."),
    ] = None,
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    fail_below: Annotated[
        int | None, typer.Option(help="Exit with code 1 if the overall score is below this value.")
    ] = None,
    workers: Annotated[
        int | None, typer.Option(help="Evaluate checks on this many threads.")
    ] = None,
    config_file: ConfigOption = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Debug logging and passed checks in output.")
    ] = False,
) -> None:
    """Evaluate every check and output the score report."""
    app_config = _load_config_or_raise(repo, config_file)
    configure_logging("debug" if verbose else app_config.log_level)
    output_format = _output_format(format or app_config.format)

    max_workers = app_config.workers if workers is None else workers
    if max_workers < 1:
        raise typer.BadParameter("workers must be >= 1", param_hint="--workers")
    threshold = app_config.fail_below if fail_below is None else fail_below

    catalog = _build_configured_catalog_or_raise(app_config)
    snapshot = _resolve_snapshot(repo=repo, snapshot_file=snapshot_file)
    report = aggregate(
        run(snapshot, catalog, max_workers=max_workers),
        repository=snapshot.repository,
    )

    if output_format == "json":
        typer.echo(render_json(report))
    else:
        typer.echo(render_human(report, verbose=verbose))

    # An unrated report has nothing to gate on.
    score = report.overall_percentage
    if threshold is not None and score is not None and score < threshold:
        raise typer.Exit(code=1)


@app.command("snapshot")
def snapshot_command(
    repo: RepoOption = Path("."),
    out: Annotated[
        Path | None, typer.Option(help="Write the snapshot JSON to this file.")
    ] = None,
) -> None:
    """Collect the facts of a local checkout as a JSON snapshot."""
    snapshot = _resolve_snapshot(repo=repo, snapshot_file=None)
    text = json.dumps(snapshot_to_dict(snapshot), indent=2, sort_keys=True, ensure_ascii=False)
    if out is None:
        typer.echo(text)
        return
    target = out.resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Snapshot written to: {target}")


@app.command("checks")
def checks_command(
    repo: RepoOption = Path("."),
    format: FormatOption = "human",
    config_file: ConfigOption = None,
) -> None:
    """List the check catalog and which checks are enabled."""
    output_format = _output_format(format)
    app_config = _load_config_or_raise(repo, config_file)
    active_ids = set(_build_configured_catalog_or_raise(app_config).ids())
    render = render_catalog_json if output_format == "json" else render_catalog_human
    typer.echo(render(default_catalog(), active_ids))


@app.command("config")
def config_command(
    repo: RepoOption = Path("."),
    format: FormatOption = "human",
    config_file: ConfigOption = None,
) -> None:
    """Show the resolved configuration."""
    output_format = _output_format(format)
    app_config = _load_config_or_raise(repo, config_file)
    payload = app_config.to_dict()
    payload["active_check_ids"] = _build_configured_catalog_or_raise(app_config).ids()

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    checks = payload["checks"]
    typer.echo(
        "\n".join(
            [
                "Resolved configuration:",
                f"- source: {payload['source'] or 'defaults'}",
                f"- format: {payload['format']}",
                f"- fail_below: {payload['fail_below']}",
                f"- workers: {payload['workers']}",
                f"- log_level: {payload['log_level']}",
                f"- checks.enable: {checks['enable']}",
                f"- checks.disable: {checks['disable']}",
                f"- active_check_ids: {payload['active_check_ids']}",
            ]
        )
    )


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Where to write the starter config.")] = Path(
        ".cicd-audit.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Replace an existing file."),
    ] = False,
) -> None:
    """Write a starter .cicd-audit.toml."""
    target = out.resolve()
    if target.exists() and not force:
        raise typer.BadParameter(
            f"{target} already exists; pass --force to replace it.", param_hint="--out"
        )
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Starter config written to: {target}")


@app.command("config-validate")
def config_validate_command(
    repo: RepoOption = Path("."),
    config_file: Annotated[
        Path,
        typer.Option("--config", help="Config file to validate."),
    ] = Path(".cicd-audit.toml"),
    format: FormatOption = "human",
) -> None:
    """Validate a config file and report the checks it leaves active."""
    output_format = _output_format(format)
    app_config = _load_config_or_raise(repo, config_file)
    active_ids = _build_configured_catalog_or_raise(app_config).ids()

    if output_format == "json":
        typer.echo(
            json.dumps(
                {"ok": True, "source": app_config.source, "active_check_ids": active_ids},
                sort_keys=True,
            )
        )
        return
    typer.echo(f"Config is valid: {app_config.source}")
    typer.echo(f"- active checks ({len(active_ids)}): {', '.join(active_ids)}")


def main() -> None:
    """Console script entrypoint."""
    app()


def _output_format(raw: str) -> str:
    value = raw.lower()
    if value not in OUTPUT_FORMATS:
        raise typer.BadParameter(
            f"format must be one of: {', '.join(OUTPUT_FORMATS)}", param_hint="--format"
        )
    return value


def _resolve_snapshot(*, repo: Path, snapshot_file: Path | None) -> RepositorySnapshot:
    if snapshot_file is None:
        if not repo.is_dir():
            raise typer.BadParameter(f"Repository path is not a directory: {repo}", param_hint="--repo")
        return collect_local_snapshot(repo)

    if not snapshot_file.is_file():
        raise typer.BadParameter(
            f"Snapshot file does not exist: {snapshot_file}", param_hint="--snapshot"
        )
    try:
        return load_snapshot(snapshot_file)
    except SnapshotError as exc:
        raise typer.BadParameter(str(exc), param_hint="--snapshot") from exc


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _build_configured_catalog_or_raise(app_config: AppConfig) -> CheckCatalog:
    try:
        return catalog_from_config(app_config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config.checks") from exc
