"""Configuration loading for cicd-audit."""

from __future__ import annotations

import tomllib
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cicd_audit.catalog import CheckCatalog, default_catalog

CONFIG_FILENAMES = (".cicd-audit.toml", "cicd-audit.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("cicd_audit", "cicd-audit")

FORMATS = {"human", "json"}
LOG_LEVELS = {"debug", "info", "warning", "error"}


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    fail_below: int | None = None
    workers: int = 1
    log_level: str = "warning"
    check_enable: list[str] | None = None
    check_disable: list[str] = field(default_factory=list)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "fail_below": self.fail_below,
            "workers": self.workers,
            "log_level": self.log_level,
            "checks": {
                "enable": list(self.check_enable) if self.check_enable is not None else None,
                "disable": list(self.check_disable),
            },
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Resolve the active config.

    An explicit ``config_path`` wins (relative paths are taken from ``repo``).
    Otherwise the first of ``CONFIG_FILENAMES`` found in the repository is used,
    then a ``[tool.cicd_audit]`` table in ``pyproject.toml``. Defaults apply
    when none of them exist.
    """
    root = repo.resolve()
    if config_path is not None:
        explicit = config_path if config_path.is_absolute() else root / config_path
        if not explicit.exists():
            raise ValueError(f"Config file does not exist: {explicit}")
        return _from_mapping(_config_mapping(explicit) or {}, source=str(explicit))

    for candidate in _candidate_paths(root):
        mapping = _config_mapping(candidate)
        if mapping is not None:
            return _from_mapping(mapping, source=str(candidate))
    return AppConfig()


def build_catalog(
    *,
    enabled_check_ids: list[str] | None = None,
    disabled_check_ids: list[str] | None = None,
) -> CheckCatalog:
    """Build the catalog applying enable/disable filters, keeping catalog order."""
    catalog = default_catalog()
    known = set(catalog.ids())
    requested = set(enabled_check_ids or []) | set(disabled_check_ids or [])
    unknown = sorted(requested - known)
    if unknown:
        raise ValueError(f"Unknown check ids: {', '.join(unknown)}")

    if enabled_check_ids is not None:
        catalog = catalog.subset(enabled_check_ids)
    if disabled_check_ids:
        catalog = catalog.without(disabled_check_ids)
    return catalog


def catalog_from_config(config: AppConfig) -> CheckCatalog:
    return build_catalog(
        enabled_check_ids=config.check_enable,
        disabled_check_ids=config.check_disable,
    )


def default_config_template() -> str:
    """Return a starter config template users can customize."""
    catalog = default_catalog()
    lines = [
        'format = "human"',
        "fail_below = 70",
        "workers = 4",
        'log_level = "warning"',
        "",
        "[checks]",
        "# enable = [",
    ]
    lines.extend(f'#   "{check_id}",' for check_id in catalog.ids())
    lines.extend(
        [
            "# ]",
            'disable = ["quality_gate"]',
            "",
        ]
    )
    return "\n".join(lines)


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc


def _candidate_paths(root: Path) -> Iterator[Path]:
    for filename in (*CONFIG_FILENAMES, PYPROJECT_FILENAME):
        path = root / filename
        if path.is_file():
            yield path


def _config_mapping(path: Path) -> dict[str, Any] | None:
    """Return the config table of ``path``.

    Dedicated files may nest their keys under ``[tool.cicd_audit]`` or keep
    them at the top level. ``pyproject.toml`` only counts when that table is
    present and non-empty; ``None`` means "keep looking".
    """
    document = _load_toml(path)
    section = _tool_section(document)
    if path.name == PYPROJECT_FILENAME:
        return section or None
    return section if section is not None else document


def _tool_section(document: dict[str, Any]) -> dict[str, Any] | None:
    tool = document.get("tool")
    if not isinstance(tool, dict):
        return None
    return next(
        (tool[key] for key in PYPROJECT_TOOL_KEYS if isinstance(tool.get(key), dict)),
        None,
    )


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    checks_mapping = _as_table(mapping.get("checks"), "checks")

    raw_fail = mapping.get("fail_below")
    if raw_fail is None:
        fail_value: int | None = None
    else:
        fail_value = _as_int(raw_fail, "fail_below")
        if not 0 <= fail_value <= 100:
            raise ValueError("fail_below must be between 0 and 100")

    workers = _as_int(mapping.get("workers", 1), "workers")
    if workers < 1:
        raise ValueError("workers must be >= 1")

    check_enable = _as_str_list_or_none(checks_mapping.get("enable"), "checks.enable")
    check_disable = _as_str_list(checks_mapping.get("disable"), "checks.disable")
    # Fail fast on unknown check ids.
    build_catalog(enabled_check_ids=check_enable, disabled_check_ids=check_disable)

    return AppConfig(
        format=_as_choice(mapping.get("format", "human"), FORMATS, "format"),
        fail_below=fail_value,
        workers=workers,
        log_level=_as_choice(mapping.get("log_level", "warning"), LOG_LEVELS, "log_level"),
        check_enable=check_enable,
        check_disable=check_disable,
        source=source,
    )


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    raise ValueError(f"{field_name} must be a table/object")


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ValueError(f"{field_name} must be a list of strings")


def _as_str_list_or_none(value: Any, field_name: str) -> list[str] | None:
    return None if value is None else _as_str_list(value, field_name)


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    choice = str(raw).strip().lower()
    if choice in allowed:
        return choice
    raise ValueError(f"{field_name} must be one of: {', '.join(sorted(allowed))}")


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    raise ValueError(f"{field_name} must be an integer")
