"""Configuration loading: ``docguard.yaml`` plus environment overrides.

Environment variables:

- ``DOCGUARD_LOG_LEVEL``    (``DEBUG`` / ``INFO`` / ``WARNING`` / ``ERROR``)
- ``DOCGUARD_WORKERS``      (int; evaluation thread pool size)
- ``DOCGUARD_REPORTS_DIR``  (directory receiving timestamped reports)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .severity import SEVERITY_ORDER, Severity

DEFAULT_CONFIG_FILENAME = "docguard.yaml"
DEFAULT_ROOTS = ("docs", ".claude")
DEFAULT_EXTENSIONS = (".md",)
DEFAULT_IGNORE_DIRS = (".git", "node_modules", "__pycache__")
DEFAULT_REPORTS_DIR = "quality-reports"


@dataclass(frozen=True)
class LinkSettings:
    check_external: bool = False
    timeout: float = 5.0


@dataclass(frozen=True)
class IssueSettings:
    enabled: bool = False
    repository: Optional[str] = None
    token_env: str = "GITHUB_TOKEN"
    label: str = "docguard"
    api_url: str = "https://api.github.com"
    timeout: float = 10.0
    severities: Tuple[Severity, ...] = SEVERITY_ORDER


@dataclass(frozen=True)
class AppConfig:
    roots: Tuple[str, ...] = DEFAULT_ROOTS
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    ignore_dirs: Tuple[str, ...] = DEFAULT_IGNORE_DIRS
    reports_dir: str = DEFAULT_REPORTS_DIR
    rules_path: Optional[str] = None
    workers: int = 4
    log_level: str = "INFO"
    links: LinkSettings = field(default_factory=LinkSettings)
    issues: IssueSettings = field(default_factory=IssueSettings)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from ``path``, or from ``docguard.yaml`` when present.

    An explicitly requested file that does not exist is a configuration
    error; a missing default file simply yields the defaults.
    """

    if path is None:
        default = Path(DEFAULT_CONFIG_FILENAME)
        raw: Dict[str, Any] = _read_yaml(default) if default.exists() else {}
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        raw = _read_yaml(config_path)

    links_raw = _ensure_mapping(raw.get("links", {}), "links")
    issues_raw = _ensure_mapping(raw.get("issues", {}), "issues")

    links = LinkSettings(
        check_external=bool(links_raw.get("check_external", False)),
        timeout=_positive_float(links_raw.get("timeout", 5.0), "links.timeout"),
    )
    issues = IssueSettings(
        enabled=bool(issues_raw.get("enabled", False)),
        repository=_optional_str(issues_raw.get("repository")),
        token_env=str(issues_raw.get("token_env", "GITHUB_TOKEN")),
        label=str(issues_raw.get("label", "docguard")),
        api_url=str(issues_raw.get("api_url", "https://api.github.com")).rstrip("/"),
        timeout=_positive_float(issues_raw.get("timeout", 10.0), "issues.timeout"),
        severities=_parse_severities(issues_raw.get("severities")),
    )

    config = AppConfig(
        roots=tuple(_ensure_string_list(raw.get("roots", list(DEFAULT_ROOTS)), "roots")),
        extensions=tuple(_normalize_extensions(raw.get("extensions", list(DEFAULT_EXTENSIONS)))),
        ignore_dirs=tuple(_ensure_string_list(raw.get("ignore_dirs", list(DEFAULT_IGNORE_DIRS)), "ignore_dirs")),
        reports_dir=str(raw.get("reports_dir", DEFAULT_REPORTS_DIR)),
        rules_path=_optional_str(raw.get("rules_path")),
        workers=_positive_int(raw.get("workers", 4), "workers"),
        log_level=str(raw.get("log_level", "INFO")).upper(),
        links=links,
        issues=issues,
    )
    return _apply_env_overrides(config)


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    log_level = os.getenv("DOCGUARD_LOG_LEVEL")
    if log_level:
        config = replace(config, log_level=log_level.strip().upper())

    workers = os.getenv("DOCGUARD_WORKERS")
    if workers and workers.strip().isdigit():
        config = replace(config, workers=_positive_int(workers.strip(), "DOCGUARD_WORKERS"))

    reports_dir = os.getenv("DOCGUARD_REPORTS_DIR")
    if reports_dir:
        config = replace(config, reports_dir=reports_dir.strip())

    return config


# ----------------- helpers -----------------

def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config at {path} is not a mapping")
    return data


def _ensure_mapping(value: object, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{name}' must be a mapping")
    return value


def _ensure_string_list(value: object, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"'{name}' must be a list of strings")
    return [str(item) for item in value]


def _normalize_extensions(value: object) -> List[str]:
    extensions = _ensure_string_list(value, "extensions")
    if not extensions:
        raise ConfigurationError("'extensions' must not be empty")
    return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions]


def _parse_severities(value: object) -> Tuple[Severity, ...]:
    if value is None:
        return SEVERITY_ORDER
    names = _ensure_string_list(value, "issues.severities")
    try:
        return tuple(Severity.parse(name) for name in names)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _positive_int(value: object, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{name}' must be an integer") from exc
    if number < 1:
        raise ConfigurationError(f"'{name}' must be at least 1")
    return number


def _positive_float(value: object, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{name}' must be a number") from exc
    if number <= 0:
        raise ConfigurationError(f"'{name}' must be positive")
    return number
