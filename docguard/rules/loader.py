"""Load versioned rule definitions from YAML into a :class:`RuleRegistry`."""

from __future__ import annotations

import re
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple

import structlog
import yaml

from docguard.errors import ConfigurationError
from docguard.severity import Category, Severity

from . import AREAS, CHECK_BALANCED, CHECK_PATTERN, TARGET_EXTERNAL, TARGET_RELATIVE, DocumentScope, Rule
from .registry import RuleRegistry
from .window import DEFAULT_AFTER, DEFAULT_BEFORE, ExceptionWindow

logger = structlog.get_logger(__name__)

SUPPORTED_VERSIONS = (1,)
DEFAULT_RULES_RESOURCE = "default_rules.yaml"

DEFAULT_SEVERITIES = {
    Category.STRUCTURAL_SECTION: Severity.MEDIUM,
}
PATTERN_CATEGORIES = (
    Category.FORBIDDEN_PATTERN,
    Category.REQUIRED_PATTERN_PRESENCE,
)


def load_rules(path: str | Path | None = None) -> RuleRegistry:
    """Load rules from ``path``, or the bundled default rule set."""

    if path is None:
        text = resources.files("docguard.rules").joinpath(DEFAULT_RULES_RESOURCE).read_text(encoding="utf-8")
        source = f"<bundled {DEFAULT_RULES_RESOURCE}>"
    else:
        rules_path = Path(path)
        if not rules_path.exists():
            raise ConfigurationError(f"Rules file not found: {rules_path}")
        text = rules_path.read_text(encoding="utf-8")
        source = str(rules_path)

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in rules file {source}: {exc}") from exc

    registry = parse_rules(raw, source=source)
    logger.debug("rules_loaded", source=source, rules=len(registry), version=registry.version)
    return registry


def parse_rules(raw: Any, source: str = "<rules>") -> RuleRegistry:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Rules document {source} must be a mapping")

    version = raw.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise ConfigurationError(f"Unsupported rules version {version!r} in {source}")

    defaults = raw.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigurationError("'defaults' must be a mapping")

    entries = raw.get("rules")
    if not isinstance(entries, list) or not entries:
        raise ConfigurationError(f"Rules document {source} must contain a non-empty 'rules' list")

    rules: List[Rule] = []
    for item in entries:
        if not isinstance(item, dict):
            raise ConfigurationError("Each rule entry must be a mapping")
        rules.append(_parse_rule(item, defaults))
    return RuleRegistry(rules, version=int(version))


def _parse_rule(item: Dict[str, Any], defaults: Dict[str, Any]) -> Rule:
    missing = [key for key in ("id", "category", "description") if key not in item]
    if missing:
        raise ConfigurationError(f"Rule is missing keys: {', '.join(missing)}")

    rule_id = str(item["id"]).strip()
    try:
        category = Category.parse(item["category"])
    except ValueError as exc:
        raise ConfigurationError(f"Rule {rule_id}: {exc}") from exc

    severity = _parse_severity(rule_id, category, item)
    area = str(item.get("area", "docs")).strip().lower()
    if area not in AREAS:
        raise ConfigurationError(f"Rule {rule_id}: unknown area {area!r} (expected one of {', '.join(AREAS)})")

    patterns = _compile_patterns(rule_id, item)
    check = str(item.get("check", CHECK_PATTERN)).strip().lower()
    target = str(item.get("target", TARGET_RELATIVE)).strip().lower()

    if category in PATTERN_CATEGORIES and not patterns:
        raise ConfigurationError(f"Rule {rule_id}: '{category.value}' rules need a 'pattern' or 'patterns'")
    if category is Category.CODE_SYNTAX:
        if check not in (CHECK_PATTERN, CHECK_BALANCED):
            raise ConfigurationError(f"Rule {rule_id}: unknown check {check!r}")
        if check == CHECK_PATTERN and not patterns:
            raise ConfigurationError(f"Rule {rule_id}: pattern checks need a 'pattern' or 'patterns'")
    if category is Category.LINK_INTEGRITY and target not in (TARGET_RELATIVE, TARGET_EXTERNAL):
        raise ConfigurationError(f"Rule {rule_id}: unknown link target {target!r}")

    sections = tuple(_string_list(rule_id, item.get("sections"), "sections"))
    required_documents = tuple(_string_list(rule_id, item.get("required_documents"), "required_documents"))
    if category is Category.STRUCTURAL_SECTION and not sections and not required_documents:
        raise ConfigurationError(f"Rule {rule_id}: structural rules need 'sections' or 'required_documents'")

    return Rule(
        id=rule_id,
        category=category,
        severity=severity,
        description=str(item["description"]).strip(),
        area=area,
        patterns=patterns,
        window=_parse_window(rule_id, category, item, defaults),
        scope=_parse_scope(rule_id, item.get("scope")),
        sections=sections,
        required_documents=required_documents,
        languages=tuple(lang.lower() for lang in _string_list(rule_id, item.get("languages"), "languages")),
        check=check,
        target=target,
    )


def _parse_severity(rule_id: str, category: Category, item: Dict[str, Any]) -> Severity:
    if "severity" not in item:
        if category is Category.LINK_INTEGRITY:
            return Severity.LOW if item.get("target") == TARGET_EXTERNAL else Severity.MEDIUM
        if category in DEFAULT_SEVERITIES:
            return DEFAULT_SEVERITIES[category]
        raise ConfigurationError(f"Rule {rule_id} is missing 'severity'")
    try:
        return Severity.parse(item["severity"])
    except ValueError as exc:
        raise ConfigurationError(f"Rule {rule_id}: {exc}") from exc


def _compile_patterns(rule_id: str, item: Dict[str, Any]) -> Tuple[Pattern[str], ...]:
    raw_patterns: List[str] = []
    if "pattern" in item:
        raw_patterns.append(str(item["pattern"]))
    raw_patterns.extend(_string_list(rule_id, item.get("patterns"), "patterns"))

    flags = re.IGNORECASE if item.get("ignore_case") else 0
    compiled: List[Pattern[str]] = []
    for text in raw_patterns:
        try:
            compiled.append(re.compile(text, flags))
        except re.error as exc:
            raise ConfigurationError(f"Rule {rule_id}: invalid pattern {text!r}: {exc}") from exc
    return tuple(compiled)


def _parse_window(
    rule_id: str,
    category: Category,
    item: Dict[str, Any],
    defaults: Dict[str, Any],
) -> Optional[ExceptionWindow]:
    """Forbidden-pattern rules get a window by default; other rules opt in with markers."""

    if "exception_markers" in item:
        markers = _string_list(rule_id, item.get("exception_markers"), "exception_markers")
    elif category is Category.FORBIDDEN_PATTERN:
        markers = _string_list(rule_id, defaults.get("exception_markers"), "defaults.exception_markers")
    else:
        return None

    window_raw = item.get("window", defaults.get("window")) or {}
    if not isinstance(window_raw, dict):
        raise ConfigurationError(f"Rule {rule_id}: 'window' must be a mapping")
    try:
        return ExceptionWindow(
            markers=frozenset(markers),
            before=int(window_raw.get("before", DEFAULT_BEFORE)),
            after=int(window_raw.get("after", DEFAULT_AFTER)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Rule {rule_id}: invalid window: {exc}") from exc


def _parse_scope(rule_id: str, raw: Any) -> DocumentScope:
    if raw is None:
        return DocumentScope()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Rule {rule_id}: 'scope' must be a mapping")
    return DocumentScope(
        paths=tuple(_string_list(rule_id, raw.get("paths"), "scope.paths")),
        tags=frozenset(tag.lower() for tag in _string_list(rule_id, raw.get("tags"), "scope.tags")),
        exclude=tuple(_string_list(rule_id, raw.get("exclude"), "scope.exclude")),
    )


def _string_list(rule_id: str, value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"Rule {rule_id}: '{name}' must be a list of strings")
    return [str(entry) for entry in value]
