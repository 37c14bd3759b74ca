"""Severity definitions for scan findings."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Enumerate the supported severity levels for findings."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Return an integer ranking, most severe first."""

        ordering = {
            Severity.CRITICAL: 0,
            Severity.HIGH: 1,
            Severity.MEDIUM: 2,
            Severity.LOW: 3,
        }
        return ordering[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unknown severity: {value!r}") from exc


class Category(str, Enum):
    """Rule categories, plus the pseudo-category used for evaluation failures."""

    FORBIDDEN_PATTERN = "ForbiddenPattern"
    REQUIRED_PATTERN_PRESENCE = "RequiredPatternPresence"
    STRUCTURAL_SECTION = "StructuralSection"
    LINK_INTEGRITY = "LinkIntegrity"
    CODE_SYNTAX = "CodeSyntax"
    EVALUATION_ERROR = "EvaluationError"

    @classmethod
    def parse(cls, value: str) -> "Category":
        text = str(value).strip()
        for member in cls:
            if text in (member.value, member.name, member.name.lower()):
                return member
        raise ValueError(f"Unknown rule category: {value!r}")


SEVERITY_ORDER = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
)

RULE_CATEGORIES = (
    Category.FORBIDDEN_PATTERN,
    Category.REQUIRED_PATTERN_PRESENCE,
    Category.STRUCTURAL_SECTION,
    Category.LINK_INTEGRITY,
    Category.CODE_SYNTAX,
)

CATEGORY_ORDER = RULE_CATEGORIES + (Category.EVALUATION_ERROR,)
