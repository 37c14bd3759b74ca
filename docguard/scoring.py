"""Severity aggregation and the quality score."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping, Sequence

from .result import Finding, ScanResult
from .severity import CATEGORY_ORDER, SEVERITY_ORDER, Severity

CRITICAL_WEIGHT = 25
HIGH_WEIGHT = 10
# Medium findings: linear up to the cap, then one point per divisor. Empirical.
MEDIUM_LINEAR_CAP = 50
MEDIUM_TAIL_DIVISOR = 10
FLOOR_WITHOUT_SEVERE = 10

TIER_THRESHOLDS = (
    (95, "Excellent"),
    (85, "Good"),
    (70, "Fair"),
)
LOWEST_TIER = "Poor"


def compute_score(counts: Mapping[Severity, int]) -> int:
    """Return the 0-100 quality score for the given per-severity counts.

    Low findings carry no weight. Medium findings cost one point each up to
    ``MEDIUM_LINEAR_CAP``, then one point per ``MEDIUM_TAIL_DIVISOR`` beyond
    it. Without Critical or High findings the score never drops below
    ``FLOOR_WITHOUT_SEVERE``.
    """

    critical = counts.get(Severity.CRITICAL, 0)
    high = counts.get(Severity.HIGH, 0)
    medium = counts.get(Severity.MEDIUM, 0)
    for severity, value in ((Severity.CRITICAL, critical), (Severity.HIGH, high), (Severity.MEDIUM, medium)):
        if value < 0:
            raise ValueError(f"Negative {severity.value} count: {value}")

    score = 100
    score -= critical * CRITICAL_WEIGHT
    score -= high * HIGH_WEIGHT
    score -= min(medium, MEDIUM_LINEAR_CAP)
    score -= max(0, (medium - MEDIUM_LINEAR_CAP) // MEDIUM_TAIL_DIVISOR)

    floor = FLOOR_WITHOUT_SEVERE if critical == 0 and high == 0 else 0
    return max(floor, min(100, score))


def status_tier(score: int) -> str:
    for threshold, name in TIER_THRESHOLDS:
        if score >= threshold:
            return name
    return LOWEST_TIER


def aggregate(
    findings: Iterable[Finding],
    documents_scanned: int,
    *,
    complete: bool = True,
    caveats: Sequence[str] = (),
) -> ScanResult:
    """Reduce the complete finding set of a scan into a :class:`ScanResult`."""

    ordered = tuple(sorted(findings, key=Finding.sort_key))
    severity_counter = Counter(finding.severity for finding in ordered)
    category_counter = Counter(finding.category for finding in ordered)

    counts_by_severity = {severity: severity_counter.get(severity, 0) for severity in SEVERITY_ORDER}
    counts_by_category = {category: category_counter.get(category, 0) for category in CATEGORY_ORDER}

    return ScanResult(
        findings=ordered,
        counts_by_severity=counts_by_severity,
        counts_by_category=counts_by_category,
        score=compute_score(counts_by_severity),
        documents_scanned=documents_scanned,
        complete=complete,
        caveats=tuple(caveats),
    )
