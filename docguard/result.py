"""Core result data structures for the scanner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from .severity import CATEGORY_ORDER, SEVERITY_ORDER, Category, Severity


@dataclass(frozen=True)
class Finding:
    """A single rule violation or completeness gap.

    ``line_number`` is 1-based; ``0`` marks a finding about the document as a
    whole (a missing section, a missing required document, ...).
    """

    rule_id: str
    category: Category
    document_path: str
    line_number: int
    severity: Severity
    message: str

    @property
    def location(self) -> str:
        if self.line_number > 0:
            return f"{self.document_path}:{self.line_number}"
        return self.document_path

    def sort_key(self) -> Tuple[str, int, str, str]:
        return (self.document_path, self.line_number, self.rule_id, self.message)

    def to_dict(self) -> Dict[str, object]:
        return {
            "rule_id": self.rule_id,
            "category": self.category.value,
            "document_path": self.document_path,
            "line_number": self.line_number,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class ScanResult:
    """Immutable outcome of one scan, produced by :func:`docguard.scoring.aggregate`."""

    findings: Tuple[Finding, ...]
    counts_by_severity: Mapping[Severity, int]
    counts_by_category: Mapping[Category, int]
    score: int
    documents_scanned: int
    complete: bool = True
    caveats: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return sum(self.counts_by_severity.values())

    @property
    def passed(self) -> bool:
        return self.counts_by_severity.get(Severity.CRITICAL, 0) == 0

    def count(self, severity: Severity) -> int:
        return self.counts_by_severity.get(severity, 0)

    def findings_for(self, severity: Severity) -> List[Finding]:
        return [finding for finding in self.findings if finding.severity is severity]

    def severity_rows(self) -> List[Tuple[str, int]]:
        """Return severity/count pairs ordered for reporting."""

        return [(severity.value, self.count(severity)) for severity in SEVERITY_ORDER]

    def category_rows(self) -> List[Tuple[str, int]]:
        return [
            (category.value, self.counts_by_category.get(category, 0))
            for category in CATEGORY_ORDER
            if category is not Category.EVALUATION_ERROR or self.counts_by_category.get(category, 0)
        ]

    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def to_dict(self) -> Dict[str, object]:
        return {
            "score": self.score,
            "documents_scanned": self.documents_scanned,
            "complete": self.complete,
            "passed": self.passed,
            "counts_by_severity": {severity.value.lower(): self.count(severity) for severity in SEVERITY_ORDER},
            "counts_by_category": {category: count for category, count in self.category_rows()},
            "caveats": list(self.caveats),
            "findings": [finding.to_dict() for finding in self.findings],
        }


def format_summary_table(result: ScanResult, max_findings: int = 5) -> str:
    """Create a human-readable summary table for console output."""

    lines: List[str] = []
    lines.append("Scan Summary")
    lines.append("=" * 40)
    header = f"{'Severity':<10} | {'Count':>5}"
    lines.append(header)
    lines.append("-" * len(header))
    for severity, count in result.severity_rows():
        lines.append(f"{severity:<10} | {count:>5}")
    lines.append("-" * len(header))
    status = "PASS" if result.passed else "FAIL"
    lines.append(f"Status    : {status}")
    lines.append(f"Score     : {result.score}/100")
    lines.append(f"Findings  : {result.total}")
    lines.append(f"Documents : {result.documents_scanned}")
    if not result.complete:
        lines.append("Scan      : INCOMPLETE (cancelled before all documents were evaluated)")

    top = sorted(result.findings, key=lambda finding: (finding.severity.rank,) + finding.sort_key())
    top = top[:max_findings]
    if top:
        lines.append("")
        lines.append("Top Findings")
        lines.append("-" * 40)
        for finding in top:
            lines.append(f"[{finding.severity.value}] {finding.rule_id} {finding.message}")
            lines.append(f"  Location: {finding.location}")
    return "\n".join(lines)
