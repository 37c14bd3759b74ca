"""Markdown report rendering.

Every number in a report is read from the :class:`ScanResult` it is given;
the renderer never recounts findings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import groupby
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from .result import Finding, ScanResult
from .scoring import status_tier
from .severity import SEVERITY_ORDER, Severity

logger = structlog.get_logger(__name__)

FORMATS = ("detailed", "summary", "checklist")
REPORT_TITLE = "Documentation Quality Report"
REPORT_FILENAME = "quality-report-{stamp}.md"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

TIER_NOTES = {
    "Excellent": "Production ready",
    "Good": "Minor improvements needed",
    "Fair": "Significant improvements needed",
    "Poor": "Major revision required",
}

SEVERITY_GUIDANCE = {
    Severity.CRITICAL: "Critical findings require immediate attention",
    Severity.HIGH: "High findings should be fixed before release",
    Severity.MEDIUM: "Medium findings are improvement opportunities",
    Severity.LOW: "Low findings are informational and do not affect the score",
}


@dataclass(frozen=True)
class Report:
    title: str
    fmt: str
    text: str
    score: int
    tier: str
    metadata: Mapping[str, object] = field(default_factory=dict)


def render(
    scan_result: ScanResult,
    *,
    fmt: str = "detailed",
    severity: str = "all",
    generated_at: Optional[datetime] = None,
    scope: str = "all",
    metadata: Optional[Mapping[str, object]] = None,
) -> Report:
    """Render ``scan_result`` as Markdown.

    ``severity`` narrows the listed findings only; the summary and the
    breakdown always describe the full result.
    """

    if fmt not in FORMATS:
        raise ValueError(f"Unknown report format: {fmt}")
    listed = _filter_findings(scan_result, severity)
    generated_at = generated_at or datetime.now(timezone.utc)
    tier = status_tier(scan_result.score)
    meta: Dict[str, object] = dict(metadata or {})

    lines: List[str] = [f"# {REPORT_TITLE}", f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}", ""]
    lines.extend(_executive_summary(scan_result, tier))
    lines.extend(_breakdown(scan_result))
    lines.extend(_caveats(scan_result))

    if fmt == "detailed":
        lines.extend(_recommendations(scan_result))
        lines.extend(_finding_sections(listed, severity))
    elif fmt == "checklist":
        lines.extend(_checklist(listed, severity))

    lines.extend(_footer(scope, severity, meta))
    return Report(
        title=REPORT_TITLE,
        fmt=fmt,
        text="\n".join(lines).rstrip() + "\n",
        score=scan_result.score,
        tier=tier,
        metadata=meta,
    )


def write_report(report: Report, reports_dir: str | Path, timestamp: Optional[datetime] = None) -> Path:
    """Write ``report`` under ``reports_dir`` with a sortable UTC timestamp in the name."""

    directory = Path(reports_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / REPORT_FILENAME.format(stamp=utc_stamp(timestamp))
    path.write_text(report.text, encoding="utf-8")
    logger.info("report_written", path=str(path), fmt=report.fmt, score=report.score)
    return path


def utc_stamp(timestamp: Optional[datetime] = None) -> str:
    moment = timestamp or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


# ----------------- sections -----------------

def _executive_summary(result: ScanResult, tier: str) -> List[str]:
    status = "PASSED" if result.passed else "FAILED"
    lines = [
        "## Executive Summary",
        f"- **Overall Status**: {status}",
        f"- **Quality Score**: {result.score}/100",
        f"- **Tier**: {tier.upper()} - {TIER_NOTES[tier]}",
        f"- **Documents Checked**: {result.documents_scanned}",
        f"- **Total Findings**: {result.total}",
    ]
    if not result.complete:
        lines.append("- **Scan**: INCOMPLETE - cancelled before every document was evaluated")
    lines.append("")
    return lines


def _breakdown(result: ScanResult) -> List[str]:
    lines = ["## Breakdown", "", "| Severity | Count |", "| --- | ---: |"]
    lines.extend(f"| {name} | {count} |" for name, count in result.severity_rows())
    lines.extend(["", "| Category | Count |", "| --- | ---: |"])
    lines.extend(f"| {name} | {count} |" for name, count in result.category_rows())
    lines.append("")
    return lines


def _caveats(result: ScanResult) -> List[str]:
    if not result.caveats:
        return []
    lines = ["## Caveats"]
    lines.extend(f"- {caveat}" for caveat in result.caveats)
    lines.append("")
    return lines


def _recommendations(result: ScanResult) -> List[str]:
    lines = ["## Recommendations"]
    present = [severity for severity in SEVERITY_ORDER if result.count(severity)]
    if not present:
        lines.append("- No findings. Keep scheduling regular quality reviews.")
    for severity in present:
        lines.append(f"- {SEVERITY_GUIDANCE[severity]} ({result.count(severity)}).")
    lines.append("")
    return lines


def _finding_sections(findings: Sequence[Finding], severity: str) -> List[str]:
    lines = [_findings_heading(severity)]
    if not findings:
        lines.extend(["", "_No findings._", ""])
        return lines
    for tier, by_path in _grouped(findings):
        lines.extend(["", f"### {tier.value}"])
        for path, entries in by_path:
            lines.extend(["", f"#### `{path}`"])
            for finding in entries:
                location = f"line {finding.line_number}" if finding.line_number > 0 else "document"
                lines.append(f"- **{finding.rule_id}** ({finding.category.value}, {location}): {finding.message}")
    lines.append("")
    return lines


def _checklist(findings: Sequence[Finding], severity: str) -> List[str]:
    lines = [_findings_heading(severity)]
    if not findings:
        lines.extend(["", "- [x] No findings", ""])
        return lines
    for tier, by_path in _grouped(findings):
        lines.extend(["", f"### {tier.value}"])
        for path, entries in by_path:
            for finding in entries:
                lines.append(f"- [ ] `{finding.location}` {finding.rule_id}: {finding.message}")
    lines.append("")
    return lines


def _footer(scope: str, severity: str, metadata: Mapping[str, object]) -> List[str]:
    lines = ["---", f"**Review Scope**: {scope}", f"**Severity Filter**: {severity}"]
    errors = metadata.get("issue_filing_errors")
    if errors:
        lines.extend(["", "**Issue filing errors**:"])
        lines.extend(f"- {error}" for error in errors)  # type: ignore[union-attr]
    created = metadata.get("issues_created")
    if created:
        lines.append(f"**Issues created**: {', '.join(str(item) for item in created)}")  # type: ignore[union-attr]
    return lines


# ----------------- helpers -----------------

def _filter_findings(result: ScanResult, severity: str) -> List[Finding]:
    if severity == "all":
        return list(result.findings)
    wanted = Severity.parse(severity)
    return result.findings_for(wanted)


def _findings_heading(severity: str) -> str:
    if severity == "all":
        return "## Findings"
    return f"## Findings ({severity.lower()} only)"


def _grouped(findings: Sequence[Finding]):
    """Yield ``(severity, [(path, findings), ...])`` in severity then path order."""

    ordered = sorted(findings, key=lambda finding: (finding.severity.rank,) + finding.sort_key())
    for tier, tier_findings in groupby(ordered, key=lambda finding: finding.severity):
        by_path = [
            (path, list(entries))
            for path, entries in groupby(tier_findings, key=lambda finding: finding.document_path)
        ]
        yield tier, by_path
