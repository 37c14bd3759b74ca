"""Issue reconciliation: turn severity buckets into deduplicated tracker issues."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

import structlog

from docguard.errors import IssueFilingError
from docguard.result import Finding, ScanResult
from docguard.severity import SEVERITY_ORDER, Severity

logger = structlog.get_logger(__name__)

DEFAULT_LABEL = "docguard"
DEDUP_MARKER = "<!-- docguard:dedup-key={key} -->"
DEDUP_MARKER_PATTERN = re.compile(r"<!--\s*docguard:dedup-key=(?P<key>[A-Za-z0-9_\-]+)\s*-->")
MAX_BODY_FINDINGS = 50


@dataclass(frozen=True)
class IssueRequest:
    title: str
    body: str
    severity: Severity
    dedup_key: str
    labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OpenIssue:
    dedup_key: str
    id: str


@dataclass(frozen=True)
class FilingOutcome:
    created: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors


class IssueTracker(Protocol):
    def list_open(self, label: str) -> List[OpenIssue]:
        """Return open issues carrying ``label`` whose body embeds a dedup key."""

    def create(self, request: IssueRequest) -> str:
        """Create an issue and return its tracker id."""


def dedup_key_for(severity: Severity, rule_ids: Iterable[str]) -> str:
    """Stable key for one severity tier: unchanged rule ids give an unchanged key."""

    tier = severity.value.lower()
    joined = ",".join(sorted(set(rule_ids)))
    digest = hashlib.sha256(f"{tier}:{joined}".encode("utf-8")).hexdigest()[:16]
    return f"{tier}-{digest}"


def parse_dedup_key(body: Optional[str]) -> Optional[str]:
    if not body:
        return None
    match = DEDUP_MARKER_PATTERN.search(body)
    return match.group("key") if match else None


def reconcile(
    scan_result: ScanResult,
    existing_open_issues: Iterable[OpenIssue],
    *,
    severities: Sequence[Severity] = SEVERITY_ORDER,
    label: str = DEFAULT_LABEL,
) -> List[IssueRequest]:
    """Return at most one request per severity tier, skipping tiers already open."""

    open_keys = {issue.dedup_key for issue in existing_open_issues}
    wanted = set(severities)
    requests: List[IssueRequest] = []

    for severity in SEVERITY_ORDER:
        if severity not in wanted:
            continue
        findings = scan_result.findings_for(severity)
        if not findings:
            continue
        key = dedup_key_for(severity, (finding.rule_id for finding in findings))
        if key in open_keys:
            logger.info("issue_already_open", severity=severity.value, dedup_key=key)
            continue
        requests.append(
            IssueRequest(
                title=_title(severity, findings),
                body=_body(severity, findings, key, scan_result),
                severity=severity,
                dedup_key=key,
                labels=(label, f"severity:{severity.value.lower()}"),
            )
        )
    return requests


def file_issues(requests: Sequence[IssueRequest], tracker: IssueTracker) -> FilingOutcome:
    """Create every request; tracker failures are collected, never raised."""

    created: List[str] = []
    errors: List[str] = []
    for request in requests:
        try:
            issue_id = tracker.create(request)
        except IssueFilingError as exc:
            logger.warning("issue_filing_failed", dedup_key=request.dedup_key, error=str(exc))
            errors.append(f"{request.title}: {exc}")
            continue
        logger.info("issue_created", id=issue_id, dedup_key=request.dedup_key)
        created.append(issue_id)
    return FilingOutcome(created=tuple(created), errors=tuple(errors))


def _title(severity: Severity, findings: Sequence[Finding]) -> str:
    rule_count = len({finding.rule_id for finding in findings})
    noun = "finding" if len(findings) == 1 else "findings"
    return f"[docguard] {len(findings)} {severity.value.lower()} {noun} across {rule_count} rule(s)"


def _body(severity: Severity, findings: Sequence[Finding], key: str, scan_result: ScanResult) -> str:
    lines = [
        f"docguard found {len(findings)} {severity.value.lower()} finding(s).",
        "",
        f"- Quality score: {scan_result.score}/100",
        f"- Documents scanned: {scan_result.documents_scanned}",
        f"- Rules: {', '.join(sorted({finding.rule_id for finding in findings}))}",
        "",
        "| Rule | Location | Message |",
        "| --- | --- | --- |",
    ]
    for finding in findings[:MAX_BODY_FINDINGS]:
        message = finding.message.replace("|", "\\|")
        lines.append(f"| {finding.rule_id} | `{finding.location}` | {message} |")
    if len(findings) > MAX_BODY_FINDINGS:
        lines.append("")
        lines.append(f"...and {len(findings) - MAX_BODY_FINDINGS} more. See the quality report for the full list.")
    lines.append("")
    lines.append(DEDUP_MARKER.format(key=key))
    return "\n".join(lines)
