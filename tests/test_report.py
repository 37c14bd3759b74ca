from datetime import datetime, timezone

import pytest

from docguard.report import render, utc_stamp, write_report
from docguard.result import Finding
from docguard.scoring import aggregate
from docguard.severity import Category, Severity


def _finding(severity, path, line, rule_id, category=Category.FORBIDDEN_PATTERN):
    return Finding(rule_id, category, path, line, severity, f"{rule_id} message")


@pytest.fixture
def scan_result():
    findings = [
        _finding(Severity.CRITICAL, "docs/b.md", 4, "FPT001"),
        _finding(Severity.MEDIUM, "docs/a.md", 0, "STR001", Category.STRUCTURAL_SECTION),
        _finding(Severity.MEDIUM, "docs/a.md", 9, "LNK001", Category.LINK_INTEGRITY),
        _finding(Severity.LOW, "docs/c.md", 2, "CSX003", Category.CODE_SYNTAX),
    ]
    return aggregate(findings, documents_scanned=3, caveats=["Skipped missing corpus roots: .claude"])


def test_detailed_report_summarizes_and_groups(scan_result):
    report = render(scan_result, generated_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))

    assert report.score == 73
    assert report.tier == "Fair"
    assert "**Overall Status**: FAILED" in report.text
    assert "**Quality Score**: 73/100" in report.text
    assert "| CRITICAL | 1 |" in report.text
    assert "| LinkIntegrity | 1 |" in report.text
    assert "Skipped missing corpus roots: .claude" in report.text
    assert "## Recommendations" in report.text
    assert report.text.index("### CRITICAL") < report.text.index("### MEDIUM") < report.text.index("### LOW")
    assert "(StructuralSection, document)" in report.text


def test_severity_filter_limits_listed_findings_only(scan_result):
    report = render(scan_result, severity="medium")

    assert "**Total Findings**: 4" in report.text
    assert "FPT001 message" not in report.text
    assert "LNK001 message" in report.text


def test_summary_format_has_no_finding_list(scan_result):
    report = render(scan_result, fmt="summary")

    assert "## Executive Summary" in report.text
    assert "## Findings" not in report.text


def test_checklist_format_lists_tasks(scan_result):
    report = render(scan_result, fmt="checklist")

    assert "- [ ] `docs/b.md:4` FPT001: FPT001 message" in report.text
    assert "- [ ] `docs/a.md` STR001: STR001 message" in report.text


def test_incomplete_scan_is_marked():
    result = aggregate([], documents_scanned=1, complete=False)

    assert "INCOMPLETE" in render(result).text


def test_issue_filing_errors_appear_in_metadata(scan_result):
    report = render(scan_result, metadata={"issue_filing_errors": ["tracker down"]})

    assert "tracker down" in report.text
    assert report.metadata["issue_filing_errors"] == ["tracker down"]


def test_unknown_format_is_rejected(scan_result):
    with pytest.raises(ValueError):
        render(scan_result, fmt="html")


def test_write_report_uses_sortable_timestamp(tmp_path, scan_result):
    report = render(scan_result)
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    path = write_report(report, tmp_path / "reports", moment)

    assert path.name == "quality-report-20240102-030405.md"
    assert path.read_text(encoding="utf-8") == report.text
    assert utc_stamp(moment) < utc_stamp(datetime(2024, 1, 2, 3, 4, 6, tzinfo=timezone.utc))
