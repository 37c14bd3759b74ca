import json

import pytest

from docguard import cli
from docguard.config import AppConfig, IssueSettings
from docguard.result import Finding
from docguard.scoring import aggregate
from docguard.severity import Category, Severity

GEN1_GUIDE = """# Data access

```ts
import { API } from 'aws-amplify';
```
"""

COUNTER_EXAMPLE_GUIDE = """# Migration

<!-- counter-example: the old way -->
```ts
import { API } from 'aws-amplify';
```
"""


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("DOCGUARD_LOG_LEVEL", "DOCGUARD_WORKERS", "DOCGUARD_REPORTS_DIR"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "docs").mkdir()
    return tmp_path


def test_cli_fails_on_critical_pattern_and_writes_report(workspace, capsys):
    (workspace / "docs" / "guide.md").write_text(GEN1_GUIDE, encoding="utf-8")
    output_path = workspace / "artifacts" / "scan.json"

    exit_code = cli.main(
        ["--root", "docs", "--area", "docs", "--reports-dir", "reports", "--out", str(output_path)]
    )

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "Scan Summary" in captured.out
    assert "Report written to" in captured.out
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["score"] <= 75
    assert data["counts_by_severity"]["critical"] == 1
    assert data["passed"] is False
    reports = list((workspace / "reports").glob("quality-report-*.md"))
    assert len(reports) == 1
    assert "FAILED" in reports[0].read_text(encoding="utf-8")


def test_cli_counter_example_marker_passes_clean(workspace, capsys):
    (workspace / "docs" / "migration.md").write_text(COUNTER_EXAMPLE_GUIDE, encoding="utf-8")
    output_path = workspace / "scan.json"

    exit_code = cli.main(["--root", "docs", "--area", "docs", "--quick", "--out", str(output_path)])

    captured = capsys.readouterr()
    assert exit_code == 0
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["findings"] == []
    assert data["score"] == 100
    assert "Report written to" not in captured.out
    assert not (workspace / "quality-reports").exists()


def test_cli_syntax_only_skips_structural_rules(workspace, capsys):
    (workspace / "docs" / "guide.md").write_text("# Guide\n[broken](missing.md)\n", encoding="utf-8")
    output_path = workspace / "scan.json"

    exit_code = cli.main(["--root", "docs", "--syntax-only", "--out", str(output_path)])

    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert exit_code == 0
    assert data["findings"] == []
    assert not (workspace / "quality-reports").exists()


def test_cli_broken_link_is_medium(workspace, capsys):
    (workspace / "docs" / "guide.md").write_text("# Guide\n[broken](missing.md)\n", encoding="utf-8")
    output_path = workspace / "scan.json"

    exit_code = cli.main(["--root", "docs", "--area", "docs", "--quick", "--out", str(output_path)])

    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert exit_code == 0
    assert data["counts_by_category"]["LinkIntegrity"] == 1
    assert data["counts_by_severity"]["medium"] == 1
    assert data["score"] == 99


def test_cli_missing_root_is_usage_error(workspace, capsys):
    exit_code = cli.main(["--root", "nowhere", "--quick"])

    assert exit_code == 2
    assert "Corpus root not found" in capsys.readouterr().err


def test_cli_missing_config_is_usage_error(workspace, capsys):
    exit_code = cli.main(["--config", "absent.yaml"])

    assert exit_code == 2


def test_cli_rejects_unknown_format(workspace):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--format", "html"])

    assert excinfo.value.code == 2


def test_cli_skips_issue_filing_without_token(workspace, capsys, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    (workspace / "docguard.yaml").write_text(
        "roots: [docs]\nissues:\n  enabled: true\n  repository: acme/docs\n", encoding="utf-8"
    )
    (workspace / "docs" / "guide.md").write_text(GEN1_GUIDE, encoding="utf-8")

    exit_code = cli.main(["--area", "docs", "--format", "summary"])

    assert exit_code == 1
    assert "Report written to" in capsys.readouterr().out


def test_incomplete_scan_files_no_issues(monkeypatch):
    class UnexpectedTracker:
        def __init__(self, *args, **kwargs):
            raise AssertionError("tracker must not be contacted")

    monkeypatch.setattr(cli, "GitHubIssueTracker", UnexpectedTracker)
    monkeypatch.setenv("GITHUB_TOKEN", "token")
    config = AppConfig(issues=IssueSettings(enabled=True, repository="acme/docs"))
    finding = Finding("FPT001", Category.FORBIDDEN_PATTERN, "docs/a.md", 1, Severity.CRITICAL, "m")
    result = aggregate([finding], documents_scanned=1, complete=False)

    assert cli.file_tracker_issues(result, config) is None
