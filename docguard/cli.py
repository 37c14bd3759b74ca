"""Command-line entry point for the docguard scanner."""

from __future__ import annotations

import argparse
import json
import os
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import structlog

from .config import AppConfig, load_config
from .engine import run_scan
from .errors import ConfigurationError, IssueFilingError
from .issues import FilingOutcome, file_issues, reconcile
from .issues.github import GitHubIssueTracker
from .links import HttpLinkResolver
from .logging import setup_logging
from .report import FORMATS, render, write_report
from .result import ScanResult, format_summary_table
from .rules import AREAS
from .rules.loader import load_rules
from .severity import Category

logger = structlog.get_logger(__name__)

SEVERITY_CHOICES = ("critical", "high", "medium", "low", "all")
SYNTAX_ONLY_CATEGORIES = (Category.FORBIDDEN_PATTERN, Category.CODE_SYNTAX)
USAGE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docguard",
        description="Compliance scanner and quality scorer for documentation corpora",
    )
    parser.add_argument(
        "--area",
        choices=[*AREAS, "all"],
        default="all",
        help="Only run rules of this documentation area.",
    )
    parser.add_argument(
        "--format",
        dest="report_format",
        choices=list(FORMATS),
        default="detailed",
        help="Report rendering mode (defaults to detailed).",
    )
    parser.add_argument(
        "--severity",
        choices=list(SEVERITY_CHOICES),
        default="all",
        help="Only list findings of this severity in the report.",
    )
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Score only: skip the report and issue filing.",
    )
    parser.add_argument(
        "--syntax-only",
        action="store_true",
        help="Only run forbidden-pattern and code-syntax rules. Implies --quick.",
    )
    parser.add_argument(
        "--no-issues",
        action="store_true",
        help="Never file tracker issues, even when enabled in the config.",
    )
    parser.add_argument("--config", default=None, help="Path to docguard.yaml.")
    parser.add_argument(
        "--root",
        dest="roots",
        action="append",
        default=[],
        help="Corpus root directory (repeatable; overrides the config).",
    )
    parser.add_argument("--rules", default=None, help="Path to a versioned rules YAML file.")
    parser.add_argument("--reports-dir", default=None, help="Directory receiving timestamped reports.")
    parser.add_argument("--workers", type=int, default=None, help="Evaluation thread pool size.")
    parser.add_argument(
        "--check-external-links",
        action="store_true",
        help="Resolve http(s) links over the network.",
    )
    parser.add_argument(
        "--out",
        "--output",
        dest="output_path",
        default=None,
        help="Path to write the scan result as JSON (e.g., artifacts/scan.json).",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Log level for stderr output.",
    )
    return parser


@contextmanager
def cancel_on_interrupt() -> Iterator[threading.Event]:
    """Turn the first Ctrl-C into a cancellation request instead of a traceback."""

    event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _handler(signum, frame):
        logger.warning("scan_interrupted")
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield event
    finally:
        signal.signal(signal.SIGINT, previous)


def write_output(result: ScanResult, output_path: Optional[str]) -> None:
    print(format_summary_table(result))
    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        print(f"\nResult written to {output_path}")


def file_tracker_issues(result: ScanResult, config: AppConfig) -> Optional[FilingOutcome]:
    """File one issue per new severity tier when the tracker is configured."""

    settings = config.issues
    if not settings.enabled:
        return None
    if not result.complete:
        # Dedup keys of a partial result differ from a full scan's.
        logger.warning("issue_filing_skipped", reason="scan incomplete")
        return None
    if not settings.repository:
        logger.warning("issue_filing_skipped", reason="no repository configured")
        return None
    token = os.getenv(settings.token_env)
    if not token:
        logger.warning("issue_filing_skipped", reason=f"{settings.token_env} is not set")
        return None

    try:
        tracker = GitHubIssueTracker(
            settings.repository,
            token,
            api_url=settings.api_url,
            timeout=settings.timeout,
        )
    except ValueError as exc:
        return FilingOutcome(errors=(str(exc),))
    try:
        try:
            existing = tracker.list_open(settings.label)
        except IssueFilingError as exc:
            logger.warning("issue_listing_failed", error=str(exc))
            return FilingOutcome(errors=(f"Could not list open issues: {exc}",))
        requests = reconcile(result, existing, severities=settings.severities, label=settings.label)
        return file_issues(requests, tracker)
    finally:
        tracker.close()


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as exc:
        print(f"docguard: {exc}", file=sys.stderr)
        return USAGE_ERROR
    setup_logging(args.log_level or config.log_level)

    quick = args.quick or args.syntax_only
    workers = args.workers if args.workers is not None else config.workers
    if workers < 1:
        print("docguard: --workers must be at least 1", file=sys.stderr)
        return USAGE_ERROR

    resolver: Optional[HttpLinkResolver] = None
    try:
        registry = load_rules(args.rules or config.rules_path)
        registry = registry.select(
            area=args.area,
            categories=SYNTAX_ONLY_CATEGORIES if args.syntax_only else None,
        )
        if args.check_external_links or config.links.check_external:
            resolver = HttpLinkResolver(timeout=config.links.timeout)
        with cancel_on_interrupt() as cancel_event:
            result = run_scan(
                args.roots or list(config.roots),
                registry,
                extensions=config.extensions,
                ignore_dirs=config.ignore_dirs,
                link_resolver=resolver,
                workers=workers,
                cancel_event=cancel_event,
            )
    except ConfigurationError as exc:
        print(f"docguard: {exc}", file=sys.stderr)
        return USAGE_ERROR
    finally:
        if resolver is not None:
            resolver.close()

    write_output(result, args.output_path)
    if quick:
        return result.exit_code()

    metadata = {}
    if not args.no_issues:
        outcome = file_tracker_issues(result, config)
        if outcome is not None:
            metadata["issues_created"] = list(outcome.created)
            metadata["issue_filing_errors"] = list(outcome.errors)
            for error in outcome.errors:
                print(f"WARNING: issue filing failed: {error}")

    report = render(
        result,
        fmt=args.report_format,
        severity=args.severity,
        scope=args.area,
        metadata=metadata,
    )
    path = write_report(report, args.reports_dir or config.reports_dir)
    print(f"\nReport written to {path}")
    return result.exit_code()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
