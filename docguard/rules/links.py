"""Validate markdown link targets against the corpus and, optionally, the network."""

from __future__ import annotations

import posixpath
import re
from typing import Iterator, List, Pattern, Sequence, Tuple
from urllib.parse import unquote

import structlog

from docguard.corpus import Document
from docguard.errors import ResolutionTimeout
from docguard.result import Finding
from docguard.severity import Category

from . import TARGET_EXTERNAL, TARGET_RELATIVE, Rule, ScanContext
from .structural import FENCE_PATTERN

logger = structlog.get_logger(__name__)

LINK_PATTERN = re.compile(r"!?\[[^\]]*\]\((?P<target>[^)\s]+)(?:\s+\"[^\"]*\")?\)")
SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
EXTERNAL_SCHEMES = ("http://", "https://")


class LinkIntegrityEvaluator:
    """Relative targets must exist in the corpus; external ones go through the injected resolver."""

    category = Category.LINK_INTEGRITY

    def evaluate(self, document: Document, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        for rule in rules:
            if not rule.scope.matches(document):
                continue
            for line_number, target in iter_link_targets(document.lines, rule.pattern or LINK_PATTERN):
                if rule.target == TARGET_RELATIVE:
                    finding = self._check_relative(rule, document, line_number, target, context)
                elif rule.target == TARGET_EXTERNAL:
                    finding = self._check_external(rule, document, line_number, target, context)
                else:
                    finding = None
                if finding is not None:
                    findings.append(finding)
        return findings

    def evaluate_corpus(self, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        return []

    def _check_relative(self, rule: Rule, document: Document, line_number: int, target: str, context: ScanContext):
        if not is_relative_target(target):
            return None
        resolved = resolve_relative(document.directory, target)
        if not resolved or context.corpus.exists(resolved):
            return None
        return rule.finding(document.path, line_number, f"Broken internal link '{target}' (resolved to {resolved})")

    def _check_external(self, rule: Rule, document: Document, line_number: int, target: str, context: ScanContext):
        if not target.lower().startswith(EXTERNAL_SCHEMES):
            return None
        resolver = context.link_resolver
        if resolver is None:
            return None
        try:
            reachable = resolver.resolve(target)
        except ResolutionTimeout as exc:
            logger.info("link_resolution_timeout", url=target, attempts=exc.attempts, document=document.path)
            return rule.finding(document.path, line_number, f"External link '{target}' timed out ({exc.attempts} attempts)")
        if reachable:
            return None
        return rule.finding(document.path, line_number, f"External link '{target}' is unreachable")


def iter_link_targets(lines: Sequence[str], pattern: Pattern[str] = LINK_PATTERN) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, target)`` for each link outside fenced code."""

    in_fence = False
    for index, line in enumerate(lines):
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        for match in pattern.finditer(line):
            target = match.group("target") if "target" in pattern.groupindex else match.group(1)
            if target:
                yield index + 1, target.strip("<>")


def is_relative_target(target: str) -> bool:
    if not target or target.startswith(("#", "/")):
        return False
    return SCHEME_PATTERN.match(target) is None


def resolve_relative(directory: str, target: str) -> str:
    """Resolve ``target`` against ``directory``, dropping fragment and query."""

    path = target.split("#", 1)[0].split("?", 1)[0]
    if not path:
        return ""
    joined = posixpath.join(directory, unquote(path)) if directory else unquote(path)
    return posixpath.normpath(joined)
