"""Flag documents that use none of the expected modern idioms."""

from __future__ import annotations

from typing import List, Sequence

from docguard.corpus import Document
from docguard.result import Finding
from docguard.severity import Category

from . import Rule, ScanContext


class RequiredPatternEvaluator:
    """Absence check: evaluated once per in-scope document, never per line."""

    category = Category.REQUIRED_PATTERN_PRESENCE

    def evaluate(self, document: Document, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        for rule in rules:
            if not rule.scope.matches(document):
                continue
            if any(rule.search(line) for line in document.lines):
                continue
            findings.append(rule.finding(document.path, 0, f"{rule.description}: no matching content"))
        return findings

    def evaluate_corpus(self, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        return []
