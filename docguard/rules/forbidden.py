"""Flag deprecated patterns unless the surrounding lines mark a counter-example."""

from __future__ import annotations

from typing import List, Sequence

from docguard.corpus import Document
from docguard.result import Finding
from docguard.severity import Category

from . import Rule, ScanContext


class ForbiddenPatternEvaluator:
    """One finding per rule per offending line; each match gets its own window check."""

    category = Category.FORBIDDEN_PATTERN

    def evaluate(self, document: Document, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        for rule in rules:
            if not rule.scope.matches(document):
                continue
            for index, line in enumerate(document.lines):
                match = rule.search(line)
                if match is None:
                    continue
                if rule.window is not None and rule.window.suppresses(document.lines, index):
                    continue
                findings.append(
                    rule.finding(
                        document.path,
                        index + 1,
                        f"{rule.description}: found '{_excerpt(match.group(0))}'",
                    )
                )
        return findings

    def evaluate_corpus(self, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        return []


def _excerpt(text: str, limit: int = 80) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
