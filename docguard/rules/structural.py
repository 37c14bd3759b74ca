"""Check template documents for their required section headings."""

from __future__ import annotations

import re
from typing import List, Sequence, Set

from docguard.corpus import Document
from docguard.result import Finding
from docguard.severity import Category

from . import Rule, ScanContext

HEADING_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s+(?P<title>.+?)\s*#*\s*$")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")
ALTERNATIVE_SEPARATOR = "|"


class StructuralSectionEvaluator:
    """One finding per missing section; ``required_documents`` are checked once per corpus."""

    category = Category.STRUCTURAL_SECTION

    def evaluate(self, document: Document, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        applicable = [rule for rule in rules if rule.sections and rule.scope.matches(document)]
        if not applicable:
            return findings

        headings = extract_headings(document.lines)
        for rule in applicable:
            for section in rule.sections:
                alternatives = [alt.strip().lower() for alt in section.split(ALTERNATIVE_SEPARATOR) if alt.strip()]
                if any(alt in heading for heading in headings for alt in alternatives):
                    continue
                label = " / ".join(alt.strip() for alt in section.split(ALTERNATIVE_SEPARATOR) if alt.strip())
                findings.append(rule.finding(document.path, 0, f"Missing required section '{label}'"))
        return findings

    def evaluate_corpus(self, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        for rule in rules:
            for required in rule.required_documents:
                if context.corpus.exists_in_roots(required):
                    continue
                findings.append(rule.finding(required, 0, f"{rule.description}: required document is missing"))
        return findings


def extract_headings(lines: Sequence[str]) -> Set[str]:
    """Return lower-cased ATX heading titles found outside fenced code."""

    headings: Set[str] = set()
    in_fence = False
    for line in lines:
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = HEADING_PATTERN.match(line)
        if match:
            headings.add(match.group("title").strip().lower())
    return headings
