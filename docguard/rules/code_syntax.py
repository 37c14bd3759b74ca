"""Lightweight checks on fenced code examples.

These are best-effort heuristics, not a parser: ``pattern`` rules flag
lines inside fenced blocks of the rule's languages, ``balanced`` rules
flag unbalanced ``()[]{}`` (ignoring string literals and comments) and
blocks that are never closed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from docguard.corpus import Document
from docguard.result import Finding
from docguard.severity import Category

from . import CHECK_BALANCED, CHECK_PATTERN, Rule, ScanContext

OPEN_FENCE = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})\s*(?P<info>[^`\s]*)")
PAIRS = {")": "(", "]": "[", "}": "{"}
OPENERS = set(PAIRS.values())
QUOTES = ("'", '"', "`")


@dataclass(frozen=True)
class CodeBlock:
    language: str
    start_line: int
    body: Tuple[Tuple[int, str], ...]
    closed: bool


def iter_code_blocks(lines: Sequence[str]) -> List[CodeBlock]:
    """Split a document into fenced code blocks with 1-based line numbers."""

    blocks: List[CodeBlock] = []
    index = 0
    while index < len(lines):
        match = OPEN_FENCE.match(lines[index])
        if not match:
            index += 1
            continue
        fence = match.group("fence")
        language = match.group("info").lower()
        start = index + 1
        body: List[Tuple[int, str]] = []
        closed = False
        index += 1
        while index < len(lines):
            stripped = lines[index].strip()
            if stripped.startswith(fence[0] * len(fence)) and not stripped.strip(fence[0]):
                closed = True
                index += 1
                break
            body.append((index + 1, lines[index]))
            index += 1
        blocks.append(CodeBlock(language=language, start_line=start, body=tuple(body), closed=closed))
    return blocks


class CodeSyntaxEvaluator:
    category = Category.CODE_SYNTAX

    def evaluate(self, document: Document, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        applicable = [rule for rule in rules if rule.scope.matches(document)]
        if not applicable:
            return findings

        blocks = iter_code_blocks(document.lines)
        for rule in applicable:
            languages = {language.lower() for language in rule.languages}
            for block in blocks:
                if languages and block.language not in languages:
                    continue
                if rule.check == CHECK_PATTERN:
                    findings.extend(self._check_pattern(rule, document, block))
                elif rule.check == CHECK_BALANCED:
                    finding = self._check_balanced(rule, document, block)
                    if finding is not None:
                        findings.append(finding)
        return findings

    def evaluate_corpus(self, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        return []

    def _check_pattern(self, rule: Rule, document: Document, block: CodeBlock) -> List[Finding]:
        findings: List[Finding] = []
        lines = document.lines
        for line_number, text in block.body:
            if rule.search(text) is None:
                continue
            if rule.window is not None and rule.window.suppresses(lines, line_number - 1):
                continue
            findings.append(rule.finding(document.path, line_number, f"{rule.description} ({block.language} example)"))
        return findings

    def _check_balanced(self, rule: Rule, document: Document, block: CodeBlock) -> Optional[Finding]:
        if not block.closed:
            return rule.finding(document.path, block.start_line, "Code block is never closed")
        problem = find_unbalanced(block.body)
        if problem is None:
            return None
        line_number, detail = problem
        return rule.finding(document.path, line_number, f"{rule.description}: {detail}")


def find_unbalanced(body: Sequence[Tuple[int, str]]) -> Optional[Tuple[int, str]]:
    """Return ``(line_number, detail)`` for the first delimiter problem, or None."""

    stack: List[Tuple[str, int]] = []
    quote: Optional[str] = None
    block_comment = False

    for line_number, text in body:
        position = 0
        while position < len(text):
            char = text[position]
            pair = text[position:position + 2]
            if block_comment:
                if pair == "*/":
                    block_comment = False
                    position += 1
            elif quote:
                if char == "\\":
                    position += 1
                elif char == quote:
                    quote = None
            elif pair == "//":
                break
            elif pair == "/*":
                block_comment = True
                position += 1
            elif char in QUOTES:
                quote = char
            elif char in OPENERS:
                stack.append((char, line_number))
            elif char in PAIRS:
                if not stack or stack[-1][0] != PAIRS[char]:
                    return line_number, f"unexpected '{char}'"
                stack.pop()
            position += 1
        if quote in ("'", '"'):
            # Single and double quoted strings end with the line.
            quote = None

    if stack:
        opener, line_number = stack[-1]
        return line_number, f"unclosed '{opener}'"
    return None
