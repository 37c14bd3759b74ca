"""Rule model and the evaluator protocol shared by every rule category."""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, List, Optional, Pattern, Protocol, Sequence, Tuple

from docguard.corpus import Corpus, Document
from docguard.result import Finding
from docguard.severity import Category, Severity

from .window import ExceptionWindow

if TYPE_CHECKING:
    from docguard.links import LinkResolver

AREAS = ("docs", "commands", "patterns", "integrations")

CHECK_PATTERN = "pattern"
CHECK_BALANCED = "balanced"
TARGET_RELATIVE = "relative"
TARGET_EXTERNAL = "external"


@dataclass(frozen=True)
class DocumentScope:
    """Select documents by path glob or front-matter tag; empty means every document.

    ``exclude`` globs win over both.
    """

    paths: Tuple[str, ...] = ()
    tags: FrozenSet[str] = frozenset()
    exclude: Tuple[str, ...] = ()

    def matches(self, document: Document) -> bool:
        if any(fnmatch.fnmatchcase(document.path, glob) for glob in self.exclude):
            return False
        if not self.paths and not self.tags:
            return True
        if self.tags & document.tags:
            return True
        return any(fnmatch.fnmatchcase(document.path, glob) for glob in self.paths)


@dataclass(frozen=True)
class Rule:
    """A versioned, read-only rule definition owned by the registry."""

    id: str
    category: Category
    severity: Severity
    description: str
    area: str = "docs"
    patterns: Tuple[Pattern[str], ...] = ()
    window: Optional[ExceptionWindow] = None
    scope: DocumentScope = field(default_factory=DocumentScope)
    sections: Tuple[str, ...] = ()
    required_documents: Tuple[str, ...] = ()
    languages: Tuple[str, ...] = ()
    check: str = CHECK_PATTERN
    target: str = TARGET_RELATIVE

    @property
    def pattern(self) -> Optional[Pattern[str]]:
        return self.patterns[0] if self.patterns else None

    @property
    def exception_markers(self) -> FrozenSet[str]:
        return self.window.markers if self.window else frozenset()

    def search(self, line: str) -> Optional[re.Match[str]]:
        for pattern in self.patterns:
            match = pattern.search(line)
            if match:
                return match
        return None

    def finding(self, document_path: str, line_number: int, message: str) -> Finding:
        return Finding(
            rule_id=self.id,
            category=self.category,
            document_path=document_path,
            line_number=line_number,
            severity=self.severity,
            message=message,
        )


@dataclass(frozen=True)
class ScanContext:
    """Bundle inputs shared across evaluators for one scan."""

    corpus: Corpus
    link_resolver: Optional["LinkResolver"] = None


class Evaluator(Protocol):
    """Protocol implemented by every per-category evaluator.

    ``evaluate`` must be a pure function of its arguments: evaluators may run
    concurrently on different documents of the same corpus.
    """

    category: Category

    def evaluate(self, document: Document, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        """Return the findings of ``rules`` on one document."""

    def evaluate_corpus(self, rules: Sequence[Rule], context: ScanContext) -> List[Finding]:
        """Return corpus-level findings (checks that are not tied to one document)."""


def default_evaluators() -> List[Evaluator]:
    from .code_syntax import CodeSyntaxEvaluator
    from .forbidden import ForbiddenPatternEvaluator
    from .links import LinkIntegrityEvaluator
    from .required import RequiredPatternEvaluator
    from .structural import StructuralSectionEvaluator

    return [
        ForbiddenPatternEvaluator(),
        RequiredPatternEvaluator(),
        StructuralSectionEvaluator(),
        LinkIntegrityEvaluator(),
        CodeSyntaxEvaluator(),
    ]
