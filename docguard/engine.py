"""Run the rule evaluators over a corpus, optionally in parallel."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from .corpus import Corpus, Document, load_corpus
from .result import Finding, ScanResult
from .rules import Evaluator, ScanContext, default_evaluators
from .rules.registry import RuleRegistry
from .scoring import aggregate
from .severity import Category, Severity

logger = structlog.get_logger(__name__)

EVALUATION_ERROR_RULE_ID = "evaluation-error"


@dataclass(frozen=True)
class Evaluation:
    findings: Tuple[Finding, ...]
    documents_scanned: int
    complete: bool = True


def evaluation_error(document_path: str, message: str) -> Finding:
    return Finding(
        rule_id=EVALUATION_ERROR_RULE_ID,
        category=Category.EVALUATION_ERROR,
        document_path=document_path,
        line_number=0,
        severity=Severity.HIGH,
        message=message,
    )


def evaluate_document(
    document: Document,
    registry: RuleRegistry,
    context: ScanContext,
    evaluators: Sequence[Evaluator],
) -> List[Finding]:
    """Apply every evaluator to one document.

    A failure inside any evaluator becomes an EvaluationError finding for this
    document; it never aborts the scan of other documents.
    """

    if document.error is not None:
        return [evaluation_error(document.path, f"Document could not be read: {document.error}")]

    findings: List[Finding] = []
    for evaluator in evaluators:
        rules = registry.rules_for(evaluator.category)
        if not rules:
            continue
        try:
            findings.extend(evaluator.evaluate(document, rules, context))
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning(
                "document_evaluation_failed",
                document=document.path,
                category=evaluator.category.value,
                error=repr(exc),
            )
            findings.append(
                evaluation_error(document.path, f"{evaluator.category.value} evaluation failed: {exc!r}")
            )
    return findings


def evaluate(
    corpus: Corpus,
    registry: RuleRegistry,
    context: Optional[ScanContext] = None,
    *,
    workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    evaluators: Optional[Sequence[Evaluator]] = None,
) -> Evaluation:
    """Evaluate ``registry`` against every document of ``corpus``.

    The returned findings are ordered by (path, line, rule id, message) and do
    not depend on ``workers``. Setting ``cancel_event`` stops dispatching new
    documents; documents already in flight finish and the evaluation is
    marked incomplete.
    """

    if workers < 1:
        raise ValueError("workers must be at least 1")
    context = context or ScanContext(corpus=corpus)
    active = list(evaluators) if evaluators is not None else default_evaluators()
    cancel_event = cancel_event or threading.Event()

    per_document: Dict[int, List[Finding]] = {}
    if workers == 1:
        for document in corpus:
            if cancel_event.is_set():
                break
            per_document[document.index] = evaluate_document(document, registry, context, active)
    else:
        per_document = _evaluate_parallel(corpus.documents, registry, context, active, workers, cancel_event)

    complete = len(per_document) == len(corpus)
    findings: List[Finding] = [finding for index in sorted(per_document) for finding in per_document[index]]

    if complete:
        findings.extend(_evaluate_corpus_level(registry, context, active))
    else:
        logger.warning("evaluation_cancelled", evaluated=len(per_document), total=len(corpus))

    findings.sort(key=Finding.sort_key)
    logger.info(
        "evaluation_finished",
        documents=len(per_document),
        findings=len(findings),
        complete=complete,
        workers=workers,
    )
    return Evaluation(findings=tuple(findings), documents_scanned=len(per_document), complete=complete)


def _evaluate_parallel(
    documents: Iterable[Document],
    registry: RuleRegistry,
    context: ScanContext,
    evaluators: Sequence[Evaluator],
    workers: int,
    cancel_event: threading.Event,
) -> Dict[int, List[Finding]]:
    results: Dict[int, List[Finding]] = {}
    pending: Set[Future] = set()
    owners: Dict[Future, int] = {}
    queue = iter(documents)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docguard") as executor:
        exhausted = False
        while True:
            # Keep at most ``workers`` documents in flight so cancellation takes effect quickly.
            while not exhausted and len(pending) < workers and not cancel_event.is_set():
                document = next(queue, None)
                if document is None:
                    exhausted = True
                    break
                future = executor.submit(evaluate_document, document, registry, context, evaluators)
                pending.add(future)
                owners[future] = document.index
            if not pending:
                break
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                results[owners.pop(future)] = future.result()
    return results


def _evaluate_corpus_level(
    registry: RuleRegistry,
    context: ScanContext,
    evaluators: Sequence[Evaluator],
) -> List[Finding]:
    findings: List[Finding] = []
    for evaluator in evaluators:
        rules = registry.rules_for(evaluator.category)
        if not rules:
            continue
        try:
            findings.extend(evaluator.evaluate_corpus(rules, context))
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("corpus_evaluator_failed", category=evaluator.category.value, error=repr(exc))
            findings.append(evaluation_error("<corpus>", f"{evaluator.category.value} evaluation failed: {exc!r}"))
    return findings


def run_scan(
    roots: Sequence[str],
    registry: RuleRegistry,
    *,
    extensions: Iterable[str] = (".md",),
    ignore_dirs: Iterable[str] = (".git", "node_modules", "__pycache__"),
    link_resolver=None,
    workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> ScanResult:
    """Load the corpus, evaluate it and aggregate the findings into a :class:`ScanResult`."""

    corpus = load_corpus(roots, extensions=extensions, ignore_dirs=ignore_dirs)
    context = ScanContext(corpus=corpus, link_resolver=link_resolver)
    evaluation = evaluate(corpus, registry, context, workers=workers, cancel_event=cancel_event)
    caveats = list(corpus.caveats)
    if not evaluation.complete:
        caveats.append(
            f"Scan cancelled: {evaluation.documents_scanned} of {len(corpus)} documents evaluated"
        )
    return aggregate(
        evaluation.findings,
        evaluation.documents_scanned,
        complete=evaluation.complete,
        caveats=caveats,
    )
