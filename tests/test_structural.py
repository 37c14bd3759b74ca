from docguard.corpus import Corpus, Document
from docguard.rules import ScanContext
from docguard.rules.loader import parse_rules
from docguard.rules.structural import StructuralSectionEvaluator, extract_headings
from docguard.scoring import aggregate
from docguard.severity import Category, Severity

PATTERN_RULES = parse_rules(
    {
        "version": 1,
        "rules": [
            {
                "id": "STR001",
                "category": "StructuralSection",
                "description": "Architecture pattern document",
                "scope": {"paths": ["docs/patterns/*.md"], "tags": ["architecture-pattern"]},
                "sections": ["Overview", "Data Models", "UI Components|User Interface", "Security", "Deployment"],
            },
            {
                "id": "STR003",
                "category": "StructuralSection",
                "severity": "high",
                "description": "Architecture pattern catalogue",
                "required_documents": ["docs/patterns/simple-crud.md", "docs/patterns/e-commerce.md"],
            },
        ],
    }
).rules_for(Category.STRUCTURAL_SECTION)


def _document(text, path="docs/patterns/simple-crud.md", tags=frozenset()):
    return Document(index=0, path=path, lines=tuple(text.splitlines()), tags=tags)


def test_template_missing_two_headings_scores_98():
    document = _document("# Simple CRUD\n## Overview\n## Data Models\n### User Interface\n")
    context = ScanContext(corpus=Corpus(documents=(document,)))

    findings = StructuralSectionEvaluator().evaluate(document, PATTERN_RULES, context)
    result = aggregate(findings, documents_scanned=1)

    assert sorted(finding.message for finding in findings) == [
        "Missing required section 'Deployment'",
        "Missing required section 'Security'",
    ]
    assert all(finding.severity is Severity.MEDIUM for finding in findings)
    assert result.score == 98


def test_headings_inside_code_fences_do_not_count():
    lines = ["```markdown", "## Security", "```"]

    assert "security" not in extract_headings(lines)


def test_heading_substring_satisfies_section():
    document = _document(
        "## Overview\n## Data Models (DynamoDB)\n## UI Components\n## Security Considerations\n## Deployment\n"
    )
    context = ScanContext(corpus=Corpus(documents=(document,)))

    assert StructuralSectionEvaluator().evaluate(document, PATTERN_RULES, context) == []


def test_tagged_document_outside_pattern_directory_is_checked():
    document = _document("## Overview\n", path="docs/other/custom.md", tags=frozenset({"architecture-pattern"}))
    context = ScanContext(corpus=Corpus(documents=(document,)))

    findings = StructuralSectionEvaluator().evaluate(document, PATTERN_RULES, context)

    assert len(findings) == 4


def test_missing_required_documents_are_reported_once_per_corpus():
    document = _document("## Overview\n")
    corpus = Corpus(documents=(document,), known_paths=frozenset({document.path}))

    findings = StructuralSectionEvaluator().evaluate_corpus(PATTERN_RULES, ScanContext(corpus=corpus))

    assert [finding.document_path for finding in findings] == ["docs/patterns/e-commerce.md"]
    assert findings[0].severity is Severity.HIGH
    assert findings[0].line_number == 0
