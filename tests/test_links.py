import httpx
import pytest

from docguard.corpus import Corpus, Document
from docguard.errors import ResolutionTimeout
from docguard.links import HttpLinkResolver
from docguard.rules import ScanContext
from docguard.rules.links import LinkIntegrityEvaluator, is_relative_target, resolve_relative
from docguard.rules.loader import parse_rules
from docguard.severity import Category, Severity

RULES = parse_rules(
    {
        "version": 1,
        "rules": [
            {"id": "LNK001", "category": "LinkIntegrity", "description": "Relative link", "target": "relative"},
            {"id": "LNK002", "category": "LinkIntegrity", "description": "External link", "target": "external"},
        ],
    }
).rules_for(Category.LINK_INTEGRITY)


class FakeResolver:
    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def resolve(self, url):
        self.calls.append(url)
        outcome = self.outcomes[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _evaluate(text, known=(), resolver=None, path="docs/guide.md"):
    document = Document(index=0, path=path, lines=tuple(text.splitlines()))
    corpus = Corpus(documents=(document,), known_paths=frozenset({path, *known}))
    context = ScanContext(corpus=corpus, link_resolver=resolver)
    return LinkIntegrityEvaluator().evaluate(document, RULES, context)


def test_broken_relative_link_is_one_medium_finding():
    findings = _evaluate("See [setup](./setup.md) for details.")

    assert len(findings) == 1
    assert findings[0].rule_id == "LNK001"
    assert findings[0].severity is Severity.MEDIUM
    assert findings[0].line_number == 1
    assert "docs/setup.md" in findings[0].message


def test_existing_relative_links_pass():
    text = "[a](setup.md#install) and ![img](../assets/logo.png) and [dir](patterns/)"
    known = ("docs/setup.md", "assets/logo.png", "docs/patterns/simple-crud.md")

    assert _evaluate(text, known=known) == []


def test_anchors_mailto_and_code_fences_are_ignored():
    text = "[top](#top)\n[mail](mailto:a@b.c)\n```md\n[x](missing.md)\n```\n"

    assert _evaluate(text) == []


def test_external_links_skipped_without_resolver():
    assert _evaluate("[site](https://example.com)") == []


def test_unreachable_and_timed_out_external_links_are_low_findings():
    resolver = FakeResolver(
        {
            "https://dead.example": False,
            "https://slow.example": ResolutionTimeout("https://slow.example", attempts=2),
            "https://ok.example": True,
        }
    )
    text = "[a](https://dead.example)\n[b](https://slow.example)\n[c](https://ok.example)\n"

    findings = _evaluate(text, resolver=resolver)

    assert [finding.line_number for finding in findings] == [1, 2]
    assert all(finding.severity is Severity.LOW for finding in findings)
    assert "timed out" in findings[1].message


def test_resolve_relative_normalizes_paths():
    assert resolve_relative("docs/patterns", "../setup.md?x=1#frag") == "docs/setup.md"
    assert resolve_relative("", "README.md") == "README.md"
    assert resolve_relative("docs", "my%20file.md") == "docs/my file.md"


def test_is_relative_target():
    assert is_relative_target("setup.md")
    assert not is_relative_target("https://example.com")
    assert not is_relative_target("#anchor")
    assert not is_relative_target("/absolute/path.md")


def test_http_resolver_caches_and_falls_back_to_get():
    calls = []

    def handler(request):
        calls.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(200)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    resolver = HttpLinkResolver(client=client)

    assert resolver.resolve("https://example.com/page") is True
    assert resolver.resolve("https://example.com/page") is True
    assert calls == ["HEAD", "GET"]


def test_http_resolver_reports_error_status_as_unreachable():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))

    assert HttpLinkResolver(client=client).resolve("https://example.com/missing") is False


def test_http_resolver_retries_once_then_times_out():
    attempts = []

    def handler(request):
        attempts.append(request.url)
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))

    with pytest.raises(ResolutionTimeout) as excinfo:
        HttpLinkResolver(client=client).resolve("https://slow.example")

    assert excinfo.value.attempts == 2
    assert len(attempts) == 2


def test_http_resolver_treats_malformed_url_as_unreachable():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    assert HttpLinkResolver(client=client).resolve("https://example.com:abc/x") is False


def test_malformed_external_link_keeps_other_link_findings():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    resolver = HttpLinkResolver(client=client)

    findings = _evaluate("[a](./missing.md)\n[b](https://example.com:abc/x)\n", resolver=resolver)

    assert [(f.rule_id, f.severity) for f in findings] == [("LNK001", Severity.MEDIUM), ("LNK002", Severity.LOW)]
    assert "unreachable" in findings[1].message
