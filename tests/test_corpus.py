import pytest

from docguard.corpus import load_corpus
from docguard.errors import ConfigurationError, RootNotFound


def _write(path, text="# Title\n", mode="w"):
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode == "wb":
        path.write_bytes(text)
    else:
        path.write_text(text, encoding="utf-8")


def test_documents_are_ordered_by_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("docs/z.md", "docs/a.md", "docs/patterns/m.md", "docs/image.png", "docs/notes.txt"):
        _write(tmp_path / name)

    corpus = load_corpus(["docs"])

    assert [document.path for document in corpus] == ["docs/a.md", "docs/patterns/m.md", "docs/z.md"]
    assert [document.index for document in corpus] == [0, 1, 2]
    assert corpus.exists("docs/image.png")
    assert corpus.exists("docs/patterns")
    assert not corpus.exists("docs/missing.md")


def test_ignored_directories_are_skipped(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "docs/a.md")
    _write(tmp_path / "docs/node_modules/pkg/readme.md")

    corpus = load_corpus(["docs"])

    assert [document.path for document in corpus] == ["docs/a.md"]


def test_missing_root_among_several_becomes_caveat(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "docs/a.md")

    corpus = load_corpus(["docs", ".claude"])

    assert len(corpus) == 1
    assert corpus.caveats == ("Skipped missing corpus roots: .claude",)


def test_all_roots_missing_raises(tmp_path):
    with pytest.raises(RootNotFound):
        load_corpus([str(tmp_path / "nope")])


def test_no_roots_is_configuration_error():
    with pytest.raises(ConfigurationError):
        load_corpus([])


def test_undecodable_file_is_kept_with_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "docs/bad.md", b"\xff\xfe\x00broken", mode="wb")

    corpus = load_corpus(["docs"])

    assert corpus.documents[0].error is not None
    assert corpus.documents[0].lines == ()


def test_front_matter_tags_are_collected(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write(
        tmp_path / "docs/guide.md",
        "---\ntemplate: Architecture-Pattern\ntags: [integration, Payments]\n---\n# Guide\n",
    )

    document = load_corpus(["docs"]).documents[0]

    assert document.tags == frozenset({"architecture-pattern", "integration", "payments"})
    assert document.directory == "docs"
    assert document.name == "guide.md"


def test_required_paths_resolve_under_absolute_roots(tmp_path):
    _write(tmp_path / "docs/patterns/simple-crud.md")
    _write(tmp_path / ".claude/ace-genesis.md")

    corpus = load_corpus([str(tmp_path / "docs"), str(tmp_path / ".claude")])

    assert corpus.exists_in_roots("docs/patterns/simple-crud.md")
    assert corpus.exists_in_roots(".claude/ace-genesis.md")
    assert not corpus.exists_in_roots("docs/patterns/e-commerce.md")


def test_required_paths_resolve_under_parent_root(tmp_path):
    _write(tmp_path / "docs/patterns/simple-crud.md")

    corpus = load_corpus([str(tmp_path)])

    assert corpus.exists_in_roots("docs/patterns/simple-crud.md")
