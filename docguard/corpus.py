"""Corpus loading: enumerate and read the documents under the configured roots."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import structlog
import yaml

from .errors import ConfigurationError, PartialLoadError, RootNotFound

logger = structlog.get_logger(__name__)

FRONT_MATTER_DELIMITER = "---"


@dataclass(frozen=True)
class Document:
    """One text file of the corpus.

    ``error`` is set when the file could not be read or decoded; such a
    document has no lines and evaluates to a single EvaluationError finding.
    """

    index: int
    path: str
    lines: Tuple[str, ...]
    tags: FrozenSet[str] = frozenset()
    error: Optional[str] = None

    @property
    def directory(self) -> str:
        parent = Path(self.path).parent.as_posix()
        return "" if parent == "." else parent

    @property
    def name(self) -> str:
        return Path(self.path).name


@dataclass(frozen=True)
class Corpus:
    """Ordered, immutable set of documents plus every path seen under the roots."""

    documents: Tuple[Document, ...]
    known_paths: FrozenSet[str] = frozenset()
    roots: Tuple[str, ...] = ()
    caveats: Tuple[str, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self):
        return iter(self.documents)

    def exists(self, path: str) -> bool:
        if path in self.known_paths:
            return True
        prefix = path.rstrip("/") + "/"
        return any(known.startswith(prefix) for known in self.known_paths)

    def exists_in_roots(self, path: str) -> bool:
        """Resolve ``path`` against every root, wherever the roots live.

        ``docs/patterns/a.md`` is found as ``/repo/docs/patterns/a.md`` when the
        root is ``/repo/docs`` (a root named ``docs``) or ``/repo`` (a parent root).
        """

        if self.exists(path):
            return True
        head, _, rest = path.partition("/")
        for root in self.roots:
            base = Path(root)
            if self.exists((base / path).as_posix()):
                return True
            if rest and base.name == head and self.exists((base / rest).as_posix()):
                return True
        return False


def load_corpus(
    roots: Sequence[str | Path],
    extensions: Iterable[str] = (".md",),
    ignore_dirs: Iterable[str] = (".git", "node_modules", "__pycache__"),
) -> Corpus:
    """Read every matching text file under ``roots``.

    Documents are ordered lexicographically by path whatever order the
    filesystem yields them in. A missing root is logged and recorded as a
    caveat while the remaining roots still load; if no root exists at all
    :class:`RootNotFound` is raised.
    """

    if not roots:
        raise ConfigurationError("No corpus roots configured")

    wanted = {ext.lower() for ext in extensions}
    skipped = set(ignore_dirs)

    missing: List[str] = []
    known: set[str] = set()
    text_paths: Dict[str, Path] = {}

    for root in roots:
        root_path = Path(root)
        if not root_path.is_dir():
            missing.append(str(root))
            logger.warning("corpus_root_missing", root=str(root))
            continue
        for file_path in _walk_files(root_path, skipped):
            display = file_path.as_posix()
            known.add(display)
            if file_path.suffix.lower() in wanted:
                text_paths[display] = file_path

    if len(missing) == len(roots):
        raise RootNotFound(missing[0])

    caveats: Tuple[str, ...] = ()
    if missing:
        caveats = (str(PartialLoadError(tuple(missing))),)

    documents = tuple(
        _read_document(index, display, text_paths[display])
        for index, display in enumerate(sorted(text_paths))
    )
    logger.info(
        "corpus_loaded",
        documents=len(documents),
        known_paths=len(known),
        missing_roots=len(missing),
    )
    return Corpus(
        documents=documents,
        known_paths=frozenset(known),
        roots=tuple(str(root) for root in roots),
        caveats=caveats,
    )


def _walk_files(root: Path, skipped: set[str]) -> Iterable[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in skipped)
        base = Path(dirpath)
        for filename in sorted(filenames):
            yield base / filename


def _read_document(index: int, display: str, path: Path) -> Document:
    try:
        text = path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.warning("document_decode_failed", path=display, error=str(exc))
        return Document(index=index, path=display, lines=(), error=f"not valid UTF-8: {exc.reason} at byte {exc.start}")
    except OSError as exc:
        logger.warning("document_read_failed", path=display, error=str(exc))
        return Document(index=index, path=display, lines=(), error=f"unreadable: {exc.strerror or exc}")

    lines = tuple(text.lstrip("\ufeff").splitlines())
    return Document(index=index, path=display, lines=lines, tags=_front_matter_tags(display, lines))


def _front_matter_tags(display: str, lines: Tuple[str, ...]) -> FrozenSet[str]:
    """Collect ``template`` / ``tags`` values from YAML front matter."""

    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return frozenset()
    try:
        end = next(
            idx for idx in range(1, len(lines)) if lines[idx].strip() == FRONT_MATTER_DELIMITER
        )
    except StopIteration:
        return frozenset()

    try:
        data: Any = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError as exc:
        logger.debug("front_matter_invalid", path=display, error=str(exc))
        return frozenset()
    if not isinstance(data, dict):
        return frozenset()

    tags: set[str] = set()
    template = data.get("template")
    if isinstance(template, str) and template.strip():
        tags.add(template.strip().lower())
    raw_tags = data.get("tags")
    if isinstance(raw_tags, str):
        raw_tags = [raw_tags]
    if isinstance(raw_tags, list):
        tags.update(str(tag).strip().lower() for tag in raw_tags if str(tag).strip())
    return frozenset(tags)
