"""Error taxonomy shared by the scanner components."""

from __future__ import annotations


class DocguardError(Exception):
    """Base class for every error raised by docguard."""


class ConfigurationError(DocguardError, ValueError):
    """Bad flags, config, rules or roots. Fatal for the run (exit code 2)."""


class CorpusError(ConfigurationError):
    """Raised when the corpus cannot be loaded at all."""


class RootNotFound(CorpusError):
    """A configured corpus root does not exist."""

    def __init__(self, root: str) -> None:
        super().__init__(f"Corpus root not found: {root}")
        self.root = root


class PartialLoadError(DocguardError):
    """One root among several is missing; recorded as a caveat, never raised to the CLI."""

    def __init__(self, missing_roots: tuple[str, ...]) -> None:
        joined = ", ".join(missing_roots)
        super().__init__(f"Skipped missing corpus roots: {joined}")
        self.missing_roots = missing_roots


class ResolutionTimeout(DocguardError):
    """A network link could not be resolved within the timeout and retry budget."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"Timed out resolving {url} after {attempts} attempt(s)")
        self.url = url
        self.attempts = attempts


class IssueFilingError(DocguardError):
    """The issue tracker rejected a request or could not be reached."""
