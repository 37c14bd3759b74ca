"""Exception windows: bounded lookaround for counter-example markers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Sequence

DEFAULT_BEFORE = 2
DEFAULT_AFTER = 2


@dataclass(frozen=True)
class ExceptionWindow:
    """Suppress a match when a marker appears within ``before``/``after`` lines of it.

    The matched line itself is part of the window. Markers compare
    case-insensitively as plain substrings.
    """

    markers: FrozenSet[str]
    before: int = DEFAULT_BEFORE
    after: int = DEFAULT_AFTER

    def __post_init__(self) -> None:
        if self.before < 0 or self.after < 0:
            raise ValueError("Exception window bounds must be non-negative")
        object.__setattr__(self, "markers", frozenset(marker.lower() for marker in self.markers if marker))

    def suppresses(self, lines: Sequence[str], line_index: int) -> bool:
        """Return True when a marker is found around ``lines[line_index]`` (0-based)."""

        if not self.markers:
            return False
        start = max(0, line_index - self.before)
        stop = min(len(lines), line_index + self.after + 1)
        for candidate in lines[start:stop]:
            lowered = candidate.lower()
            if any(marker in lowered for marker in self.markers):
                return True
        return False
