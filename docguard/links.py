"""Network link resolution for external link checks."""

from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol

import httpx
import structlog

from .errors import ResolutionTimeout

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 2
FALLBACK_TO_GET = (405, 501)
USER_AGENT = "docguard-link-check"


class LinkResolver(Protocol):
    def resolve(self, url: str) -> bool:
        """Return True when ``url`` is reachable; raise ResolutionTimeout when it cannot be decided."""


class HttpLinkResolver:
    """Resolve URLs over HTTP with a timeout, one retry and a per-URL cache.

    Safe to share between evaluation threads.
    """

    def __init__(self, timeout: float = 5.0, client: Optional[httpx.Client] = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self._cache: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def resolve(self, url: str) -> bool:
        with self._lock:
            if url in self._cache:
                return self._cache[url]

        reachable = self._fetch(url)
        with self._lock:
            self._cache[url] = reachable
        return reachable

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpLinkResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _fetch(self, url: str) -> bool:
        last_error: Optional[Exception] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = self._client.head(url)
                if response.status_code in FALLBACK_TO_GET:
                    response = self._client.get(url)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_error = exc
                logger.debug("link_attempt_failed", url=url, attempt=attempt, error=str(exc))
                continue
            except (httpx.InvalidURL, httpx.HTTPError) as exc:
                # Malformed targets and redirect loops: no retry.
                logger.debug("link_unresolvable", url=url, error=str(exc))
                return False
            return response.status_code < 400

        raise ResolutionTimeout(url, attempts=MAX_ATTEMPTS) from last_error
