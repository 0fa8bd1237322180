"""Process-lifetime cache for the external knowledge document.

The document is fetched on first use and kept until the process exits.
A failed fetch (non-200 status, transport error, empty body) yields an
empty string for that call and leaves the slot empty, so the next call
tries again.  There is no expiry and no manual invalidation.

Concurrent cold callers may each fetch the document before one of them
fills the slot.  The fetch is idempotent, so no lock is taken.
"""

from __future__ import annotations

import logging

import httpx

from src.config import KNOWLEDGE_MAX_CHARS, KNOWLEDGE_TIMEOUT_SECONDS, KNOWLEDGE_URL
from src.services.metrics import metrics

logger = logging.getLogger(__name__)


class KnowledgeCache:
    """Single-slot, fail-open memoization of the knowledge document."""

    def __init__(
        self,
        url: str | None = None,
        max_chars: int | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._url = KNOWLEDGE_URL if url is None else url
        self._max_chars = KNOWLEDGE_MAX_CHARS if max_chars is None else max_chars
        self._client = http_client or httpx.Client(
            timeout=KNOWLEDGE_TIMEOUT_SECONDS, follow_redirects=True,
        )
        self._snapshot: str | None = None

    @property
    def cached(self) -> bool:
        """True once a non-empty snapshot has been stored."""
        return self._snapshot is not None

    def get(self) -> str:
        """Return the cached snapshot, fetching it if the slot is empty."""
        if self._snapshot is not None:
            return self._snapshot
        if not self._url:
            return ""

        text = self._fetch()[: self._max_chars]
        if text:
            self._snapshot = text
            logger.info(
                "Knowledge document cached (%d chars)", len(self._snapshot),
            )
            return self._snapshot
        return ""

    def _fetch(self) -> str:
        """One fetch attempt.  Never raises."""
        try:
            with metrics.track("knowledge", "GET document"):
                response = self._client.get(self._url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Knowledge fetch failed (%s): %s", type(exc).__name__, exc)
            return ""

        if response.status_code != 200:
            logger.warning(
                "Knowledge fetch returned status %d; continuing without it",
                response.status_code,
            )
            return ""
        return response.text
