"""Tests for the fail-open knowledge document cache."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx

from src.services.knowledge import KnowledgeCache

URL = "https://kb.example.com/knowledge.txt"


def _response(text: str = "", status_code: int = 200) -> MagicMock:
    mock = MagicMock()
    mock.status_code = status_code
    mock.text = text
    return mock


def _cache(*responses, max_chars: int = 20_000) -> tuple[KnowledgeCache, MagicMock]:
    http = MagicMock()
    http.get.side_effect = list(responses)
    return KnowledgeCache(URL, max_chars, http_client=http), http


class TestFetchOnce:
    def test_first_call_fetches_and_caches(self):
        cache, http = _cache(_response("Returns: 7 days."))
        assert cache.get() == "Returns: 7 days."
        assert cache.cached is True
        http.get.assert_called_once_with(URL)

    def test_later_calls_reuse_snapshot(self):
        cache, http = _cache(_response("Returns: 7 days."))
        cache.get()
        cache.get()
        cache.get()
        assert http.get.call_count == 1

    def test_snapshot_is_truncated(self):
        cache, _ = _cache(_response("x" * 50), max_chars=20)
        assert cache.get() == "x" * 20

    def test_default_limit_is_20000_chars(self):
        cache, _ = _cache(_response("y" * 25_000))
        assert len(cache.get()) == 20_000


class TestFailOpen:
    def test_non_200_returns_empty(self):
        cache, _ = _cache(_response("Not found", status_code=404))
        assert cache.get() == ""
        assert cache.cached is False

    def test_transport_error_returns_empty(self):
        cache, _ = _cache(httpx.ConnectError("connection refused"))
        assert cache.get() == ""
        assert cache.cached is False

    def test_failure_then_success_caches_the_success(self):
        cache, http = _cache(
            httpx.ReadTimeout("timed out"),
            _response("Production: 3-5 business days."),
        )
        assert cache.get() == ""
        assert cache.get() == "Production: 3-5 business days."
        assert cache.get() == "Production: 3-5 business days."
        assert http.get.call_count == 2

    def test_failure_is_retried_on_every_call(self):
        cache, http = _cache(
            _response(status_code=500),
            _response(status_code=503),
            _response("ok now"),
        )
        assert cache.get() == ""
        assert cache.get() == ""
        assert cache.get() == "ok now"
        assert http.get.call_count == 3

    def test_empty_body_is_not_cached(self):
        cache, http = _cache(_response(""), _response("content"))
        assert cache.get() == ""
        assert cache.get() == "content"
        assert http.get.call_count == 2

    def test_no_url_never_fetches(self):
        http = MagicMock()
        cache = KnowledgeCache("", http_client=http)
        assert cache.get() == ""
        http.get.assert_not_called()

    def test_malformed_url_returns_empty(self):
        cache = KnowledgeCache("http://[::1/knowledge.txt", http_client=httpx.Client())
        assert cache.get() == ""
        assert cache.cached is False


class TestLimit:
    def test_explicit_zero_limit_is_honoured(self):
        cache, _ = _cache(_response("some text"), max_chars=0)
        assert cache.get() == ""
        assert cache.cached is False
