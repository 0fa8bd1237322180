"""Reply helpers: canned short-circuit replies and generation-result normalisation."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from src.errors import UpstreamFailure
from src.prompts import BREAK_MARKER

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "The AI model returned an empty or blocked response."


# ── Trivial replies ──────────────────────────────────────────────────


def match_trivial(message: str, replies: Mapping[str, str]) -> str | None:
    """Return the canned reply for *message*, or ``None`` if there is none.

    Matching is exact after trimming and lower-casing; *replies* keys are
    expected in that normalised form.
    """
    return replies.get(message.strip().lower())


# ── Result extraction ────────────────────────────────────────────────


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _from_candidates(result: Any) -> str | None:
    """``result.candidates[0].content.parts[0].text``"""
    candidates = _field(result, "candidates")
    if not candidates:
        return None
    content = _field(candidates[0], "content")
    parts = _field(content, "parts") if content is not None else None
    if not parts:
        return None
    return _field(parts[0], "text")


def _from_response_accessor(result: Any) -> str | None:
    """``result.response.text()``"""
    response = _field(result, "response")
    accessor = getattr(response, "text", None)
    if callable(accessor):
        return accessor()
    return None


def _from_text_property(result: Any) -> str | None:
    """``result.text`` (raises ValueError in the SDK when nothing usable came back)."""
    if isinstance(result, Mapping):
        return None
    return getattr(result, "text", None)


Extractor = Callable[[Any], str | None]

EXTRACTORS: tuple[Extractor, ...] = (
    _from_candidates,
    _from_response_accessor,
    _from_text_property,
)


def extract_text(result: Any, extractors: tuple[Extractor, ...] = EXTRACTORS) -> str | None:
    """Try each extractor in order; the first non-blank string wins."""
    for extractor in extractors:
        try:
            text = extractor(result)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError):
            continue
        if isinstance(text, str) and text.strip():
            return text
    return None


def _describe(result: Any) -> str:
    to_dict = getattr(result, "to_dict", None)
    if callable(to_dict):
        try:
            result = to_dict()
        except Exception:
            logger.debug("to_dict() failed on %s", type(result).__name__)
    return json.dumps(result, indent=2, default=str)


def normalize_reply(result: Any) -> str:
    """Extract the reply text from a generation result and post-process it.

    Raises ``UpstreamFailure`` when no extractor yields text.
    """
    text = extract_text(result)
    if text is None:
        logger.error("Gemini API error: unexpected response structure.\n%s", _describe(result))
        raise UpstreamFailure(EMPTY_RESPONSE_MESSAGE)
    return text.replace(BREAK_MARKER, "\n\n")
