"""Thin wrapper around the Gemini SDK.

The SDK is configured and the model handle built on the first call, once
per process; afterwards the handle is only read.  ``generate`` returns
the SDK result untouched: pulling text out of it is the job of
``src.replies.normalize_reply``, because the result shape has changed
between SDK versions.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import google.generativeai as genai

from src.config import GEMINI_API_KEY, MODEL_NAME
from src.services.metrics import metrics

logger = logging.getLogger(__name__)


class GeminiClient:
    """Lazily-initialised Gemini model handle."""

    def __init__(self, api_key: str | None = None, model_name: str | None = None) -> None:
        self._api_key = api_key or GEMINI_API_KEY
        self._model_name = model_name or MODEL_NAME
        self._model: genai.GenerativeModel | None = None
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_model(self) -> genai.GenerativeModel:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    genai.configure(api_key=self._api_key)
                    self._model = genai.GenerativeModel(self._model_name)
                    logger.info("Gemini model %s initialised", self._model_name)
        return self._model

    def generate(self, contents: list[dict[str, Any]]) -> Any:
        """Send role-tagged *contents* and return the raw SDK result."""
        model = self._get_model()
        with metrics.track("gemini", "generate_content"):
            return model.generate_content(contents)
