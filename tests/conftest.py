"""Shared test fixtures for the chat gateway test suite."""

from __future__ import annotations

import itertools
import os
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.errors import PersistenceFailure


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key-123")
    os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
    os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key-456")
    os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000,https://shop.example.com")


class FakeStore:
    """In-memory stand-in for SessionStore with the same method surface."""

    def __init__(self) -> None:
        self.turns: list[dict[str, Any]] = []
        self.records: dict[str, list[dict[str, Any]]] = {
            "lead": [], "order": [], "consultation": [], "ticket": [],
        }
        self.reads = 0
        self.fail_reads = False
        self.fail_writes = False
        self._clock = itertools.count()
        self._epoch = datetime(2026, 1, 1, tzinfo=UTC)

    def _now(self) -> str:
        return (self._epoch + timedelta(seconds=next(self._clock))).isoformat()

    def _check(self, failing: bool, operation: str) -> None:
        if failing:
            raise PersistenceFailure(f"Database error during {operation}.")

    def append_exchange(self, session_id: str, user_text: str, assistant_text: str) -> None:
        self._check(self.fail_writes, "insert chat_history")
        self.turns.append(
            {"session_id": session_id, "role": "user", "content": user_text, "created_at": self._now()}
        )
        self.turns.append(
            {"session_id": session_id, "role": "assistant", "content": assistant_text, "created_at": self._now()}
        )

    def read_recent(self, session_id: str, limit: int) -> list[dict[str, Any]]:
        return self.read_all(session_id)[-limit:]

    def read_all(self, session_id: str) -> list[dict[str, Any]]:
        self.reads += 1
        self._check(self.fail_reads, "select chat_history")
        rows = [t for t in self.turns if t["session_id"] == session_id]
        return [
            {"role": t["role"], "content": t["content"], "created_at": t["created_at"]}
            for t in sorted(rows, key=lambda t: t["created_at"])
        ]

    def insert_record(self, kind: str, session_id: str, fields: dict[str, Any]) -> None:
        self._check(self.fail_writes, f"insert {kind}")
        self.records[kind].append({**fields, "session_id": session_id, "created_at": self._now()})

    def read_records(self, kind: str) -> list[dict[str, Any]]:
        self.reads += 1
        self._check(self.fail_reads, f"select {kind}")
        return sorted(self.records[kind], key=lambda r: r["created_at"], reverse=True)


@pytest.fixture
def make_result():
    """Factory fixture for Gemini results in the ``candidates`` shape."""

    def _make(text: str):
        part = SimpleNamespace(text=text)
        return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])

    return _make


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def mock_generator(make_result):
    generator = MagicMock()
    generator.generate.return_value = make_result("Hello! I'm Blu. How can I help?")
    return generator


@pytest.fixture
def mock_knowledge():
    knowledge = MagicMock()
    knowledge.get.return_value = ""
    return knowledge


@pytest.fixture
def gateway(fake_store, mock_generator, mock_knowledge):
    from src.gateway import ChatGateway

    return ChatGateway(
        store=fake_store,
        knowledge=mock_knowledge,
        generator=mock_generator,
        admin_secret="s3cret",
    )
