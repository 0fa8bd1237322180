"""Tests for the Supabase-backed SessionStore."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from src.errors import PersistenceFailure
from src.services import store as store_module
from src.services.store import SessionStore, get_supabase_client


def _client_returning(data) -> MagicMock:
    """A mock Supabase client whose every query chain ends in *data*."""
    client = MagicMock()
    response = MagicMock()
    response.data = data
    table = client.table.return_value
    table.insert.return_value.execute.return_value = response
    select = table.select.return_value
    select.order.return_value.execute.return_value = response
    select.eq.return_value.order.return_value.execute.return_value = response
    select.eq.return_value.order.return_value.limit.return_value.execute.return_value = response
    return client


class TestChatTurns:
    def test_append_exchange_is_one_batched_insert(self):
        client = _client_returning([])
        SessionStore(client).append_exchange("s1", "hello", "hi there")

        client.table.assert_called_once_with("chat_history")
        rows = client.table.return_value.insert.call_args[0][0]
        assert rows == [
            {"session_id": "s1", "role": "user", "content": "hello"},
            {"session_id": "s1", "role": "assistant", "content": "hi there"},
        ]

    def test_read_recent_queries_newest_first_and_returns_oldest_first(self):
        newest_first = [
            {"role": "assistant", "content": "third", "created_at": "2026-01-01T00:00:03Z"},
            {"role": "user", "content": "second", "created_at": "2026-01-01T00:00:02Z"},
        ]
        client = _client_returning(newest_first)
        rows = SessionStore(client).read_recent("s1", limit=2)

        assert [r["content"] for r in rows] == ["second", "third"]
        select = client.table.return_value.select.return_value
        select.eq.assert_called_once_with("session_id", "s1")
        select.eq.return_value.order.assert_called_once_with("created_at", desc=True)
        select.eq.return_value.order.return_value.limit.assert_called_once_with(2)

    def test_read_all_orders_ascending(self):
        rows = [{"role": "user", "content": "a", "created_at": "t1"}]
        client = _client_returning(rows)
        assert SessionStore(client).read_all("s1") == rows
        select = client.table.return_value.select.return_value
        select.eq.return_value.order.assert_called_once_with("created_at")

    def test_read_all_handles_null_data(self):
        assert SessionStore(_client_returning(None)).read_all("s1") == []


class TestRecords:
    @pytest.mark.parametrize(
        "kind, table",
        [("lead", "leads"), ("order", "orders"), ("consultation", "consultations"), ("ticket", "tickets")],
    )
    def test_insert_record_targets_kind_table(self, kind, table):
        client = _client_returning([])
        SessionStore(client).insert_record(kind, "s1", {"name": "Ada"})
        client.table.assert_called_once_with(table)
        assert client.table.return_value.insert.call_args[0][0] == {"name": "Ada", "session_id": "s1"}

    def test_read_records_newest_first(self):
        client = _client_returning([{"id": 2}, {"id": 1}])
        assert SessionStore(client).read_records("ticket") == [{"id": 2}, {"id": 1}]
        client.table.assert_called_once_with("tickets")
        client.table.return_value.select.return_value.order.assert_called_once_with("created_at", desc=True)


class TestFailures:
    def test_insert_error_becomes_persistence_failure(self):
        client = _client_returning([])
        client.table.return_value.insert.return_value.execute.side_effect = httpx.ConnectError("down")
        with pytest.raises(PersistenceFailure):
            SessionStore(client).append_exchange("s1", "a", "b")

    def test_read_error_becomes_persistence_failure(self):
        client = _client_returning([])
        chain = client.table.return_value.select.return_value.eq.return_value.order.return_value
        chain.execute.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(PersistenceFailure):
            SessionStore(client).read_all("s1")

    def test_unexpected_errors_propagate_unchanged(self):
        client = _client_returning([])
        client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("bug")
        with pytest.raises(RuntimeError):
            SessionStore(client).insert_record("lead", "s1", {})


class TestClientSingleton:
    def test_client_is_created_once(self):
        with (
            patch.object(store_module, "_client", None),
            patch.object(store_module, "create_client") as mock_create,
        ):
            first = get_supabase_client()
            second = get_supabase_client()
        assert first is second
        mock_create.assert_called_once()

    def test_store_resolves_client_lazily(self):
        with patch.object(store_module, "get_supabase_client") as mock_get:
            store = SessionStore()
            mock_get.assert_not_called()
            mock_get.return_value = _client_returning([])
            store.read_all("s1")
            mock_get.assert_called_once()
