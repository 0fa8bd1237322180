"""Session memory and record capture on top of Supabase (PostgREST).

All reads and writes are keyed by ``session_id``; nothing here reads
across sessions except the admin dashboard aggregation.  Every failure
from the store is logged and re-raised as ``PersistenceFailure`` so the
caller decides whether it is fatal.

Tables (``created_at`` is assigned by the database):

* ``chat_history``  : session_id, role, content, created_at
* ``leads``         : session_id, name, email, phone
* ``orders``        : + plan, cycle, amount, domain
* ``consultations`` : + service_type, business, budget, details, reference
* ``tickets``       : + category, description, ticket_number
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.config import (
    CHAT_HISTORY_TABLE,
    CONSULTATIONS_TABLE,
    LEADS_TABLE,
    ORDERS_TABLE,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
    TICKETS_TABLE,
)
from src.errors import PersistenceFailure
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

RECORD_TABLES: dict[str, str] = {
    "lead": LEADS_TABLE,
    "order": ORDERS_TABLE,
    "consultation": CONSULTATIONS_TABLE,
    "ticket": TICKETS_TABLE,
}

_STORE_ERRORS = (APIError, httpx.HTTPError)


class SessionStore:
    """Reads and appends conversation turns and capture records."""

    def __init__(self, client: Client | None = None) -> None:
        # None means "use the process-wide client", resolved on first use
        self._client = client

    @property
    def _db(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    # ── Chat turns ───────────────────────────────────────────────────

    def append_exchange(self, session_id: str, user_text: str, assistant_text: str) -> None:
        """Insert the user turn and the assistant turn in one request."""
        rows = [
            {"session_id": session_id, "role": "user", "content": user_text},
            {"session_id": session_id, "role": "assistant", "content": assistant_text},
        ]
        self._execute(
            f"insert {CHAT_HISTORY_TABLE}",
            lambda: self._db.table(CHAT_HISTORY_TABLE).insert(rows).execute(),
        )

    def read_recent(self, session_id: str, limit: int) -> list[dict[str, Any]]:
        """Return the last *limit* turns of a session, oldest first."""
        response = self._execute(
            f"select {CHAT_HISTORY_TABLE}",
            lambda: (
                self._db.table(CHAT_HISTORY_TABLE)
                .select("role, content, created_at")
                .eq("session_id", session_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            ),
        )
        return list(reversed(response.data or []))

    def read_all(self, session_id: str) -> list[dict[str, Any]]:
        """Return every turn of a session, oldest first."""
        response = self._execute(
            f"select {CHAT_HISTORY_TABLE}",
            lambda: (
                self._db.table(CHAT_HISTORY_TABLE)
                .select("role, content, created_at")
                .eq("session_id", session_id)
                .order("created_at")
                .execute()
            ),
        )
        return response.data or []

    # ── Capture records ──────────────────────────────────────────────

    def insert_record(self, kind: str, session_id: str, fields: dict[str, Any]) -> None:
        """Append one lead/order/consultation/ticket row."""
        table = RECORD_TABLES[kind]
        row = {**fields, "session_id": session_id}
        self._execute(
            f"insert {table}",
            lambda: self._db.table(table).insert(row).execute(),
        )

    def read_records(self, kind: str) -> list[dict[str, Any]]:
        """Return every row of a record table, newest first."""
        table = RECORD_TABLES[kind]
        response = self._execute(
            f"select {table}",
            lambda: self._db.table(table).select("*").order("created_at", desc=True).execute(),
        )
        return response.data or []

    # ── Internal ─────────────────────────────────────────────────────

    def _execute(self, operation: str, call):
        try:
            with metrics.track("supabase", operation):
                return call()
        except _STORE_ERRORS as exc:
            logger.exception("Supabase %s failed", operation)
            raise PersistenceFailure(f"Database error during {operation}.") from exc


# ── Module-level singleton (thread-safe) ────────────────────────────
_client: Client | None = None
_client_lock = threading.Lock()


def get_supabase_client() -> Client:
    """Return the process-wide Supabase client, creating it once.

    Uses double-checked locking so that the lock is only acquired during
    the first initialisation, not on every subsequent call.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
    return _client
