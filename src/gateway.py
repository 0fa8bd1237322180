"""The chat gateway: one request in, one action dispatched, one body out.

Actions
-------
* ``saveLead`` / ``saveOrder`` / ``saveConsultation`` / ``saveTicket``:
  one insert into the matching record table, acknowledged with
  ``{"success": true}``.  Conversation memory is not touched.
* ``loadHistory``: the session's full transcript, oldest first.
* ``getDashboardData``: every record table, newest first, behind the
  admin secret.
* chat (implicit): the conversational turn:

    trivial reply?  → persist the pair, return the canned text
    otherwise       → recent history → knowledge → assemble prompt
                    → Gemini → normalise → persist the pair → reply

Failure policy
--------------
Knowledge is fail-open.  During a chat turn the history read and the
transcript write are best-effort: they are logged and the reply still
goes out.  ``loadHistory`` and the dashboard have nothing to return
without the store, so their read failures propagate as 500s, and so do
record inserts, whose only output is the acknowledgment.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from src.actions import (
    Action,
    ActionKind,
    ChatTurn,
    GetDashboardData,
    LoadHistory,
    RecordAction,
)
from src.api.schemas import Acknowledgement, ChatReply, DashboardView, HistoryReply
from src.config import ADMIN_SECRET
from src.errors import AuthorizationError, PersistenceFailure, UpstreamFailure
from src.prompts import DEFAULT_PERSONA, Persona, build_contents
from src.replies import match_trivial, normalize_reply
from src.services.gemini_client import GeminiClient
from src.services.knowledge import KnowledgeCache
from src.services.store import SessionStore

logger = logging.getLogger(__name__)


class ChatGateway:
    """Routes a parsed action to its handler.

    Collaborators are injected so tests can swap them; the defaults are
    the process-wide production clients.
    """

    def __init__(
        self,
        *,
        store: SessionStore | None = None,
        knowledge: KnowledgeCache | None = None,
        generator: GeminiClient | None = None,
        persona: Persona | None = None,
        admin_secret: str | None = None,
    ) -> None:
        self._store = store or SessionStore()
        self._knowledge = knowledge or KnowledgeCache()
        self._generator = generator or GeminiClient()
        self._persona = persona or DEFAULT_PERSONA
        self._admin_secret = ADMIN_SECRET if admin_secret is None else admin_secret

        self._handlers: dict[ActionKind, Callable[[Any], BaseModel]] = {
            ActionKind.SAVE_LEAD: self._save_record,
            ActionKind.SAVE_ORDER: self._save_record,
            ActionKind.SAVE_CONSULTATION: self._save_record,
            ActionKind.SAVE_TICKET: self._save_record,
            ActionKind.LOAD_HISTORY: self._load_history,
            ActionKind.GET_DASHBOARD_DATA: self._dashboard,
            ActionKind.CHAT: self._chat,
        }
        missing = set(ActionKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"unhandled actions: {missing}")

    @property
    def persona(self) -> Persona:
        return self._persona

    def handle(self, action: Action) -> BaseModel:
        """Run *action* and return its response body.

        Raises ``GatewayError`` subclasses for every failure the caller
        should see.
        """
        logger.debug("Dispatching %s for session %s", action.kind.value, action.session_id)
        return self._handlers[action.kind](action)

    # ── Record capture ───────────────────────────────────────────────

    def _save_record(self, action: RecordAction) -> Acknowledgement:
        self._store.insert_record(
            action.record_kind, action.session_id, action.user_details.to_row(),
        )
        logger.info("Stored %s for session %s", action.record_kind, action.session_id)
        return Acknowledgement()

    # ── Reads ────────────────────────────────────────────────────────

    def _load_history(self, action: LoadHistory) -> HistoryReply:
        return HistoryReply(history=self._store.read_all(action.session_id))

    def _dashboard(self, action: GetDashboardData) -> DashboardView:
        supplied = (action.admin_secret or "").encode()
        expected = self._admin_secret.encode()
        if not expected or not hmac.compare_digest(supplied, expected):
            logger.warning("Rejected dashboard request for session %s", action.session_id)
            raise AuthorizationError("Unauthorized")

        return DashboardView(
            leads=self._store.read_records("lead"),
            orders=self._store.read_records("order"),
            tickets=self._store.read_records("ticket"),
            consultations=self._store.read_records("consultation"),
        )

    # ── Chat ─────────────────────────────────────────────────────────

    def _chat(self, action: ChatTurn) -> ChatReply:
        canned = match_trivial(action.message, self._persona.trivial_replies)
        if canned is not None:
            logger.debug("Trivial reply for session %s", action.session_id)
            self._remember(action.session_id, action.message, canned)
            return ChatReply(reply=canned)

        history = self._recent_history(action.session_id)
        knowledge = self._knowledge.get()
        contents = build_contents(
            self._persona,
            knowledge,
            action.message,
            history=history,
            user_name=action.user_name,
        )

        try:
            result = self._generator.generate(contents)
        except Exception as exc:
            logger.exception("Generation call failed for session %s", action.session_id)
            raise UpstreamFailure("The AI service is unavailable. Please try again.") from exc

        reply = normalize_reply(result)
        self._remember(action.session_id, action.message, reply)
        return ChatReply(reply=reply)

    def _recent_history(self, session_id: str) -> list[dict[str, Any]]:
        try:
            return self._store.read_recent(session_id, self._persona.history_window)
        except PersistenceFailure:
            logger.warning("Continuing without history for session %s", session_id)
            return []

    def _remember(self, session_id: str, user_text: str, reply: str) -> None:
        try:
            self._store.append_exchange(session_id, user_text, reply)
        except PersistenceFailure:
            # The store already logged the cause; the reply still goes out.
            logger.warning("Transcript not saved for session %s", session_id)
