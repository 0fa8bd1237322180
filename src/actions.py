"""Request actions accepted by the gateway.

A request body selects exactly one action:

* ``action`` names one of the record/read actions, or
* the legacy ``loadHistory: true`` flag selects ``loadHistory``, or
* anything else is a chat turn, which then needs a ``message``.

Each action is a pydantic model carrying its own required fields, so a
missing field is a validation error of that model and becomes a 400.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.errors import ClientError

# RFC 5322-ish pattern, covers the vast majority of real-world emails
# without requiring an external dependency.
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


class ActionKind(str, Enum):
    SAVE_LEAD = "saveLead"
    SAVE_ORDER = "saveOrder"
    SAVE_CONSULTATION = "saveConsultation"
    SAVE_TICKET = "saveTicket"
    LOAD_HISTORY = "loadHistory"
    GET_DASHBOARD_DATA = "getDashboardData"
    CHAT = "chat"


def validate_email(email: str) -> str | None:
    """Return an error message if *email* looks invalid, else ``None``."""
    if not email or not email.strip():
        return "No email address was provided."
    email = email.strip()
    if not _EMAIL_RE.match(email):
        return f'"{email}" does not look like a valid email address.'
    return None


# ── userDetails payloads ─────────────────────────────────────────────


class _Details(BaseModel):
    """Contact fields shared by every capture form."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        error = validate_email(value)
        if error:
            raise ValueError(error)
        return value

    def to_row(self) -> dict[str, Any]:
        """Column-named fields, without the ones the client left out."""
        return self.model_dump(exclude_none=True)


class LeadDetails(_Details):
    pass


class OrderDetails(_Details):
    plan: str | None = None
    cycle: str | None = None
    amount: float | str | None = None
    domain: str | None = None


class ConsultationDetails(_Details):
    service_type: str | None = Field(default=None, alias="serviceType")
    business: str | None = None
    budget: str | None = None
    details: str | None = None
    reference: str | None = None


class TicketDetails(_Details):
    category: str | None = None
    description: str | None = None
    ticket_number: str | None = Field(default=None, alias="ticketNumber")


# ── Actions ──────────────────────────────────────────────────────────


class _Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: ClassVar[ActionKind]

    session_id: str = Field(..., alias="sessionId", min_length=1, max_length=200)

    @field_validator("session_id")
    @classmethod
    def _session_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sessionId must not be empty")
        return value


class SaveLead(_Action):
    kind: ClassVar[ActionKind] = ActionKind.SAVE_LEAD
    record_kind: ClassVar[str] = "lead"

    user_details: LeadDetails = Field(..., alias="userDetails")


class SaveOrder(_Action):
    kind: ClassVar[ActionKind] = ActionKind.SAVE_ORDER
    record_kind: ClassVar[str] = "order"

    user_details: OrderDetails = Field(..., alias="userDetails")


class SaveConsultation(_Action):
    kind: ClassVar[ActionKind] = ActionKind.SAVE_CONSULTATION
    record_kind: ClassVar[str] = "consultation"

    user_details: ConsultationDetails = Field(..., alias="userDetails")


class SaveTicket(_Action):
    kind: ClassVar[ActionKind] = ActionKind.SAVE_TICKET
    record_kind: ClassVar[str] = "ticket"

    user_details: TicketDetails = Field(..., alias="userDetails")


class LoadHistory(_Action):
    kind: ClassVar[ActionKind] = ActionKind.LOAD_HISTORY


class GetDashboardData(_Action):
    kind: ClassVar[ActionKind] = ActionKind.GET_DASHBOARD_DATA

    admin_secret: str | None = Field(default=None, alias="adminSecret")


class ChatTurn(_Action):
    kind: ClassVar[ActionKind] = ActionKind.CHAT

    message: str = Field(..., max_length=4000)
    user_name: str | None = Field(default=None, alias="userName", max_length=100)

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value


RecordAction = SaveLead | SaveOrder | SaveConsultation | SaveTicket
Action = RecordAction | LoadHistory | GetDashboardData | ChatTurn

_NAMED_ACTIONS = frozenset(kind.value for kind in ActionKind if kind is not ActionKind.CHAT)

ACTION_MODELS: dict[ActionKind, type[_Action]] = {
    model.kind: model
    for model in (
        SaveLead, SaveOrder, SaveConsultation, SaveTicket,
        LoadHistory, GetDashboardData, ChatTurn,
    )
}


def resolve_kind(payload: dict[str, Any]) -> ActionKind:
    """Pick the action a request body asks for.

    Record and read actions win over the chat fallback, so a structured
    payload without a message is never treated as a chat turn.
    """
    action = payload.get("action")
    if isinstance(action, str) and action in _NAMED_ACTIONS:
        return ActionKind(action)
    if action is None and payload.get("loadHistory") is True:
        return ActionKind.LOAD_HISTORY
    return ActionKind.CHAT


def _describe_errors(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "body"
        if error["type"] == "missing":
            problems.append(f"Missing required field: {location}")
        else:
            problems.append(f"Invalid field {location}: {error['msg']}")
    return "; ".join(problems)


def parse_action(payload: Any) -> Action:
    """Validate a decoded request body into one action model.

    Raises ``ClientError`` for anything that is not a well-formed request.
    """
    if not isinstance(payload, dict):
        raise ClientError("Request body must be a JSON object.")

    model = ACTION_MODELS[resolve_kind(payload)]
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ClientError(_describe_errors(exc)) from exc
