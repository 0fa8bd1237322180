"""Pydantic response bodies for the gateway endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ChatReply(BaseModel):
    """Reply to a chat turn (generated or canned)."""

    reply: str = Field(..., description="The assistant's reply")


class HistoryReply(BaseModel):
    """Full transcript of a session, oldest first."""

    history: list[dict[str, Any]] = Field(default_factory=list)


class Acknowledgement(BaseModel):
    """Returned by the record-capture actions."""

    success: bool = True


class DashboardView(BaseModel):
    """Every captured record, each list newest first."""

    leads: list[dict[str, Any]] = Field(default_factory=list)
    orders: list[dict[str, Any]] = Field(default_factory=list)
    tickets: list[dict[str, Any]] = Field(default_factory=list)
    consultations: list[dict[str, Any]] = Field(default_factory=list)


class ErrorBody(BaseModel):
    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "chat-gateway"
