"""FastAPI route definitions for the chat gateway."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from src.actions import parse_action
from src.api.schemas import ErrorBody, HealthResponse
from src.errors import ClientError, GatewayError

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again."


def _get_gateway(request: Request):
    """Retrieve the ChatGateway built during the FastAPI lifespan."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return gateway


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorBody(error=message).model_dump())


async def _read_payload(request: Request):
    body = await request.body()
    try:
        return json.loads(body or b"null")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ClientError("Request body is not valid JSON.") from exc


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.options("/chat")
async def chat_preflight():
    """CORS preflight.  The CORS middleware adds the headers."""
    return Response(status_code=200)


@router.post("/chat")
async def chat(http_request: Request):
    """Single entry point for every action.

    The body selects the action (see ``src.actions``).  ``handle`` talks
    to Supabase and Gemini synchronously, so it runs on the default
    thread-pool to keep the event loop free.
    """
    gateway = _get_gateway(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        action = parse_action(await _read_payload(http_request))
        result = await asyncio.to_thread(gateway.handle, action)
        return JSONResponse(content=result.model_dump(mode="json"))

    except GatewayError as e:
        if e.status_code >= 500:
            logger.error("[%s] %s: %s", request_id, type(e).__name__, e.message)
        else:
            logger.info("[%s] Rejected request: %s", request_id, e.message)
        return _error(e.status_code, e.message)
    except Exception:
        # Full traceback stays in the server log; the client gets a
        # generic message.
        logger.exception("[%s] Error processing chat request", request_id)
        return _error(500, INTERNAL_ERROR_MESSAGE)
