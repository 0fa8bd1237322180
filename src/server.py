"""FastAPI server for the chat gateway.

Run with:
    uv run uvicorn src.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.routes import router
from src.api.schemas import ErrorBody
from src.config import CORS_ORIGINS, PERSONA_FILE, SERVER_HOST, SERVER_PORT
from src.gateway import ChatGateway
from src.prompts import load_persona

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

ALLOWED_HEADERS = "Content-Type"
ALLOWED_METHODS = "POST, OPTIONS"


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the gateway once and keep it in app state.

    The Supabase and Gemini clients inside it are created lazily on first
    use, so start-up does no network I/O.
    """
    persona = load_persona(PERSONA_FILE)
    application.state.gateway = ChatGateway(persona=persona)
    logger.info("Gateway ready (persona: %s).", persona.name)
    yield


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Chat Gateway",
    description=(
        "Session-scoped conversational gateway: chat with a brand assistant, "
        "capture leads, orders, consultations and tickets, and read them back."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


# ── Error bodies ─────────────────────────────────────────────────────
@app.exception_handler(StarletteHTTPException)
async def http_error_body(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (404, 405, 503) as ``{"error": ...}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorBody(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


# ── CORS ─────────────────────────────────────────────────────────────
@app.middleware("http")
async def apply_cors_policy(request: Request, call_next) -> Response:
    """Echo the Origin only when it is on the allow-list."""
    response = await call_next(request)
    origin = request.headers.get("Origin", "")
    response.headers["Access-Control-Allow-Origin"] = origin if origin in CORS_ORIGINS else ""
    response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
    response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    return response


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation.

    The ID is added to the response headers (``X-Request-ID``) so the
    client can reference it in support tickets.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Chat Gateway",
        "version": "1.0.0",
        "chat": "/api/chat",
        "health": "/api/health",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting chat gateway on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "src.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
