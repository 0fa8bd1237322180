"""Centralized configuration for the chat gateway.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/chat-gateway/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy import to avoid boto3 dep in tests)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/chat-gateway/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = _optional_env(name)
    if value:
        return value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /chat-gateway/{name} (AWS)."
    )


def _optional_env(name: str, default: str = "") -> str:
    """Like ``_require_env`` but falls back to *default* instead of raising."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    return default


# ── Generation service ──────────────────────────────────────────────
GEMINI_API_KEY: str = _require_env("GEMINI_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "gemini-2.5-flash")

# ── Persistent store ────────────────────────────────────────────────
SUPABASE_URL: str = _require_env("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY: str = _require_env("SUPABASE_SERVICE_ROLE_KEY")

CHAT_HISTORY_TABLE = "chat_history"
LEADS_TABLE = "leads"
ORDERS_TABLE = "orders"
CONSULTATIONS_TABLE = "consultations"
TICKETS_TABLE = "tickets"

# ── Admin dashboard ─────────────────────────────────────────────────
# Empty means the dashboard is locked: every request gets a 401.
ADMIN_SECRET: str = _optional_env("ADMIN_SECRET")

# ── Knowledge document ──────────────────────────────────────────────
KNOWLEDGE_URL: str = os.getenv("KNOWLEDGE_URL", "")
KNOWLEDGE_MAX_CHARS: int = int(os.getenv("KNOWLEDGE_MAX_CHARS", "20000"))
KNOWLEDGE_TIMEOUT_SECONDS: float = float(os.getenv("KNOWLEDGE_TIMEOUT_SECONDS", "10"))

# ── Persona ─────────────────────────────────────────────────────────
_persona_file = os.getenv("PERSONA_FILE")
PERSONA_FILE: Path | None = Path(_persona_file) if _persona_file else None

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173",
    ).split(",")
    if origin.strip()
]
