"""Persona definition and prompt assembly for the chat gateway."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# The model is told to separate ideas with this marker; replies.py turns it
# into a blank line before the text leaves the gateway.
BREAK_MARKER = "---BREAK---"

NO_KNOWLEDGE_PLACEHOLDER = "(No additional knowledge is available right now.)"

DEFAULT_INTRO = """You are "Blu," the expert assistant for I AM XIS.
Your tone is professional, concise, and friendly.

--- CORE KNOWLEDGE ---
- Production: 3-5 business days.
- Shipping: Depends on carrier.
- Returns: 7 days, ONLY if damaged.
- Contact: hello@iamxis.studio | +234 708 005 4074."""

DEFAULT_TRIVIAL_REPLIES: dict[str, str] = {
    "thanks": "You're very welcome! Let me know if you need anything else.",
    "thank you": "You're very welcome! Let me know if you need anything else.",
    "bye": "Goodbye! Have a great day.",
    "goodbye": "Goodbye! Have a great day.",
}


@dataclass(frozen=True)
class Persona:
    """Everything brand-specific about the assistant.

    Deployments differ only in these values, so they are loaded from
    ``PERSONA_FILE`` when one is configured.
    """

    name: str = "Blu"
    intro: str = DEFAULT_INTRO
    acknowledgment: str = "Understood. I am Blu. I will follow all rules."
    purchase_reply: str = "You can order directly via our shop here - https://iamxis.studio/shop"
    extra_rules: tuple[str, ...] = (
        'If asked about "iamxis.com.ng", explain we are temporarily on "iamxis.studio".',
    )
    trivial_replies: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TRIVIAL_REPLIES),
    )
    history_window: int = 12


DEFAULT_PERSONA = Persona()


def load_persona(path: Path | None) -> Persona:
    """Build a Persona from a JSON file, falling back to the defaults.

    Keys in the file replace the matching Persona fields; unknown keys
    raise ``ValueError`` so typos are caught at startup.
    """
    if path is None:
        return DEFAULT_PERSONA

    data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    known = {f.name for f in dataclasses.fields(Persona)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown persona field(s) in {path}: {', '.join(sorted(unknown))}")

    if "extra_rules" in data:
        data["extra_rules"] = tuple(data["extra_rules"])
    if "trivial_replies" in data:
        data["trivial_replies"] = {
            key.strip().lower(): reply for key, reply in data["trivial_replies"].items()
        }
    if "history_window" in data:
        data["history_window"] = int(data["history_window"])
    if data.get("history_window", 1) < 1:
        raise ValueError("history_window must be at least 1")

    persona = dataclasses.replace(DEFAULT_PERSONA, **data)
    logger.info("Loaded persona %r from %s", persona.name, path)
    return persona


def build_rules(persona: Persona) -> str:
    """The behavioural rules block.  Always part of the persona text."""
    rules = [
        "NO external knowledge. Use only provided facts.",
        f'Use "{BREAK_MARKER}" to separate distinct concepts.',
        f'If a user says "I want to order", reply: "{persona.purchase_reply}".',
        'Never say "I am a bot". Act like a human expert.',
        *persona.extra_rules,
    ]
    lines = ["--- RULES ---"]
    lines.extend(f"{i}. {rule}" for i, rule in enumerate(rules, start=1))
    return "\n".join(lines)


def build_persona_text(persona: Persona, knowledge: str, user_name: str | None = None) -> str:
    """Render the full instruction text sent as the first turn."""
    sections = [
        persona.intro.strip(),
        "--- KNOWLEDGE BASE ---\n" + (knowledge.strip() or NO_KNOWLEDGE_PLACEHOLDER),
    ]
    if user_name and user_name.strip():
        sections.append(
            f"--- USER ---\nThe user's name is {user_name.strip()}. "
            "Address them by name where it feels natural."
        )
    sections.append(build_rules(persona))
    return "\n\n".join(sections) + "\n"


def _turn(role: str, text: str) -> dict[str, Any]:
    return {"role": role, "parts": [{"text": text}]}


def build_contents(
    persona: Persona,
    knowledge: str,
    message: str,
    history: list[dict[str, Any]] | None = None,
    user_name: str | None = None,
) -> list[dict[str, Any]]:
    """Assemble the ordered turns for one generation call.

    Order: persona text (user), acknowledgment (model), *history* as
    given (oldest first), then the new user *message*.  Stored
    ``assistant`` turns are sent with the ``model`` role.
    """
    contents = [
        _turn("user", build_persona_text(persona, knowledge, user_name)),
        _turn("model", persona.acknowledgment),
    ]
    for row in history or []:
        role = "user" if row.get("role") == "user" else "model"
        contents.append(_turn(role, row.get("content") or ""))
    contents.append(_turn("user", message))
    return contents
