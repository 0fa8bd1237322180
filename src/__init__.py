"""Chat Gateway: a session-scoped conversational front door for a brand assistant.

Architecture Overview
=====================

Every request is one JSON POST that names an **action**:

1. **Record capture** (``saveLead``, ``saveOrder``, ``saveConsultation``,
   ``saveTicket``): one insert into the matching Supabase table.
2. **Reads** (``loadHistory``, ``getDashboardData``): the session
   transcript, or every captured record behind an admin secret.
3. **Chat** (no action, a ``message``): the conversational turn.

A chat turn runs:
  trivial reply? → recent history → knowledge document → persona prompt
  → Gemini → reply normalisation → transcript write

Key Design Decisions
--------------------
- **LLM**: Gemini via ``google-generativeai``.  The raw result is
  normalised by an ordered list of extractors because its shape has
  changed between SDK versions.
- **Memory**: Supabase ``chat_history`` rows keyed by session id; the
  prompt sees the last N turns (N is part of the persona).
- **Knowledge**: a text document fetched once per process and cached;
  failures are fail-open and retried on the next turn.
- **Trivial replies**: pleasantries get canned replies without a model
  call but are still written to the transcript.
- **Dual Interface**: FastAPI server (production) + CLI chat loop
  (development/testing).

Package Structure
-----------------
- ``src/actions.py``: action models and request parsing
- ``src/gateway.py``: ChatGateway: action dispatch and the chat turn
- ``src/prompts.py``: Persona and prompt assembly
- ``src/replies.py``: trivial replies and result normalisation
- ``src/errors.py``: error taxonomy with HTTP status codes
- ``src/config.py``: Centralized configuration from environment variables
- ``src/server.py``: FastAPI application
- ``src/main.py``: CLI chat interface
- ``src/services/``: Supabase store, Gemini client, knowledge cache, metrics
- ``src/api/``: FastAPI routes and Pydantic schemas
"""
