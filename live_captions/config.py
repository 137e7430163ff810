"""Configuration constants, timing defaults, and .env loading.

WHY: Centralizes every tunable value (remote endpoint, model names,
utterance and timer delays, dedup bounds, session instructions) so
they are easy to find and override without touching engine code.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values, each overridable via an environment variable.
load_api_key() gives a clear error when the credential is missing;
has_api_key() and credential_status() answer the host's "is a key
configured?" question without raising.

RULES:
- API key is loaded from .env via python-dotenv, never hardcoded
- Surrounding quotes on the key are stripped ("sk-..." and 'sk-...')
- All timing values are integer milliseconds
- SEEN_EVENT_LIMIT of 0 means unbounded event-id memory
"""

from __future__ import annotations

import os
import re

from dotenv import load_dotenv

# Load .env from the project root (where the process is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Remote realtime service
# ---------------------------------------------------------------------------

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_REALTIME_MODEL = os.getenv("OPENAI_REALTIME_MODEL", "gpt-realtime-preview")
TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
STUN_SERVER = os.getenv("STUN_SERVER", "stun:stun.l.google.com:19302")

SESSION_INSTRUCTIONS = (
    "You are a real-time transcription service. Transcribe all audio input "
    "accurately with proper punctuation."
)
RESPONSE_INSTRUCTIONS = (
    "Transcribe the audio input in real-time. Output only the transcribed "
    "text without any additional commentary."
)

# ---------------------------------------------------------------------------
# Timing (milliseconds)
# ---------------------------------------------------------------------------

UTTERANCE_TIMEOUT_MS = int(os.getenv("UTTERANCE_TIMEOUT_MS", "4000"))
SESSION_CONFIG_DELAY_MS = int(os.getenv("SESSION_CONFIG_DELAY_MS", "1000"))
RESPONSE_REQUEST_DELAY_MS = int(os.getenv("RESPONSE_REQUEST_DELAY_MS", "500"))
NOTICE_DISMISS_MS = int(os.getenv("NOTICE_DISMISS_MS", "5000"))

# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------

SEEN_EVENT_LIMIT = int(os.getenv("SEEN_EVENT_LIMIT", "10000"))
"""Maximum number of remembered event ids; oldest are evicted first."""

# ---------------------------------------------------------------------------
# Host service
# ---------------------------------------------------------------------------

SERVER_HOST = os.getenv("LIVE_CAPTIONS_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("LIVE_CAPTIONS_PORT", "8000"))


_QUOTES_RE = re.compile(r"^[\"']|[\"']$")


def _clean_key(raw: str | None) -> str:
    """Strip whitespace and one layer of surrounding quotes."""
    return _QUOTES_RE.sub("", (raw or "").strip()).strip()


def load_api_key() -> str:
    """Load the OpenAI API key from the environment.

    WHY: The key is required to exchange session descriptions with the
    realtime service. Loading it from the environment (via .env) keeps
    it out of source code.

    HOW: Reads OPENAI_API_KEY from os.environ (populated by
    python-dotenv) and strips surrounding quotes.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = _clean_key(os.getenv("OPENAI_API_KEY"))
    if not key:
        raise ValueError(
            "OpenAI API key not found. Please set OPENAI_API_KEY in .env file"
        )
    return key


def has_api_key() -> bool:
    """Return True when a non-empty OpenAI API key is configured."""
    return bool(_clean_key(os.getenv("OPENAI_API_KEY")))


def credential_status() -> dict[str, bool]:
    """Report whether a key is usable and whether the variable is set at all."""
    return {
        "has_key": has_api_key(),
        "from_env": bool(os.getenv("OPENAI_API_KEY")),
    }
