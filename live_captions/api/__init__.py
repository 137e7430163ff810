"""Realtime API package: HTTP session-description exchange and wire messages.

WHY: A realtime session begins with one HTTP call (offer SDP in,
answer SDP out) followed by two configuration messages on the data
channel. This package holds both halves of that contract.

HOW: client.py wraps httpx.AsyncClient for the exchange; models.py
builds the outbound session.update and response.create messages.

RULES:
- All HTTP calls go through RealtimeClient (no direct httpx usage elsewhere)
- Authentication is via Bearer token from config
"""

from live_captions.api.client import RealtimeAPIError, RealtimeClient
from live_captions.api.models import ResponseRequest, SessionConfig, TurnDetection

__all__ = [
    "RealtimeAPIError",
    "RealtimeClient",
    "ResponseRequest",
    "SessionConfig",
    "TurnDetection",
]
