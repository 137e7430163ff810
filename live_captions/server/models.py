"""Pydantic response models for the host service.

WHY: The FastAPI endpoints need typed schemas for response
serialization and automatic OpenAPI documentation.

HOW: One model per response shape. All fields carry a
Field(description=...) so they show up in the /docs UI.

RULES:
- Response models never expose internal objects (assemblers, clocks)
- Timestamps are ISO 8601 strings
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="Package version string.", json_schema_extra={"example": "0.1.0"})
    api_key_configured: bool = Field(description="Whether OPENAI_API_KEY is set.")


class CredentialStatusResponse(BaseModel):
    """Credential check consumed by the capture page before enabling Start."""

    has_key: bool = Field(description="A usable API key is configured.")
    from_env: bool = Field(description="OPENAI_API_KEY is present in the environment.")


class SessionCreatedResponse(BaseModel):
    id: str = Field(description="Session identifier (UUID hex) for subsequent calls.")
    created_at: float = Field(description="Creation timestamp (Unix epoch seconds).")


class SessionSummaryModel(BaseModel):
    id: str = Field(description="Session identifier.")
    created_at: float = Field(description="Creation timestamp (Unix epoch seconds).")
    updated_at: float = Field(description="Last activity timestamp (Unix epoch seconds).")
    stopped: bool = Field(description="Whether the session has been stopped.")
    entry_count: int = Field(description="Number of finalized utterances.")


class SessionListResponse(BaseModel):
    sessions: List[SessionSummaryModel] = Field(description="Sessions, oldest first.")


class TranscriptEntryModel(BaseModel):
    text: str = Field(description="Finalized utterance text.")
    timestamp: str = Field(description="Time the utterance was finalized (ISO 8601).")


class NoticeModel(BaseModel):
    text: str = Field(description="Notification text.")
    is_error: bool = Field(description="True for error notifications.")


class TranscriptResponse(BaseModel):
    """Current transcript of a caption session.

    RULES:
    - entries are in finalization order and never change once listed
    - text is entries joined by spaces followed by live_text
    - notice is only present while it has not auto-dismissed
    """

    id: str = Field(description="Session identifier.")
    entries: List[TranscriptEntryModel] = Field(description="Finalized utterances.")
    live_text: str = Field(description="In-progress utterance.")
    text: str = Field(description="Full visible transcript.")
    status: str = Field(description="Session status line.")
    stopped: bool = Field(description="Whether the session has been stopped.")
    notice: Optional[NoticeModel] = Field(
        default=None,
        description="Active notification, if one has not yet been dismissed.",
    )


class EventResultResponse(BaseModel):
    changed: bool = Field(description="Whether the event changed the transcript.")
    transcript: TranscriptResponse = Field(description="Transcript after the event.")


class RealtimeConfigResponse(BaseModel):
    """Everything a capture page needs to configure its peer connection.

    RULES:
    - session and response are sent verbatim as the "session" and
      "response" objects of session.update / response.create
    """

    model: str = Field(description="Realtime model the answer endpoint connects to.")
    ice_servers: List[str] = Field(description="STUN server URLs for the peer connection.")
    session: Dict[str, Any] = Field(description="Session configuration for session.update.")
    response: Dict[str, Any] = Field(description="Response request for response.create.")
