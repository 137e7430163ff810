"""FastAPI host service for a browser-based capture page.

WHY: Screen/audio capture and the peer connection live in a browser (or
an embedded web view), but the API key must not. The host process
answers the page's boundary calls: is a key configured, and trade this
offer SDP for an answer. It can also run the transcript engine server
side, for pages that forward their data-channel events.

HOW: A single FastAPI app. /credentials, /realtime/config and
/realtime/answer mirror the host operations of a desktop shell.
/sessions endpoints wrap a SessionStore: create and list sessions, post
raw realtime events to one, read the transcript, stop it, delete it. A
lifespan task expires idle sessions every 5 minutes.

RULES:
- Error responses use the ErrorResponse schema
- /realtime/answer: 400 empty offer, 503 no key, 502 remote rejection
- Event bodies are passed to the assembler as-is, so malformed events are
  skipped exactly like live data-channel messages (changed=false)
- Unknown session → 404; events to a stopped session → 409; store full → 429
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response

from live_captions import __version__
from live_captions.api.client import RealtimeAPIError, fetch_answer_sdp
from live_captions.api.models import ResponseRequest, SessionConfig
from live_captions.config import (
    OPENAI_REALTIME_MODEL,
    SERVER_HOST,
    SERVER_PORT,
    STUN_SERVER,
    credential_status,
    has_api_key,
)
from live_captions.server.models import (
    CredentialStatusResponse,
    ErrorResponse,
    EventResultResponse,
    HealthResponse,
    NoticeModel,
    RealtimeConfigResponse,
    SessionCreatedResponse,
    SessionListResponse,
    SessionSummaryModel,
    TranscriptEntryModel,
    TranscriptResponse,
)
from live_captions.server.sessions import CaptionSession, SessionStore, SessionStoppedError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = SessionStore()


async def _periodic_cleanup() -> None:
    """Expire idle sessions every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Live Captions Host API",
    description=(
        "Host-side operations for live system-audio captioning: credential "
        "check, realtime session-description exchange, and server-side "
        "transcript assembly sessions."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_to_response(session: CaptionSession) -> TranscriptResponse:
    state = session.assembler.state
    notice = session.notices.active()
    return TranscriptResponse(
        id=session.id,
        entries=[
            TranscriptEntryModel(text=e.text, timestamp=e.timestamp.isoformat())
            for e in state.entries
        ],
        live_text=state.live_text,
        text=state.visible_text(),
        status=session.notices.status,
        stopped=session.stopped,
        notice=NoticeModel(text=notice.text, is_error=notice.is_error) if notice else None,
    )


def _get_session_or_404(session_id: str) -> CaptionSession:
    session = session_store.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return session


# ---------------------------------------------------------------------------
# Endpoints: Host operations
# ---------------------------------------------------------------------------


@app.get(
    "/credentials",
    response_model=CredentialStatusResponse,
    tags=["host"],
    summary="Report whether an API key is configured",
)
async def get_credentials() -> CredentialStatusResponse:
    return CredentialStatusResponse(**credential_status())


@app.get(
    "/realtime/config",
    response_model=RealtimeConfigResponse,
    tags=["host"],
    summary="Peer connection and session settings for the capture page",
)
async def get_realtime_config() -> RealtimeConfigResponse:
    return RealtimeConfigResponse(
        model=OPENAI_REALTIME_MODEL,
        ice_servers=[STUN_SERVER] if STUN_SERVER else [],
        session=SessionConfig().to_dict(),
        response=ResponseRequest().to_dict(),
    )


@app.post(
    "/realtime/answer",
    tags=["host"],
    summary="Exchange an offer SDP for the realtime service's answer SDP",
    description=(
        "Send the capture page's local offer (Content-Type: application/sdp). "
        "Returns the answer SDP to apply as the remote description."
    ),
    responses={
        200: {"content": {"application/sdp": {}}, "description": "Answer SDP"},
        400: {"model": ErrorResponse, "description": "Empty offer"},
        502: {"model": ErrorResponse, "description": "Realtime service rejected the offer"},
        503: {"model": ErrorResponse, "description": "No API key configured"},
    },
)
async def realtime_answer(request: Request) -> Response:
    offer_sdp = (await request.body()).decode("utf-8", errors="replace")
    if not offer_sdp.strip():
        raise HTTPException(status_code=400, detail="Offer SDP body is empty")

    if not has_api_key():
        raise HTTPException(status_code=503, detail="OpenAI API key not set")

    try:
        answer_sdp = await fetch_answer_sdp(offer_sdp)
    except RealtimeAPIError as exc:
        raise HTTPException(
            status_code=502,
            detail="Failed to connect to Realtime API: {}".format(exc),
        )
    except httpx.HTTPError as exc:
        logger.exception("Realtime API request failed")
        raise HTTPException(
            status_code=502,
            detail="Failed to connect to Realtime API: {}".format(exc),
        )

    return Response(content=answer_sdp, media_type="application/sdp")


# ---------------------------------------------------------------------------
# Endpoints: Caption sessions
# ---------------------------------------------------------------------------


@app.post(
    "/sessions",
    response_model=SessionCreatedResponse,
    status_code=201,
    tags=["sessions"],
    summary="Start a server-side transcript session",
    responses={429: {"model": ErrorResponse, "description": "Too many sessions"}},
)
async def create_session() -> SessionCreatedResponse:
    try:
        session = session_store.create_session()
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return SessionCreatedResponse(id=session.id, created_at=session.created_at)


@app.get(
    "/sessions",
    response_model=SessionListResponse,
    tags=["sessions"],
    summary="List transcript sessions, oldest first",
)
async def list_sessions() -> SessionListResponse:
    return SessionListResponse(sessions=[
        SessionSummaryModel(
            id=s.id,
            created_at=s.created_at,
            updated_at=s.updated_at,
            stopped=s.stopped,
            entry_count=len(s.assembler.state.entries),
        )
        for s in session_store.list_sessions()
    ])


@app.post(
    "/sessions/{session_id}/events",
    response_model=EventResultResponse,
    tags=["sessions"],
    summary="Apply one realtime event to a session",
    description="The body is one realtime data-channel message, verbatim.",
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session already stopped"},
    },
)
async def post_event(session_id: str, request: Request) -> EventResultResponse:
    raw = await request.body()
    try:
        changed = session_store.apply_event(session_id, raw)
    except SessionStoppedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    if changed is None:
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))

    session = _get_session_or_404(session_id)
    return EventResultResponse(changed=changed, transcript=_session_to_response(session))


@app.get(
    "/sessions/{session_id}/transcript",
    response_model=TranscriptResponse,
    tags=["sessions"],
    summary="Get the current transcript of a session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def get_transcript(session_id: str) -> TranscriptResponse:
    return _session_to_response(_get_session_or_404(session_id))


@app.post(
    "/sessions/{session_id}/stop",
    response_model=TranscriptResponse,
    tags=["sessions"],
    summary="Stop a session and finalize its live utterance",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def stop_session(session_id: str) -> TranscriptResponse:
    session = session_store.stop_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return _session_to_response(session)


@app.delete(
    "/sessions/{session_id}",
    status_code=204,
    tags=["sessions"],
    summary="Delete a session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def delete_session(session_id: str) -> Response:
    if not session_store.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__, api_key_configured=has_api_key())


def run_api() -> None:
    """Entry point for the live-captions-host console script."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
