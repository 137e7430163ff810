"""In-memory store of caption sessions with TTL cleanup.

WHY: The host service lets a browser capture page forward data-channel
events over HTTP. Each recording needs its own assembler, kept between
requests, and abandoned sessions must not pile up. An in-memory store
is enough: transcripts are not persisted.

HOW: Two components:
  CaptionSession: dataclass holding an assembler, its notice board,
                  and bookkeeping timestamps
  SessionStore: thread-safe dict-based store with create/get/list/
                apply/stop/delete and idle-TTL expiry

RULES:
- All store mutations are protected by threading.Lock; event application
  happens under the lock so each assembler sees serialized input
- Session IDs are UUID4 hex strings generated at creation time
- Stopping finalizes the live utterance; stopped sessions accept no events
- Sessions idle longer than the TTL are removed by cleanup_expired()
- Default TTL is 30 minutes (1800 seconds)
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from live_captions.core.assembler import TranscriptAssembler
from live_captions.core.clock import Clock, SystemClock
from live_captions.session.notices import NoticeBoard

logger = logging.getLogger(__name__)

# Default idle time-to-live for sessions (seconds)
DEFAULT_TTL_SECONDS = 1800


class SessionStoppedError(Exception):
    """Raised when an event is sent to a session that was already stopped."""


@dataclass
class CaptionSession:
    """One recording's transcript engine plus bookkeeping.

    RULES:
    - id: UUID4 hex, immutable after creation
    - created_at / updated_at: epoch seconds (time.time())
    - stopped_at: epoch seconds once stopped, else None
    """

    id: str
    assembler: TranscriptAssembler
    notices: NoticeBoard
    created_at: float
    updated_at: float
    stopped_at: Optional[float] = None

    @property
    def stopped(self) -> bool:
        return self.stopped_at is not None


class SessionStore:
    """Thread-safe in-memory store for caption sessions.

    RULES:
    - create_session() raises ValueError when max_sessions is reached
    - get_session() returns None for missing IDs (no exceptions)
    - apply_event() returns None for missing IDs, raises
      SessionStoppedError for stopped sessions
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_sessions: int = 100,
        clock_factory: Callable[[], Clock] = SystemClock,
    ) -> None:
        self._sessions: Dict[str, CaptionSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self._clock_factory = clock_factory
        self.max_sessions = max_sessions

    def create_session(self) -> CaptionSession:
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise ValueError(
                    "Maximum number of concurrent sessions ({}) reached".format(
                        self.max_sessions
                    )
                )

            clock = self._clock_factory()
            notices = NoticeBoard(clock=clock)
            session_id = uuid.uuid4().hex
            now = time.time()
            session = CaptionSession(
                id=session_id,
                assembler=TranscriptAssembler(clock=clock, on_error=notices.error),
                notices=notices,
                created_at=now,
                updated_at=now,
            )
            notices.set_status("Recording System Audio...")
            self._sessions[session_id] = session

        logger.info("Created caption session %s", session_id)
        return session

    def get_session(self, session_id: str) -> Optional[CaptionSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> List[CaptionSession]:
        """All sessions, oldest first."""
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def apply_event(
        self,
        session_id: str,
        raw: Union[str, bytes, Dict[str, Any]],
    ) -> Optional[bool]:
        """Feed one raw realtime message to a session's assembler.

        Returns:
            Whether the transcript changed, or None if the session is unknown.

        Raises:
            SessionStoppedError: If the session has been stopped.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.stopped:
                raise SessionStoppedError(
                    "Session {} is stopped and accepts no events".format(session_id)
                )
            session.updated_at = time.time()
            return session.assembler.handle_message(raw)

    def stop_session(self, session_id: str) -> Optional[CaptionSession]:
        """Finalize the live utterance and mark the session stopped (idempotent)."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if not session.stopped:
                session.assembler.finalize()
                now = time.time()
                session.stopped_at = now
                session.updated_at = now
                session.notices.set_status("Not Recording")
        logger.info("Stopped caption session %s", session_id)
        return session

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info("Deleted caption session %s", session_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove sessions idle for longer than the TTL. Returns how many."""
        now = time.time()
        with self._lock:
            expired = [
                s for s in self._sessions.values()
                if now - s.updated_at > self._ttl_seconds
            ]
            for session in expired:
                del self._sessions[session.id]

        for session in expired:
            logger.info(
                "Expired caption session %s (idle %.0fs)",
                session.id, now - session.updated_at,
            )
        return len(expired)
