"""Status text and auto-dismissing notifications for the presentation layer.

WHY: Connection changes, start/stop results and remote service errors
must reach the user, but transiently: each message shows for a few
seconds and then clears, and a newer message replaces an older one.
The driver and assembler post here; whatever renders the UI reads here.

HOW: NoticeBoard keeps one current Notice with an expiry computed from
the injected clock, plus a persistent status line. active() returns the
notice only while it has not expired, so no timer is needed to clear it.

RULES:
- post() replaces the current notice
- Notices expire after NOTICE_DISMISS_MS (5000 ms by default)
- Status text persists until the next set_status()
- Optional listener is called with every posted notice
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from live_captions.config import NOTICE_DISMISS_MS
from live_captions.core.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """One user-visible notification."""

    text: str
    is_error: bool
    expires_at: float


class NoticeBoard:
    def __init__(
        self,
        clock: Optional[Clock] = None,
        dismiss_ms: int = NOTICE_DISMISS_MS,
        listener: Optional[Callable[[Notice], None]] = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._dismiss_ms = dismiss_ms
        self._listener = listener
        self._current: Optional[Notice] = None
        self.status = "Not Recording"
        self.history: List[Notice] = []

    def post(self, text: str, is_error: bool = False) -> Notice:
        notice = Notice(
            text=text,
            is_error=is_error,
            expires_at=self._clock.monotonic() + self._dismiss_ms / 1000.0,
        )
        self._current = notice
        self.history.append(notice)
        if is_error:
            logger.warning("Notice: %s", text)
        else:
            logger.info("Notice: %s", text)
        if self._listener:
            self._listener(notice)
        return notice

    def error(self, text: str) -> Notice:
        return self.post(text, is_error=True)

    def active(self) -> Optional[Notice]:
        """The current notice, or None once it has been dismissed."""
        if self._current is None:
            return None
        if self._clock.monotonic() >= self._current.expires_at:
            self._current = None
        return self._current

    def set_status(self, text: str) -> None:
        self.status = text
