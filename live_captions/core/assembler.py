"""Incremental transcript assembly from realtime text events.

WHY: The realtime service streams an unordered, sometimes duplicated
mix of partial (delta) and complete (final) text fragments. Readers
need one coherent, growing transcript: finalized utterances in order,
plus the utterance currently being spoken. This module is the bridge
between raw data-channel messages and that transcript.

HOW: TranscriptAssembler owns a TranscriptState. handle_message()
parses and classifies a raw message, drops already-seen event ids,
filters empty and non-English text, then routes text into
apply_delta() or apply_final(). Deltas are normalized and merged into
the live utterance with the overlap merger; a long pause (or an empty
live buffer) flushes the live utterance into the log and starts a new
one. Finals flush first, then insert as a fresh utterance.

RULES:
- An event id is applied at most once (delta, final and error events)
- Empty-after-trim and non-English text is dropped silently
- A delta equal to the last merged fragment is ignored
- Elapsed time is measured before last_activity is updated, and
  last_activity is updated for every delta that reaches the timing step
- Elapsed > utterance timeout (4000 ms) or empty live text → flush + restart
- A merge that leaves the live text unchanged is a no-op
- Malformed messages are logged and skipped, never raised
- Error events go to the on_error callback and never touch the transcript
- Exceptions from on_update / on_error are logged, never raised
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Union

from live_captions.config import SEEN_EVENT_LIMIT, UTTERANCE_TIMEOUT_MS
from live_captions.core.clock import Clock, SystemClock
from live_captions.core.events import (
    EventClass,
    EventParseError,
    RealtimeEvent,
    parse_event,
)
from live_captions.core.ir import SeenEventIds, TranscriptEntry, TranscriptState
from live_captions.core.merger import merge_text
from live_captions.core.text import is_likely_english, normalize_text

logger = logging.getLogger(__name__)

RawMessage = Union[str, bytes, Dict[str, Any]]


class TranscriptAssembler:
    """Stateful engine turning realtime events into a transcript.

    WHY: Each recording session needs its own, freshly reset transcript
    state, and every mutation must happen through one serialized entry
    point so deduplication and timing stay consistent.

    HOW: Construct one assembler per session. Feed every inbound
    data-channel message to handle_message(). Call finalize() when the
    session stops. Observers receive the state after each mutation via
    on_update and remote error messages via on_error.

    RULES:
    - Not thread-safe; callers deliver messages serially
    - on_update is called once per mutating call, never for no-ops
    - reset() discards everything, including seen event ids
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        utterance_timeout_ms: int = UTTERANCE_TIMEOUT_MS,
        seen_event_limit: int = SEEN_EVENT_LIMIT,
        on_update: Optional[Callable[[TranscriptState], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self.utterance_timeout_ms = utterance_timeout_ms
        self._seen_event_limit = seen_event_limit
        self._on_update = on_update
        self._on_error = on_error
        self.state = self._fresh_state()

    def _fresh_state(self) -> TranscriptState:
        return TranscriptState(seen_event_ids=SeenEventIds(self._seen_event_limit))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Start over with an empty transcript (new recording session)."""
        self.state = self._fresh_state()
        self._notify()

    def finalize(self) -> bool:
        """Flush the live utterance, if any. Returns True if an entry was added."""
        if self._flush():
            self._notify()
            return True
        return False

    @property
    def visible_text(self) -> str:
        return self.state.visible_text()

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    def handle_message(self, raw: RawMessage) -> bool:
        """Apply one raw realtime message.

        Args:
            raw: The message as received (JSON text, bytes, or a decoded dict).

        Returns:
            True if the transcript changed, False otherwise.
        """
        try:
            event = parse_event(raw, now_ms=int(self._clock.monotonic() * 1000))
        except EventParseError as exc:
            logger.warning("Skipping malformed realtime message: %s", exc)
            return False
        return self.handle_event(event)

    def handle_event(self, event: RealtimeEvent) -> bool:
        """Apply an already classified event. Returns True on mutation."""
        seen = self.state.seen_event_ids
        if event.event_id in seen:
            logger.debug("Duplicate event %s ignored", event.event_id)
            return False

        if event.kind is EventClass.ERROR:
            seen.add(event.event_id)
            logger.warning("Realtime service error: %s", event.error_message)
            if self._on_error:
                try:
                    self._on_error("API Error: {}".format(event.error_message))
                except Exception:
                    logger.exception("on_error callback failed")
            return False

        if event.kind not in (EventClass.DELTA, EventClass.FINAL):
            logger.debug("Ignoring %s event %s", event.kind.value, event.type)
            return False

        seen.add(event.event_id)

        text = event.text or ""
        if not text.strip():
            return False
        if not is_likely_english(text):
            logger.debug("Dropping non-English fragment from %s", event.type)
            return False

        if event.kind is EventClass.DELTA:
            return self.apply_delta(text)
        return self.apply_final(text)

    # ------------------------------------------------------------------
    # Text application
    # ------------------------------------------------------------------

    def apply_delta(self, text: str) -> bool:
        """Merge a partial fragment into the live utterance.

        Returns:
            True if the transcript changed.
        """
        changed = self._insert(text)
        if changed:
            self._notify()
        return changed

    def apply_final(self, text: str) -> bool:
        """Close the live utterance, then start a new one from ``text``.

        Returns:
            True if the transcript changed (flush and/or insertion).
        """
        flushed = self._flush()
        inserted = self._insert(text)
        if flushed or inserted:
            self._notify()
        return flushed or inserted

    def _insert(self, text: str) -> bool:
        state = self.state
        normalized = normalize_text(text)
        if not normalized:
            return False

        if normalized == state.last_merge_text:
            logger.debug("Duplicate fragment suppressed")
            return False

        now = self._clock.monotonic()
        elapsed_ms = 0.0
        if state.last_activity is not None:
            elapsed_ms = (now - state.last_activity) * 1000.0
        state.last_activity = now

        if elapsed_ms > self.utterance_timeout_ms or not state.live_text:
            self._flush()
            state.live_text = normalized
            state.last_merge_text = normalized
            return True

        merged = normalize_text(merge_text(state.live_text, normalized))
        if merged == state.live_text:
            return False

        state.live_text = merged
        state.last_merge_text = normalized
        return True

    def _flush(self) -> bool:
        """Move the live utterance into the entry log. Returns True if it did."""
        state = self.state
        text = normalize_text(state.live_text)
        state.live_text = ""
        if not text:
            return False
        state.entries.append(TranscriptEntry(text=text, timestamp=self._clock.now()))
        logger.info("Utterance finalized (%d entries)", len(state.entries))
        return True

    def _notify(self) -> None:
        if not self._on_update:
            return
        try:
            self._on_update(self.state)
        except Exception:
            logger.exception("on_update callback failed")
