"""Recording session lifecycle: connect, configure, route, tear down.

WHY: A recording session has to acquire system audio, open a peer
connection and data channel, trade session descriptions with the
realtime service, configure the remote session once the channel is
open, feed every inbound message to the transcript assembler, and
release everything when the user stops or the connection fails. Doing
this with scattered callbacks makes the ordering of timers relative to
teardown impossible to reason about.

HOW: SessionDriver owns one inbound channel (an asyncio.Queue). The
transport posts data-channel and connection events into it through a
sink stamped with the session generation; the two configuration delays
are scheduled as TimerFired messages on the same queue, tagged the same
way. run() drains the queue and dispatch() handles one message at a
time, so all transcript mutation is serialized. stop() bumps the
generation, which turns anything still queued or pending from the old
session into a no-op, and wakes run() so it can return.

RULES:
- start() refuses to run without credentials (ConfigurationError)
- start() resets the assembler: no carry-over between sessions
- Any start failure posts "Failed to start recording: ..." and unwinds
  every acquired resource before re-raising as a SessionError
- Channel open → session.update after 1000 ms → response.create 500 ms later
- Timers only send if their generation is current and a transport is live
- Transport messages queued by an earlier session are dropped unread
- run() returns once the session is torn down, however stop() was reached
- Connection "failed"/"disconnected" → error notice, then stop()
- stop() is synchronous: finalize live text, then release media tracks,
  data channel and peer connection in that order, ignoring errors
- No retries: a failed start needs a fresh start()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Tuple

from live_captions.api.models import response_create_message, session_update_message
from live_captions.config import RESPONSE_REQUEST_DELAY_MS, SESSION_CONFIG_DELAY_MS
from live_captions.core.assembler import TranscriptAssembler
from live_captions.core.clock import Clock, SystemClock
from live_captions.session.notices import NoticeBoard
from live_captions.session.transport import (
    CapturePermissionError,
    ChannelError,
    ChannelOpened,
    ConfigurationError,
    ConnectionStateChanged,
    DriverMessage,
    HostBridge,
    InboundText,
    PeerTransport,
    SessionError,
    StopRequested,
    TimerAction,
    TimerFired,
    TransportError,
    pick_capture_source,
)

logger = logging.getLogger(__name__)

# (delay_seconds, callback) -> handle
Scheduler = Callable[[float, Callable[[], None]], Any]

# (generation or None for unstamped posts, message or None for a wake-up)
QueuedMessage = Tuple[Optional[int], Optional[DriverMessage]]

_CONNECTED_STATES = frozenset({"connected", "completed"})
_LOST_STATES = frozenset({"failed", "disconnected"})

MISSING_KEY_MESSAGE = "OpenAI API key not found. Please set OPENAI_API_KEY in .env file"


def _loop_scheduler(delay_s: float, callback: Callable[[], None]) -> Any:
    return asyncio.get_running_loop().call_later(delay_s, callback)


class SessionDriver:
    """Drives one recording session at a time over a PeerTransport.

    WHY: Keeps the external-connection lifecycle out of the assembler
    while guaranteeing the assembler only ever sees serialized input.

    HOW: Construct with a HostBridge, a transport factory, and
    optionally a clock, notice board and scheduler (tests inject a
    manual scheduler). Typical use::

        await driver.start()
        await driver.run()          # returns after stop

    Call request_stop() from other tasks to stop through the queue.
    """

    def __init__(
        self,
        host: HostBridge,
        transport_factory: Callable[[], PeerTransport],
        clock: Optional[Clock] = None,
        notices: Optional[NoticeBoard] = None,
        assembler: Optional[TranscriptAssembler] = None,
        scheduler: Optional[Scheduler] = None,
        session_config_delay_ms: int = SESSION_CONFIG_DELAY_MS,
        response_request_delay_ms: int = RESPONSE_REQUEST_DELAY_MS,
    ) -> None:
        self._host = host
        self._transport_factory = transport_factory
        self._clock = clock or SystemClock()
        self.notices = notices or NoticeBoard(clock=self._clock)
        self.assembler = assembler or TranscriptAssembler(
            clock=self._clock,
            on_error=self.notices.error,
        )
        self._scheduler = scheduler or _loop_scheduler
        self._session_config_delay_ms = session_config_delay_ms
        self._response_request_delay_ms = response_request_delay_ms
        self._queue: asyncio.Queue[QueuedMessage] = asyncio.Queue()
        self._transport: Optional[PeerTransport] = None
        self._generation = 0
        self.is_recording = False

    @property
    def is_active(self) -> bool:
        """True while a transport is held (from start() until teardown)."""
        return self._transport is not None

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # Inbound channel
    # ------------------------------------------------------------------

    def post(self, message: DriverMessage) -> None:
        """Enqueue a message for serialized handling (timer/caller side)."""
        self._queue.put_nowait((None, message))

    def request_stop(self) -> None:
        self.post(StopRequested())

    def _transport_sink(self, generation: int) -> Callable[[DriverMessage], None]:
        def sink(message: DriverMessage) -> None:
            self._queue.put_nowait((generation, message))
        return sink

    def _process(self, item: QueuedMessage) -> None:
        generation, message = item
        if message is None:
            return
        if generation is not None and generation != self._generation:
            logger.debug(
                "Dropping %s from session %d", type(message).__name__, generation
            )
            return
        self.dispatch(message)

    async def run(self) -> None:
        """Drain the inbound channel until the session is torn down."""
        while True:
            self._process(await self._queue.get())
            if not self.is_active:
                break

    async def record(self) -> None:
        """start() followed by run()."""
        await self.start()
        await self.run()

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Acquire audio, open the channel and connect to the realtime service.

        Raises:
            ConfigurationError: No credential is configured.
            CapturePermissionError: Audio capture denied or unavailable.
            TransportError: Offer/answer exchange or connection setup failed.
        """
        if self.is_active:
            raise SessionError("A recording session is already running")

        if not self._host.has_credentials():
            self.notices.error(MISSING_KEY_MESSAGE)
            raise ConfigurationError(MISSING_KEY_MESSAGE)

        self._generation += 1
        self.assembler.reset()
        transport = self._transport_factory()
        self._transport = transport

        try:
            source_id = await self._preferred_source_id()
            tracks = await transport.open_capture(source_id)
            if tracks <= 0:
                raise CapturePermissionError("No audio track available.")

            transport.open_channel("events", self._transport_sink(self._generation))

            offer_sdp = await transport.create_offer()
            answer_sdp = await self._host.exchange_offer(offer_sdp)
            await transport.accept_answer(answer_sdp)
        except Exception as exc:
            logger.exception("Recording start failed")
            self.notices.error("Failed to start recording: {}".format(exc))
            self.stop()
            if isinstance(exc, SessionError):
                raise
            raise TransportError(str(exc)) from exc

        self.is_recording = True
        self.notices.set_status("Recording System Audio...")
        self.notices.post(
            "Recording started. Play your audio file to begin transcription."
        )
        logger.info("Recording session %d started", self._generation)

    def stop(self) -> None:
        """Finalize the transcript and release every session resource."""
        self.is_recording = False
        self._generation += 1
        self.notices.set_status("Not Recording")
        self.assembler.finalize()
        self._teardown()
        # wake run() if it is waiting on an otherwise silent queue
        self._queue.put_nowait((self._generation, None))

    async def _preferred_source_id(self) -> Optional[str]:
        try:
            sources = await self._host.list_capture_sources()
        except Exception:
            logger.warning("Could not list capture sources", exc_info=True)
            return None
        source = pick_capture_source(sources)
        return source.id if source else None

    def _teardown(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        for release in ("stop_tracks", "close_channel", "close"):
            try:
                getattr(transport, release)()
            except Exception:
                logger.warning("Ignoring teardown error in %s", release, exc_info=True)
        logger.info("Recording session resources released")

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def dispatch(self, message: DriverMessage) -> None:
        """Handle one inbound message. All session mutation happens here."""
        if isinstance(message, StopRequested):
            self.stop()
        elif not self.is_active:
            logger.debug("Dropping %s received after teardown", type(message).__name__)
        elif isinstance(message, InboundText):
            self.assembler.handle_message(message.data)
        elif isinstance(message, ChannelOpened):
            self.notices.post("Connected to OpenAI Realtime API")
            self._schedule(TimerAction.SEND_SESSION_CONFIG, self._session_config_delay_ms)
        elif isinstance(message, TimerFired):
            self._on_timer(message)
        elif isinstance(message, ConnectionStateChanged):
            self._on_connection_state(message.state)
        elif isinstance(message, ChannelError):
            logger.error("Data channel error: %s", message.detail)
            self.notices.error("Data channel error occurred")
        else:
            logger.warning("Unknown driver message %r", message)

    def _schedule(self, action: TimerAction, delay_ms: int) -> None:
        message = TimerFired(action=action, generation=self._generation)
        self._scheduler(delay_ms / 1000.0, lambda: self.post(message))

    def _on_timer(self, timer: TimerFired) -> None:
        if timer.generation != self._generation:
            logger.debug("Stale %s timer ignored", timer.action.value)
            return

        if timer.action is TimerAction.SEND_SESSION_CONFIG:
            if self._send(session_update_message()):
                logger.info("Session configuration sent")
                self._schedule(
                    TimerAction.SEND_RESPONSE_REQUEST,
                    self._response_request_delay_ms,
                )
        elif timer.action is TimerAction.SEND_RESPONSE_REQUEST:
            if self._send(response_create_message()):
                logger.info("Transcription response requested")

    def _send(self, payload: str) -> bool:
        try:
            self._transport.send(payload)
        except Exception:
            logger.exception("Error sending configuration")
            return False
        return True

    def _on_connection_state(self, state: str) -> None:
        self.notices.set_status("Connection: {}".format(state))
        if state in _CONNECTED_STATES:
            self.notices.post("WebRTC connection established")
        elif state in _LOST_STATES:
            self.notices.error("Connection lost.")
            self.stop()
