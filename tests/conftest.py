"""Shared test fixtures for the live_captions test suite.

WHY: Engine, driver, server and CLI tests all need the same building
blocks: a clock that only moves when told to, realtime events shaped
like the service sends them, and fake host/transport objects that
record what the session driver did to them.

HOW: Plain helper functions build event dicts; pytest fixtures hand out
a fresh ManualClock, an assembler wired to it, and fake boundary
objects. FakeTransport records every call in ``calls`` so ordering can
be asserted.

RULES:
- No test touches the network or real audio devices
- Event ids are explicit unless a test is about synthetic ids
- ManualScheduler never fires on its own; tests call fire_all()
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from live_captions.core.assembler import TranscriptAssembler
from live_captions.core.clock import ManualClock
from live_captions.session.transport import CaptureSource


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------


def text_delta(delta: str, event_id: Optional[str] = "evt_1") -> Dict[str, Any]:
    event: Dict[str, Any] = {"type": "response.text.delta", "delta": delta}
    if event_id is not None:
        event["event_id"] = event_id
    return event


def text_done(text: str, event_id: Optional[str] = "evt_done") -> Dict[str, Any]:
    event: Dict[str, Any] = {"type": "response.text.done", "text": text}
    if event_id is not None:
        event["event_id"] = event_id
    return event


def error_event(message: Optional[str], event_id: str = "evt_err") -> Dict[str, Any]:
    error = {"type": "invalid_request_error"}
    if message is not None:
        error["message"] = message
    return {"type": "error", "event_id": event_id, "error": error}


def as_json(event: Dict[str, Any]) -> str:
    return json.dumps(event)


# ---------------------------------------------------------------------------
# Fake boundary objects
# ---------------------------------------------------------------------------


class FakeTransport:
    """PeerTransport double that records calls and can be told to fail."""

    def __init__(
        self,
        tracks: int = 1,
        fail_on: Optional[str] = None,
        answer_error: Optional[Exception] = None,
    ) -> None:
        self.tracks = tracks
        self.fail_on = fail_on
        self.calls: List[str] = []
        self.sent: List[str] = []
        self.sink: Optional[Callable[[Any], None]] = None
        self.source_id: Optional[str] = None
        self.answer: Optional[str] = None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError("{} failed".format(name))

    async def open_capture(self, source_id: Optional[str]) -> int:
        self.source_id = source_id
        self._record("open_capture")
        return self.tracks

    def open_channel(self, label: str, sink: Callable[[Any], None]) -> None:
        self._record("open_channel")
        self.sink = sink

    async def create_offer(self) -> str:
        self._record("create_offer")
        return "v=0 offer"

    async def accept_answer(self, answer_sdp: str) -> None:
        self._record("accept_answer")
        self.answer = answer_sdp

    def send(self, message: str) -> None:
        self._record("send")
        self.sent.append(message)

    def stop_tracks(self) -> None:
        self._record("stop_tracks")

    def close_channel(self) -> None:
        self._record("close_channel")

    def close(self) -> None:
        self._record("close")


class FakeHost:
    """HostBridge double with configurable credentials and answer."""

    def __init__(
        self,
        has_key: bool = True,
        sources: Optional[List[CaptureSource]] = None,
        answer: str = "v=0 answer",
        exchange_error: Optional[Exception] = None,
    ) -> None:
        self.has_key = has_key
        self.sources = sources if sources is not None else [
            CaptureSource(id="window:1", name="Music Player"),
            CaptureSource(id="screen:0", name="Entire Screen"),
        ]
        self.answer = answer
        self.exchange_error = exchange_error
        self.offers: List[str] = []

    async def list_capture_sources(self) -> List[CaptureSource]:
        return list(self.sources)

    async def exchange_offer(self, offer_sdp: str) -> str:
        self.offers.append(offer_sdp)
        if self.exchange_error is not None:
            raise self.exchange_error
        return self.answer

    def has_credentials(self) -> bool:
        return self.has_key


class ManualScheduler:
    """Scheduler that queues callbacks until the test fires them."""

    def __init__(self) -> None:
        self.pending: List[Tuple[float, Callable[[], None]]] = []

    def __call__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self.pending.append((delay_s, callback))

    def fire_all(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def assembler(clock: ManualClock) -> TranscriptAssembler:
    return TranscriptAssembler(clock=clock)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture(autouse=True)
def _no_real_api_key(monkeypatch):
    """Tests never see a developer's real key; tests that need one set it."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
