"""Boundary contracts between the session driver and the host platform.

WHY: Audio capture, the peer connection and its data channel are
platform plumbing (a browser, an Electron shell, a native WebRTC
stack). The session driver must not depend on any of them, only on
what it needs from them. This module names those needs.

HOW: Two protocols and a message vocabulary:
  PeerTransport: capture, data channel, offer/answer, send, teardown
  HostBridge: capture-source listing, SDP exchange, credential check
  Messages: what a transport posts into the driver's inbound
    channel (ChannelOpened, InboundText, ...); timers use
    the same channel (TimerFired)
RealtimeHost is the stock HostBridge backed by RealtimeClient.

RULES:
- Transports never call the assembler; they only post messages
- Teardown methods may raise on already-invalid resources; the driver
  tolerates that
- pick_capture_source prefers screen/entire/desktop sources, else the first
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Union

from live_captions.api.client import fetch_answer_sdp
from live_captions.config import has_api_key

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SessionError(Exception):
    """Base class for failures that end (or prevent) a recording session."""


class ConfigurationError(SessionError):
    """No credential configured; the user must supply one and retry."""


class CapturePermissionError(SessionError):
    """Audio capture was denied or no audio source is available."""


class TransportError(SessionError):
    """The peer connection or data channel could not be established."""


# ---------------------------------------------------------------------------
# Capture sources
# ---------------------------------------------------------------------------

_PREFERRED_SOURCE_WORDS = ("screen", "entire", "desktop")


@dataclass(frozen=True)
class CaptureSource:
    id: str
    name: str


def pick_capture_source(sources: Sequence[CaptureSource]) -> Optional[CaptureSource]:
    """Prefer a whole-screen source; fall back to the first one listed."""
    for source in sources:
        name = source.name.lower()
        if any(word in name for word in _PREFERRED_SOURCE_WORDS):
            return source
    return sources[0] if sources else None


# ---------------------------------------------------------------------------
# Inbound channel messages
# ---------------------------------------------------------------------------


class TimerAction(str, enum.Enum):
    SEND_SESSION_CONFIG = "send_session_config"
    SEND_RESPONSE_REQUEST = "send_response_request"


@dataclass(frozen=True)
class ChannelOpened:
    pass


@dataclass(frozen=True)
class InboundText:
    data: Union[str, bytes]


@dataclass(frozen=True)
class ChannelError:
    detail: str = ""


@dataclass(frozen=True)
class ConnectionStateChanged:
    state: str


@dataclass(frozen=True)
class TimerFired:
    action: TimerAction
    generation: int


@dataclass(frozen=True)
class StopRequested:
    pass


DriverMessage = Union[
    ChannelOpened,
    InboundText,
    ChannelError,
    ConnectionStateChanged,
    TimerFired,
    StopRequested,
]

MessageSink = Callable[[DriverMessage], None]


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class PeerTransport(Protocol):
    """A peer connection carrying captured audio and an ordered data channel."""

    async def open_capture(self, source_id: Optional[str]) -> int:
        """Acquire system audio; return the number of audio tracks attached.

        Raises CapturePermissionError when the user denies capture or no
        source exists.
        """
        ...

    def open_channel(self, label: str, sink: MessageSink) -> None:
        """Create the data channel; post its events into ``sink``."""
        ...

    async def create_offer(self) -> str:
        ...

    async def accept_answer(self, answer_sdp: str) -> None:
        ...

    def send(self, message: str) -> None:
        ...

    def stop_tracks(self) -> None:
        ...

    def close_channel(self) -> None:
        ...

    def close(self) -> None:
        ...


class HostBridge(Protocol):
    async def list_capture_sources(self) -> List[CaptureSource]:
        ...

    async def exchange_offer(self, offer_sdp: str) -> str:
        ...

    def has_credentials(self) -> bool:
        ...


class RealtimeHost:
    """HostBridge that exchanges offers with the realtime HTTP endpoint.

    Capture-source listing is delegated to an optional coroutine supplied
    by the embedding application; without one no sources are listed and
    the transport picks its own default.
    """

    def __init__(
        self,
        list_sources: Optional[Callable[[], Awaitable[List[CaptureSource]]]] = None,
        **client_kwargs,
    ) -> None:
        self._list_sources = list_sources
        self._client_kwargs = client_kwargs

    async def list_capture_sources(self) -> List[CaptureSource]:
        if self._list_sources is None:
            return []
        return list(await self._list_sources())

    async def exchange_offer(self, offer_sdp: str) -> str:
        return await fetch_answer_sdp(offer_sdp, **self._client_kwargs)

    def has_credentials(self) -> bool:
        return bool(self._client_kwargs.get("api_key")) or has_api_key()
