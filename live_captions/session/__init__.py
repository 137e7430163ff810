"""Recording session lifecycle and presentation-boundary state.

WHY: The transcript engine is pure; a live session also needs capture,
a peer connection, remote configuration, and user-visible status. This
package holds those pieces without tying them to a specific platform.

HOW: transport.py defines the host/transport contracts and the inbound
message vocabulary, driver.py runs the session over them, notices.py
keeps the status line and auto-dismissing notifications.
"""

from live_captions.session.driver import SessionDriver
from live_captions.session.notices import Notice, NoticeBoard
from live_captions.session.transport import (
    CapturePermissionError,
    CaptureSource,
    ConfigurationError,
    RealtimeHost,
    SessionError,
    TransportError,
)

__all__ = [
    "CapturePermissionError",
    "CaptureSource",
    "ConfigurationError",
    "Notice",
    "NoticeBoard",
    "RealtimeHost",
    "SessionDriver",
    "SessionError",
    "TransportError",
]
