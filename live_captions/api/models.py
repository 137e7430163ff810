"""Outbound realtime configuration messages.

WHY: Once the data channel opens, the session driver sends exactly two
messages: a session update that configures modalities, audio formats,
voice-activity detection and sampling, and a response request scoped to
text output. Typed dataclasses make those payloads explicit and keep
the constants out of the driver.

HOW: Each dataclass maps 1:1 to a realtime API JSON object and exposes
to_dict() for serialization. session_update_message() and
response_create_message() return the complete wire messages built from
config defaults.

RULES:
- Modalities: ["text", "audio"] for the session, ["text"] for the response
- Audio in/out format: pcm16
- Server VAD: threshold 0.5, prefix padding 300 ms, silence 500 ms
- Temperature 0.6, max response output tokens 4096
- No tools; tool_choice "none"
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from live_captions.config import (
    RESPONSE_INSTRUCTIONS,
    SESSION_INSTRUCTIONS,
    TRANSCRIPTION_MODEL,
)


@dataclass
class TurnDetection:
    """Server-side voice activity detection settings."""

    type: str = "server_vad"
    threshold: float = 0.5
    prefix_padding_ms: int = 300
    silence_duration_ms: int = 500

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "threshold": self.threshold,
            "prefix_padding_ms": self.prefix_padding_ms,
            "silence_duration_ms": self.silence_duration_ms,
        }


@dataclass
class SessionConfig:
    """Body of the ``session.update`` message.

    RULES:
    - input_audio_transcription names the transcription model
    - tools is always empty for a transcription-only session
    """

    instructions: str = SESSION_INSTRUCTIONS
    modalities: List[str] = field(default_factory=lambda: ["text", "audio"])
    input_audio_format: str = "pcm16"
    output_audio_format: str = "pcm16"
    transcription_model: str = TRANSCRIPTION_MODEL
    turn_detection: TurnDetection = field(default_factory=TurnDetection)
    temperature: float = 0.6
    max_response_output_tokens: int = 4096

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modalities": list(self.modalities),
            "instructions": self.instructions,
            "input_audio_format": self.input_audio_format,
            "output_audio_format": self.output_audio_format,
            "input_audio_transcription": {"model": self.transcription_model},
            "turn_detection": self.turn_detection.to_dict(),
            "tools": [],
            "tool_choice": "none",
            "temperature": self.temperature,
            "max_response_output_tokens": self.max_response_output_tokens,
        }


@dataclass
class ResponseRequest:
    """Body of the ``response.create`` message."""

    instructions: str = RESPONSE_INSTRUCTIONS
    modalities: List[str] = field(default_factory=lambda: ["text"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modalities": list(self.modalities),
            "instructions": self.instructions,
        }


def session_update_message(config: SessionConfig | None = None) -> str:
    """Serialize the session-configuration message sent after channel open."""
    config = config or SessionConfig()
    return json.dumps({"type": "session.update", "session": config.to_dict()})


def response_create_message(request: ResponseRequest | None = None) -> str:
    """Serialize the response request sent after the session update."""
    request = request or ResponseRequest()
    return json.dumps({"type": "response.create", "response": request.to_dict()})
