"""Parsing and classification of realtime service events.

WHY: The realtime data channel delivers JSON events of many named
kinds, several of which carry transcript text in different places. The
assembler only cares about five classes (delta text, final text,
errors, acknowledgements, everything else), so this module maps the
wire protocol onto those classes in one place.

HOW: parse_event() decodes a raw message (str, bytes or dict), derives
an event identity, and looks the event type up in a fixed mapping. Each
mapped type has an extractor that pulls the text out of the right field,
falling back through nested objects where the service nests them.

RULES:
- response.text.delta                 → delta  (delta)
- response.content_part.added         → delta  (part.text, part.type=text only)
- response.text.done                  → final  (text)
- response.content_part.done          → final  (part.text, part.type=text only)
- response.output_item.done           → final  (item.content[*].text|transcript,
                                                 item.type=message only)
- conversation.item.input_audio_transcription.completed → final (transcript | item.transcript)
- conversation.item.input_audio_transcription.delta     → delta (delta | item.delta)
- session.updated → acknowledgement; error → error (error.message)
- Anything else (including a mapped type whose guard fails) → ignored
- Events without event_id get a synthetic id with a random component;
  such ids never dedupe (known-lossy fallback)
"""

from __future__ import annotations

import enum
import json
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union


class EventParseError(ValueError):
    """Raised when a raw realtime message is not a JSON object."""


class EventClass(str, enum.Enum):
    """What the assembler should do with an event."""

    DELTA = "delta"
    FINAL = "final"
    ERROR = "error"
    ACK = "ack"
    IGNORED = "ignored"


@dataclass(frozen=True)
class RealtimeEvent:
    """A classified realtime event.

    RULES:
    - event_id: the service's event_id, or a synthetic one
    - text: extracted transcript text for DELTA/FINAL, else None
    - error_message: set for ERROR only
    """

    event_id: str
    type: str
    kind: EventClass
    text: Optional[str] = None
    error_message: Optional[str] = None


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _obj(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Return a nested object field, or {} when absent or not an object."""
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _content_text(content: Any) -> Optional[str]:
    """Join per-element text (or transcript) from a message content array."""
    if isinstance(content, list):
        pieces = []
        for element in content:
            element = element if isinstance(element, dict) else {}
            pieces.append(_str(element.get("text")) or _str(element.get("transcript")))
        return " ".join(pieces)
    if isinstance(content, str):
        return content
    return None


# ---------------------------------------------------------------------------
# Per-type extractors: return text, or None when the event's guard fails
# ---------------------------------------------------------------------------


def _text_part(data: Dict[str, Any]) -> Optional[str]:
    part = _obj(data, "part")
    if part.get("type") != "text":
        return None
    return _str(part.get("text"))


def _output_item(data: Dict[str, Any]) -> Optional[str]:
    item = _obj(data, "item")
    if item.get("type") != "message" or not item.get("content"):
        return None
    return _content_text(item["content"])


_Extractor = Callable[[Dict[str, Any]], Optional[str]]

_TEXT_EVENTS: Dict[str, Tuple[EventClass, _Extractor]] = {
    "response.text.delta": (
        EventClass.DELTA,
        lambda d: _str(d.get("delta")),
    ),
    "response.content_part.added": (EventClass.DELTA, _text_part),
    "response.text.done": (
        EventClass.FINAL,
        lambda d: _str(d.get("text")),
    ),
    "response.content_part.done": (EventClass.FINAL, _text_part),
    "response.output_item.done": (EventClass.FINAL, _output_item),
    "conversation.item.input_audio_transcription.completed": (
        EventClass.FINAL,
        lambda d: _str(d.get("transcript")) or _str(_obj(d, "item").get("transcript")),
    ),
    "conversation.item.input_audio_transcription.delta": (
        EventClass.DELTA,
        lambda d: _str(d.get("delta")) or _str(_obj(d, "item").get("delta")),
    ),
}

_ACK_EVENTS = frozenset({"session.updated"})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def event_identity(data: Dict[str, Any], now_ms: Optional[int] = None) -> str:
    """Return the event's id, or a synthetic best-effort one.

    The synthetic form is ``{type}-{item.id|response.id|now_ms}-{random}``.
    The random suffix means two deliveries of an id-less event are never
    recognised as the same event.
    """
    event_id = data.get("event_id")
    if isinstance(event_id, str) and event_id:
        return event_id

    reference = _obj(data, "item").get("id") or _obj(data, "response").get("id")
    if not reference:
        reference = now_ms if now_ms is not None else int(time.time() * 1000)
    return "{}-{}-{}".format(data.get("type"), reference, uuid.uuid4().hex)


def decode_message(raw: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """Decode a raw data-channel message into a JSON object.

    Raises:
        EventParseError: If the message is not valid JSON or not an object.
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventParseError("Realtime message is not UTF-8: {}".format(exc)) from exc
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise EventParseError("Realtime message is not valid JSON: {}".format(exc)) from exc
    if not isinstance(data, dict):
        raise EventParseError(
            "Realtime message must be a JSON object, got {}".format(type(data).__name__)
        )
    return data


def classify_event(data: Dict[str, Any], event_id: str) -> RealtimeEvent:
    """Map a decoded event onto its EventClass and extract its text."""
    event_type = _str(data.get("type"))

    if event_type in _TEXT_EVENTS:
        kind, extract = _TEXT_EVENTS[event_type]
        text = extract(data)
        if text is None:
            return RealtimeEvent(event_id, event_type, EventClass.IGNORED)
        return RealtimeEvent(event_id, event_type, kind, text=text)

    if event_type == "error":
        message = _str(_obj(data, "error").get("message")) or "Unknown error"
        return RealtimeEvent(event_id, event_type, EventClass.ERROR, error_message=message)

    if event_type in _ACK_EVENTS:
        return RealtimeEvent(event_id, event_type, EventClass.ACK)

    return RealtimeEvent(event_id, event_type, EventClass.IGNORED)


def parse_event(
    raw: Union[str, bytes, Dict[str, Any]],
    now_ms: Optional[int] = None,
) -> RealtimeEvent:
    """Decode, identify and classify one realtime message.

    Args:
        raw: The message as received from the data channel.
        now_ms: Milliseconds used in synthetic ids; defaults to wall time.

    Returns:
        The classified RealtimeEvent.

    Raises:
        EventParseError: If the message cannot be decoded.
    """
    data = decode_message(raw)
    return classify_event(data, event_identity(data, now_ms))
