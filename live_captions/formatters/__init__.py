"""Transcript formatter registry.

WHY: The CLI replay and the host service need a single lookup to find
the right formatter by name. A central dict makes it trivial to add
new formats: create the formatter class, import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["plain_text"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from live_captions.formatters.json_transcript import JsonTranscriptFormatter
from live_captions.formatters.plain_text import PlainTextFormatter
from live_captions.formatters.timestamped_text import TimestampedTextFormatter

if TYPE_CHECKING:
    from live_captions.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "plain_text": PlainTextFormatter,
    "timestamped_text": TimestampedTextFormatter,
    "json": JsonTranscriptFormatter,
}
