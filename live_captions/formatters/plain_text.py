"""Plain text transcript: the same text the live caption view shows.

WHY: Readers want the transcript as it appeared on screen, finalized
utterances followed by whatever was still being spoken, as one block
of text.

HOW: Delegates to TranscriptState.visible_text(): entry texts joined by
single spaces, then the live text, trimmed.

RULES:
- Output suffix: "-transcript.txt"
- Trailing newline only when there is text
- render_live_view() returns the placeholder for an empty transcript
"""

from __future__ import annotations

from typing import List

from live_captions.core.ir import TranscriptState
from live_captions.formatters.base import BaseFormatter, FormatterOutput

PLACEHOLDER = "Start recording to see live captions..."


def render_live_view(state: TranscriptState) -> str:
    """Text for the live caption area, or the idle placeholder."""
    if state.is_empty:
        return PLACEHOLDER
    return state.visible_text()


class PlainTextFormatter(BaseFormatter):
    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, state: TranscriptState) -> List[FormatterOutput]:
        content = state.visible_text()
        if content:
            content += "\n"
        return [
            FormatterOutput(
                suffix="-transcript.txt",
                content=content,
                media_type="text/plain",
            )
        ]
