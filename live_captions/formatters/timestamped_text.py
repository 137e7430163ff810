"""Timestamped transcript: one line per finalized utterance.

WHY: Reviewing a recording is easier when each utterance carries the
time it was captured, e.g. to jump to the right spot in the source.

HOW: Each TranscriptEntry becomes ``[HH:MM:SS] text``. The in-progress
live utterance, if any, is appended as a final ``[live] text`` line so
nothing visible is lost.

RULES:
- Timestamps use the entry's own timezone, 24-hour clock
- Output suffix: "-timestamped.txt"
- Lines joined with "\\n", trailing newline when non-empty
"""

from __future__ import annotations

from typing import List

from live_captions.core.ir import TranscriptEntry, TranscriptState
from live_captions.formatters.base import BaseFormatter, FormatterOutput


def format_entry_line(entry: TranscriptEntry) -> str:
    return "[{}] {}".format(entry.timestamp.strftime("%H:%M:%S"), entry.text)


class TimestampedTextFormatter(BaseFormatter):
    @property
    def name(self) -> str:
        return "Timestamped Text"

    def format(self, state: TranscriptState) -> List[FormatterOutput]:
        lines = [format_entry_line(entry) for entry in state.entries]
        if state.live_text:
            lines.append("[live] {}".format(state.live_text))

        content = "\n".join(lines)
        if content:
            content += "\n"

        return [
            FormatterOutput(
                suffix="-timestamped.txt",
                content=content,
                media_type="text/plain",
            )
        ]
