"""Transcript state dataclasses for the incremental assembler.

WHY: The assembler needs an explicit, per-session home for everything
it tracks: the finalized history, the in-progress utterance, the last
merged fragment, the time of the last merge, and which remote events
were already applied. Keeping it in one value (instead of module
globals) means a new recording gets a genuinely fresh state.

HOW: Three types:
  TranscriptEntry: one finalized utterance (immutable)
  SeenEventIds: insertion-ordered set of applied event ids, with an
    optional size cap that evicts the oldest ids
  TranscriptState: the mutable per-session container

RULES:
- entries only grow; an appended TranscriptEntry is never changed
- live_text is normalized, has no leading/trailing whitespace
- last_activity is a monotonic reading in seconds, None before any merge
- SeenEventIds with max_size=0 never evicts (unbounded)
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional


@dataclass(frozen=True)
class TranscriptEntry:
    """A finalized utterance in the transcript log.

    RULES:
    - text: normalized, non-empty
    - timestamp: wall-clock time at which the utterance was flushed
    """

    text: str
    timestamp: datetime


class SeenEventIds:
    """Insertion-ordered set of remote event identifiers.

    WHY: The realtime service may deliver the same event more than once.
    Remembering applied ids prevents re-applying them; a long session
    would otherwise grow the set without limit.

    HOW: An OrderedDict used as an ordered set. When max_size is
    positive and exceeded, the oldest ids are dropped first.
    """

    def __init__(self, max_size: int = 0) -> None:
        self._ids: OrderedDict[str, None] = OrderedDict()
        self.max_size = max_size

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def add(self, event_id: str) -> None:
        if event_id in self._ids:
            return
        self._ids[event_id] = None
        if self.max_size > 0:
            while len(self._ids) > self.max_size:
                self._ids.popitem(last=False)

    def clear(self) -> None:
        self._ids.clear()


@dataclass
class TranscriptState:
    """Everything the assembler knows about the current session.

    RULES:
    - entries: finalized history, insertion order, append-only
    - live_text: the in-progress utterance ("" when empty)
    - last_merge_text: last fragment successfully merged (duplicate guard)
    - last_activity: monotonic seconds of the last processed delta
    - seen_event_ids: ids already applied
    """

    entries: list[TranscriptEntry] = field(default_factory=list)
    live_text: str = ""
    last_merge_text: str = ""
    last_activity: Optional[float] = None
    seen_event_ids: SeenEventIds = field(default_factory=SeenEventIds)

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.live_text

    def visible_text(self) -> str:
        """Finalized entries joined by single spaces, then the live text."""
        parts = [entry.text for entry in self.entries]
        if self.live_text:
            parts.append(self.live_text)
        return " ".join(parts).strip()
