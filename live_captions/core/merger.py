"""Overlap-aware stitching of streaming transcript fragments.

WHY: Realtime fragments often repeat the tail of what was already
received ("the cat sat" followed by "sat on the mat"). Plain
concatenation would duplicate the shared words; the merger detects the
shared boundary region and keeps a single copy.

HOW: Both texts are split into whitespace-delimited words. Overlap
lengths 1..5 are tried in increasing order, comparing the last k words
of the existing text against the first k words of the incoming text,
case-insensitively. The first match wins.

RULES:
- Empty existing → incoming; empty incoming → existing (unchanged)
- Overlap cap: 5 words, bounded by the shorter word list
- Shortest overlap wins: k=1 is tried first and returned on match, so a
  longer genuine overlap is never found when a 1-word match exists
- On overlap k: existing minus its last k words, then all incoming words
- No overlap: existing + " " + incoming
"""

from __future__ import annotations

MAX_OVERLAP_WORDS = 5


def _find_overlap(existing_words: list[str], incoming_words: list[str]) -> int:
    """Return the first (shortest) suffix/prefix word overlap length, or 0."""
    max_overlap = min(len(existing_words), len(incoming_words), MAX_OVERLAP_WORDS)
    for k in range(1, max_overlap + 1):
        tail = " ".join(existing_words[-k:]).lower()
        head = " ".join(incoming_words[:k]).lower()
        if tail == head:
            return k
    return 0


def merge_text(existing: str, incoming: str) -> str:
    """Merge an incoming fragment onto the existing utterance text.

    Args:
        existing: The accumulated utterance text so far.
        incoming: The newly received fragment.

    Returns:
        The merged text. Words dropped from ``existing`` on overlap are
        replaced by ``incoming``'s spelling of them.
    """
    if not existing:
        return incoming
    if not incoming:
        return existing

    existing_words = existing.split()
    incoming_words = incoming.split()

    overlap = _find_overlap(existing_words, incoming_words)
    if overlap:
        return " ".join(existing_words[:-overlap] + incoming_words)

    return "{} {}".format(existing, incoming)
