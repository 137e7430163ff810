"""Text normalization and English-likeness classification.

WHY: The realtime service streams fragments with stray spaces before
punctuation, doubled marks ("Hello ,, world"), and now and then text in
another script. The assembler keeps a single-language, tidy transcript,
so every fragment passes through these two pure functions first.

HOW: normalize_text() is a fixed chain of regex substitutions.
is_likely_english() strips punctuation, measures the share of ASCII
alphanumerics, and falls back to a short list of non-Latin script
patterns for the ambiguous middle band.

RULES:
- Both functions are total: they never raise, empty input is fine
- normalize_text is idempotent: normalize(normalize(x)) == normalize(x)
- Punctuation marks handled: . , ! ? ; :
- A punctuation-only fragment counts as English (it is never rejected)
- is_likely_english is a heuristic filter, not a language detector
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?;:])")
_PUNCT_RUN_RE = re.compile(r"([.,!?;:])(?:\s*[.,!?;:])+")


def normalize_text(text: str) -> str:
    """Canonicalize whitespace and punctuation in a transcript fragment.

    HOW: Trim, collapse whitespace runs to one space, drop whitespace
    before punctuation marks, then collapse each run of punctuation
    marks (optionally space-separated) into its first mark.

    Args:
        text: Raw fragment text (may be empty).

    Returns:
        The normalized text; empty when the input is empty or blank.
    """
    if not text:
        return ""
    text = _WHITESPACE_RE.sub(" ", text.strip())
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _PUNCT_RUN_RE.sub(r"\1", text)
    return text.strip()


# ---------------------------------------------------------------------------
# English-likeness
# ---------------------------------------------------------------------------

# Characters removed before measuring: punctuation, whitespace, dashes, quotes.
_STRIP_RE = re.compile(r"[.,!?;:\s\-'\"]")
_ASCII_ALNUM_RE = re.compile(r"[A-Za-z0-9]")

_ENGLISH_RATIO = 0.8
_AMBIGUOUS_RATIO = 0.5

# Scripts that mark a fragment as non-English, checked in order.
_NON_ENGLISH_PATTERNS = (
    re.compile("[àáâãäåæçèéêëìíîïðñòóôõöøùúûüýþÿ]", re.IGNORECASE),  # Latin diacritics
    re.compile("[А-Яа-яЁё]"),                                         # Cyrillic
    re.compile("[一-龯]"),                                             # CJK ideographs
    re.compile("[\u3040-\u309f\u30a0-\u30ff]"),                         # Hiragana, Katakana
    re.compile("[ㄱ-ㅎㅏ-ㅣ가-힣]"),                                      # Hangul
    re.compile("[α-ωΑ-Ω]"),                                           # Greek
    re.compile("[א-ת]"),                                              # Hebrew
    re.compile("[ء-ي]"),                                              # Arabic
)


def is_likely_english(text: str) -> bool:
    """Return True if the fragment looks like English text.

    RULES:
    - Empty or whitespace-only input → False
    - Nothing left after stripping punctuation/quotes → True
    - ASCII alphanumeric ratio ≥ 0.8 → True
    - Any non-English script pattern matches → False
    - Otherwise True only if the ratio ≥ 0.5
    """
    if not text or not text.strip():
        return False

    cleaned = _STRIP_RE.sub("", text)
    if not cleaned:
        return True

    ratio = len(_ASCII_ALNUM_RE.findall(cleaned)) / len(cleaned)
    if ratio >= _ENGLISH_RATIO:
        return True

    for pattern in _NON_ENGLISH_PATTERNS:
        if pattern.search(text):
            return False

    return ratio >= _AMBIGUOUS_RATIO
