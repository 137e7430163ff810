"""Abstract base formatter and output container.

WHY: Every output format consumes the same TranscriptState but produces
different file content. This base class enforces a consistent interface
so the CLI replay and the host service can work with any formatter
generically.

HOW: BaseFormatter is an ABC with two requirements: a ``name`` property
and a ``format()`` method. FormatterOutput is a plain dataclass that
bundles a file suffix with its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` returns a list; current formatters return one item
- ``suffix`` starts with a hyphen, e.g. ``"-transcript.txt"``
- The caller is responsible for prepending the source filename stem
- Formatters never mutate the state they are given
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from live_captions.core.ir import TranscriptState


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-transcript.txt"`` → ``"meeting-transcript.txt"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"text/plain"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all transcript formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Plain Text'."""

    @abstractmethod
    def format(self, state: TranscriptState) -> list[FormatterOutput]:
        """Render the transcript state into one or more output files."""
