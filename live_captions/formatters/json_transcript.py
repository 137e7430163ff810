"""JSON transcript export, validated against a bundled JSON Schema.

WHY: Downstream tools (note takers, search indexes) want structured
utterances with timestamps rather than a flat text blob.

HOW: Builds ``{"entries": [{"text", "timestamp"}], "live_text", "text"}``
with ISO 8601 timestamps, validates it with jsonschema against
transcript_schema.json (shipped next to this module), then serializes.

RULES:
- Schema validation is mandatory: raises on invalid output
- "text" is the same visible text the plain-text formatter writes
- Output suffix: "-transcript.json"
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from live_captions.core.ir import TranscriptState
from live_captions.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent / "transcript_schema.json"

_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def transcript_to_dict(state: TranscriptState) -> dict[str, Any]:
    """Plain-data view of the transcript, shared with the host service."""
    return {
        "entries": [
            {"text": entry.text, "timestamp": entry.timestamp.isoformat()}
            for entry in state.entries
        ],
        "live_text": state.live_text,
        "text": state.visible_text(),
    }


class JsonTranscriptFormatter(BaseFormatter):
    @property
    def name(self) -> str:
        return "JSON Transcript"

    def format(self, state: TranscriptState) -> list[FormatterOutput]:
        """Render the transcript as schema-checked JSON.

        Raises:
            jsonschema.ValidationError: If the output does not match the schema.
        """
        output = transcript_to_dict(state)
        jsonschema.validate(instance=output, schema=_get_schema())

        return [
            FormatterOutput(
                suffix="-transcript.json",
                content=json.dumps(output, indent=2, ensure_ascii=False),
                media_type="application/json",
            )
        ]
