"""Live Captions: incremental transcript assembly for realtime system-audio transcription.

WHY: A realtime transcription service streams overlapping, duplicated,
partial and final text fragments. Readers want one clean, growing
transcript. This package turns that noisy stream into finalized
utterances plus a live in-progress line.

HOW: Three layers: core (normalize, merge, classify events, assemble),
session (connection lifecycle around a pluggable transport), and
outer surfaces (formatters, offline replay CLI, FastAPI host service).

RULES:
- The core is pure Python and free of I/O
- All transcript mutation goes through TranscriptAssembler
- One TranscriptState per recording session, never shared
"""

__version__ = "0.1.0"
