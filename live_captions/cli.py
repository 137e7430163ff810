"""Command-line interface: replay recorded realtime event logs.

WHY: Live sessions are hard to reproduce. Recording the data-channel
messages of a session (one JSON event per line) and replaying them
through the transcript engine lets users rebuild a transcript after
the fact and lets developers debug merge and flush behavior offline.

HOW: Uses argparse to accept an events file, output format selection,
output directory, and the utterance timeout. Each line is fed through
a fresh TranscriptAssembler driven by a ManualClock; when a line
carries ``received_at_ms`` the clock jumps to that arrival time first,
so pause-based flushing matches the recorded session. The live
utterance is finalized at end of log and every selected formatter's
output is saved. Status messages go to stderr.

RULES:
- Positional argument: events file path (JSON Lines)
- Blank lines are skipped; malformed lines are logged and skipped
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-transcript-2.txt)
- --check-key reports whether an API key is configured and exits
- Status output goes to stderr (not stdout)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from live_captions.config import UTTERANCE_TIMEOUT_MS, credential_status
from live_captions.core.assembler import TranscriptAssembler
from live_captions.core.clock import ManualClock
from live_captions.core.ir import TranscriptState
from live_captions.formatters import FORMATTERS
from live_captions.formatters.base import FormatterOutput

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr, flushed."""
    print(msg, file=sys.stderr, flush=True)


def replay_events(
    lines: List[str],
    clock: Optional[ManualClock] = None,
    utterance_timeout_ms: int = UTTERANCE_TIMEOUT_MS,
) -> TranscriptState:
    """Feed recorded event lines through a fresh assembler.

    WHY: Shared by the CLI and tests; keeps file handling separate from
    the replay itself.

    HOW: For each non-blank line, decode it once to look for
    ``received_at_ms`` and advance the manual clock, then hand the raw
    line to the assembler exactly as a data-channel message would be.
    Finalizes the live utterance at the end.

    RULES:
    - received_at_ms is milliseconds since the start of the recording
    - A received_at_ms earlier than the clock is ignored (time never
      moves backwards)
    - Lines that fail to decode still go to the assembler, which logs
      and skips them

    Returns:
        The final transcript state.
    """
    clock = clock or ManualClock()
    errors: List[str] = []
    assembler = TranscriptAssembler(
        clock=clock,
        utterance_timeout_ms=utterance_timeout_ms,
        on_error=errors.append,
    )

    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue

        try:
            data = json.loads(line)
        except ValueError:
            data = None

        if isinstance(data, dict) and "received_at_ms" in data:
            try:
                clock.set_ms(float(data["received_at_ms"]))
            except (TypeError, ValueError):
                logger.warning(
                    "Line %d: ignoring invalid received_at_ms %r",
                    line_no, data["received_at_ms"],
                )

        assembler.handle_message(line)

    assembler.finalize()

    for message in errors:
        logger.warning("Recorded session reported: %s", message)

    return assembler.state


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    RULES:
    - First attempt: {stem}{suffix} (e.g. meeting-transcript.txt)
    - Conflict: insert counter before the extension
      (e.g. meeting-transcript-2.txt), counter starts at 2
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    # "-transcript.json" → ("-transcript", ".json")
    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(
    output: FormatterOutput,
    stem: str,
    output_dir: Path,
) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _check_key() -> int:
    status = credential_status()
    if status["has_key"]:
        _status("OpenAI API key configured.")
        return 0
    if status["from_env"]:
        _status("OPENAI_API_KEY is set but empty after trimming quotes and whitespace.")
    else:
        _status("OpenAI API key not found. Please set OPENAI_API_KEY in .env file")
    return 1


def _run_replay(args: argparse.Namespace) -> int:
    """Replay the events file and save every selected format.

    Returns:
        Process exit code.
    """
    input_path = Path(args.events_file).resolve()
    if not input_path.is_file():
        print("Error: File not found: {}".format(input_path), file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        print("Error: Output directory does not exist: {}".format(output_dir), file=sys.stderr)
        return 1

    if args.formats:
        format_keys = [f.strip() for f in args.formats.split(",") if f.strip()]
        for key in format_keys:
            if key not in FORMATTERS:
                available = ", ".join(sorted(FORMATTERS.keys()))
                print(
                    "Error: Unknown format '{}'. Available formats: {}".format(key, available),
                    file=sys.stderr,
                )
                return 1
    else:
        format_keys = list(FORMATTERS.keys())

    if args.timeout_ms <= 0:
        print("Error: --timeout-ms must be positive", file=sys.stderr)
        return 1

    _status("Replaying {}...".format(input_path.name))
    lines = input_path.read_text(encoding="utf-8").splitlines()
    state = replay_events(lines, utterance_timeout_ms=args.timeout_ms)
    _status("  {} lines, {} utterances".format(len(lines), len(state.entries)))

    _status("Formatting output...")
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(state):
            saved_path = _save_output(output, input_path.stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("")
    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - Positional: events_file (required unless --check-key)
    - Optional: --formats (comma-separated), --output-dir, --timeout-ms
    - Optional: --check-key, --verbose
    """
    parser = argparse.ArgumentParser(
        prog="live_captions",
        description="Rebuild a live-caption transcript from a recorded realtime "
                    "event log (JSON Lines). Use --serve to run the host service.",
    )

    parser.add_argument(
        "events_file",
        nargs="?",
        default=None,
        help="Path to the recorded events file (one JSON event per line).",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as events file).",
    )

    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=UTTERANCE_TIMEOUT_MS,
        help="Pause (ms) after which a new utterance starts (default: %(default)s).",
    )

    parser.add_argument(
        "--check-key",
        action="store_true",
        help="Report whether an OpenAI API key is configured, then exit.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log engine decisions (duplicates, flushes, skipped lines).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m live_captions`` and the console script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Always exits via SystemExit with the process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.check_key:
        sys.exit(_check_key())

    if not args.events_file:
        parser.error("the following arguments are required: events_file")

    sys.exit(_run_replay(args))


if __name__ == "__main__":
    main()
