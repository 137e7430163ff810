"""Tests for the incremental transcript assembler.

WHY: The assembler is the heart of the caption pipeline. These tests
pin down the observable behavior readers depend on: deltas merge into
one live utterance, pauses and finals start new utterances, repeated
deliveries do nothing, and stopping never loses text.

HOW: Events are fed as dicts or JSON strings through handle_message(),
with a ManualClock standing in for wall time.
"""

from __future__ import annotations

from typing import List

from live_captions.core.assembler import TranscriptAssembler
from live_captions.core.clock import ManualClock
from live_captions.core.ir import TranscriptState

from .conftest import as_json, error_event, text_delta, text_done


def _entry_texts(assembler: TranscriptAssembler) -> List[str]:
    return [entry.text for entry in assembler.state.entries]


# ---------------------------------------------------------------------------
# Deltas and pauses
# ---------------------------------------------------------------------------


class TestDeltas:
    def test_two_deltas_within_timeout_merge(self, assembler, clock):
        assembler.handle_message(text_delta("Hello", "e1"))
        clock.advance(300)
        assembler.handle_message(text_delta(" world", "e2"))

        assert assembler.state.live_text == "Hello world"
        assert assembler.state.entries == []

    def test_pause_longer_than_timeout_flushes(self, assembler, clock):
        assembler.handle_message(text_delta("First sentence", "e1"))
        clock.advance(4001)
        assembler.handle_message(text_delta("Second one", "e2"))

        assert _entry_texts(assembler) == ["First sentence"]
        assert assembler.state.live_text == "Second one"

    def test_pause_of_exactly_timeout_does_not_flush(self, assembler, clock):
        assembler.handle_message(text_delta("one", "e1"))
        clock.advance(4000)
        assembler.handle_message(text_delta("two", "e2"))

        assert assembler.state.entries == []
        assert assembler.state.live_text == "one two"

    def test_entry_timestamp_is_flush_time(self, assembler, clock):
        assembler.handle_message(text_delta("early", "e1"))
        clock.advance(5000)
        assembler.handle_message(text_delta("late", "e2"))

        assert assembler.state.entries[0].timestamp == clock.now()

    def test_overlapping_deltas(self, assembler, clock):
        assembler.handle_message(text_delta("the cat sat", "e1"))
        clock.advance(100)
        assembler.handle_message(text_delta("sat on the mat", "e2"))
        assert assembler.state.live_text == "the cat sat on the mat"

    def test_delta_is_normalized(self, assembler):
        assembler.handle_message(text_delta("  Hello ,  there !! ", "e1"))
        assert assembler.state.live_text == "Hello, there!"

    def test_repeated_fragment_suppressed(self, assembler, clock):
        assert assembler.handle_message(text_delta("again", "e1")) is True
        clock.advance(100)
        assert assembler.handle_message(text_delta("again", "e2")) is False
        assert assembler.state.live_text == "again"

    def test_repeated_fragment_does_not_refresh_activity(self, assembler, clock):
        assembler.handle_message(text_delta("steady", "e1"))
        clock.advance(3000)
        assembler.handle_message(text_delta("steady", "e2"))
        clock.advance(3000)
        assembler.handle_message(text_delta("onward", "e3"))

        assert _entry_texts(assembler) == ["steady"]
        assert assembler.state.live_text == "onward"

    def test_merge_without_change_is_noop(self, assembler, clock):
        updates: List[TranscriptState] = []
        assembler._on_update = updates.append

        assembler.handle_message(text_delta("we are here", "e1"))
        clock.advance(100)
        assembler.handle_message(text_delta("here", "e2"))

        assert assembler.state.live_text == "we are here"
        assert len(updates) == 1

    def test_blank_delta_dropped(self, assembler):
        assert assembler.handle_message(text_delta("   ", "e1")) is False
        assert assembler.state.is_empty

    def test_non_english_dropped(self, assembler):
        assert assembler.handle_message(text_delta("こんにちは", "e1")) is False
        assert assembler.state.is_empty

    def test_punctuation_only_delta_accepted(self, assembler):
        assert assembler.handle_message(text_delta("...", "e1")) is True
        assert assembler.state.live_text == "."


# ---------------------------------------------------------------------------
# Finals
# ---------------------------------------------------------------------------


class TestFinals:
    def test_final_flushes_live_then_starts_new(self, assembler, clock):
        assembler.handle_message(text_delta("partial words", "e1"))
        clock.advance(200)
        assembler.handle_message(text_done("Complete sentence.", "e2"))

        assert _entry_texts(assembler) == ["partial words"]
        assert assembler.state.live_text == "Complete sentence."

    def test_final_on_empty_buffer(self, assembler):
        assembler.handle_message(text_done("Just this.", "e1"))
        assert assembler.state.entries == []
        assert assembler.state.live_text == "Just this."

    def test_consecutive_finals(self, assembler):
        assembler.handle_message(text_done("One.", "e1"))
        assembler.handle_message(text_done("Two.", "e2"))
        assembler.handle_message(text_done("Three.", "e3"))

        assert _entry_texts(assembler) == ["One.", "Two."]
        assert assembler.state.live_text == "Three."

    def test_transcription_completed_event(self, assembler):
        assembler.handle_message({
            "type": "conversation.item.input_audio_transcription.completed",
            "event_id": "e1",
            "transcript": "From audio.",
        })
        assert assembler.state.live_text == "From audio."


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------


class TestDeduplication:
    def test_same_event_id_applied_once(self, assembler, clock):
        updates: List[TranscriptState] = []
        assembler._on_update = updates.append

        assert assembler.handle_message(as_json(text_delta("Hello", "dup"))) is True
        clock.advance(100)
        assert assembler.handle_message(as_json(text_delta("different", "dup"))) is False

        assert assembler.state.live_text == "Hello"
        assert len(updates) == 1

    def test_duplicate_final_not_reapplied(self, assembler):
        assembler.handle_message(text_done("Only once.", "f1"))
        assembler.handle_message(text_done("Only once.", "f1"))
        assembler.finalize()
        assert _entry_texts(assembler) == ["Only once."]

    def test_filtered_events_still_recorded(self, assembler):
        assembler.handle_message(text_delta("こんにちは", "e1"))
        assert "e1" in assembler.state.seen_event_ids

    def test_ignored_types_not_recorded(self, assembler):
        assembler.handle_message({"type": "session.updated", "event_id": "s1"})
        assert "s1" not in assembler.state.seen_event_ids

    def test_seen_ids_bounded(self, clock):
        assembler = TranscriptAssembler(clock=clock, seen_event_limit=2)
        for i in range(3):
            assembler.handle_message(text_delta("word{}".format(i), "e{}".format(i)))
        assert list(assembler.state.seen_event_ids) == ["e1", "e2"]


# ---------------------------------------------------------------------------
# Errors and malformed input
# ---------------------------------------------------------------------------


class TestErrors:
    def test_error_event_reported_once(self, clock):
        errors: List[str] = []
        assembler = TranscriptAssembler(clock=clock, on_error=errors.append)

        assembler.handle_message(error_event("Rate limit exceeded", "x1"))
        assembler.handle_message(error_event("Rate limit exceeded", "x1"))

        assert errors == ["API Error: Rate limit exceeded"]
        assert assembler.state.is_empty

    def test_error_without_message(self, clock):
        errors: List[str] = []
        assembler = TranscriptAssembler(clock=clock, on_error=errors.append)
        assembler.handle_message(error_event(None))
        assert errors == ["API Error: Unknown error"]

    def test_error_does_not_disturb_transcript(self, clock):
        assembler = TranscriptAssembler(clock=clock, on_error=lambda msg: None)
        assembler.handle_message(text_delta("keep me", "e1"))
        assembler.handle_message(error_event("boom"))
        assert assembler.state.live_text == "keep me"

    def test_malformed_message_skipped(self, assembler, caplog):
        assert assembler.handle_message("{not json") is False
        assert assembler.handle_message("[]") is False
        assert assembler.state.is_empty
        assert "malformed" in caplog.text

    def test_processing_continues_after_malformed(self, assembler):
        assembler.handle_message("garbage")
        assembler.handle_message(text_delta("still works", "e1"))
        assert assembler.state.live_text == "still works"

    def test_failing_callbacks_do_not_escape(self, clock, caplog):
        def explode(_):
            raise RuntimeError("listener crashed")

        assembler = TranscriptAssembler(clock=clock, on_update=explode, on_error=explode)

        assert assembler.handle_message(error_event("boom", "x1")) is False
        assert assembler.handle_message(text_delta("still here", "e1")) is True

        assert assembler.state.live_text == "still here"
        assert "callback failed" in caplog.text


# ---------------------------------------------------------------------------
# Stop / reset
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_finalize_appends_one_entry(self, assembler, clock):
        assembler.handle_message(text_delta("first part", "e1"))
        clock.advance(5000)
        assembler.handle_message(text_delta("still talking", "e2"))
        before = assembler.visible_text

        assert assembler.finalize() is True

        assert _entry_texts(assembler) == ["first part", "still talking"]
        assert assembler.state.live_text == ""
        assert assembler.visible_text == before.strip()

    def test_finalize_empty_is_noop(self, assembler):
        assert assembler.finalize() is False
        assert assembler.state.entries == []

    def test_reset_clears_everything(self, assembler):
        assembler.handle_message(text_done("Old.", "e1"))
        assembler.finalize()
        assembler.reset()

        assert assembler.state.is_empty
        assert len(assembler.state.seen_event_ids) == 0
        assert assembler.handle_message(text_done("Old.", "e1")) is True

    def test_on_update_receives_state(self, clock):
        seen: List[str] = []
        assembler = TranscriptAssembler(
            clock=clock,
            on_update=lambda state: seen.append(state.visible_text()),
        )
        assembler.handle_message(text_delta("Hi", "e1"))
        clock.advance(100)
        assembler.handle_message(text_delta("there", "e2"))
        assert seen == ["Hi", "Hi there"]

    def test_custom_timeout(self):
        clock = ManualClock()
        assembler = TranscriptAssembler(clock=clock, utterance_timeout_ms=1000)
        assembler.handle_message(text_delta("a", "e1"))
        clock.advance(1500)
        assembler.handle_message(text_delta("b", "e2"))
        assert _entry_texts(assembler) == ["a"]
