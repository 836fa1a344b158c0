"""Tests for core types."""

import pytest

from pianoscore.core import (
    BASS,
    TREBLE,
    ChordGroup,
    DecodeError,
    AnalysisError,
    Note,
    QuantizedNote,
    RawNoteEvent,
    TranscriptionError,
)
from pianoscore.core.score import duration_to_symbol, is_dotted_duration


class TestRawNoteEvent:
    """Tests for RawNoteEvent dataclass."""

    def test_note_creation(self):
        note = RawNoteEvent(pitch=60, onset=0.0, duration=1.0, velocity=80)
        assert note.pitch == 60
        assert note.onset == 0.0
        assert note.duration == 1.0
        assert note.velocity == 80

    def test_offset(self):
        note = RawNoteEvent(pitch=60, onset=0.5, duration=1.0)
        assert note.offset == pytest.approx(1.5)

    def test_pitch_name(self):
        assert RawNoteEvent(pitch=60, onset=0, duration=1).pitch_name == "C4"
        assert RawNoteEvent(pitch=69, onset=0, duration=1).pitch_name == "A4"
        assert RawNoteEvent(pitch=61, onset=0, duration=1).pitch_name == "C#4"

    def test_freq_to_midi(self):
        assert RawNoteEvent.freq_to_midi(440.0) == 69  # A4
        assert RawNoteEvent.freq_to_midi(261.63) == 60  # C4 (approx)
        assert RawNoteEvent.freq_to_midi(880.0) == 81  # A5

    def test_midi_to_freq(self):
        assert RawNoteEvent.midi_to_freq(69) == 440.0
        assert abs(RawNoteEvent.midi_to_freq(60) - 261.63) < 1.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"pitch": 128, "onset": 0.0, "duration": 1.0},
            {"pitch": 60, "onset": -0.1, "duration": 1.0},
            {"pitch": 60, "onset": 0.0, "duration": 0.0},
            {"pitch": 60, "onset": 0.0, "duration": 1.0, "velocity": 200},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RawNoteEvent(**kwargs)


class TestScoreTypes:
    """Tests for the notation types."""

    def test_duration_symbols(self):
        assert duration_to_symbol(4.0) == ("w", False)
        assert duration_to_symbol(3.0) == ("h", True)
        assert duration_to_symbol(1.5) == ("q", True)
        assert duration_to_symbol(0.25) == ("16", False)

    def test_unnotatable_duration(self):
        with pytest.raises(ValueError):
            duration_to_symbol(2.5)

    def test_dotted_durations(self):
        assert is_dotted_duration(0.75)
        assert not is_dotted_duration(0.5)

    def test_note_beats(self):
        assert Note(keys=("c/4",), duration="h", clef=TREBLE, dotted=True).beats == 3.0
        assert Note(keys=("c/4",), duration="8", clef=TREBLE).beats == 0.5

    def test_rest(self):
        rest = Note.rest(BASS, 4.0)
        assert rest.is_rest
        assert rest.duration == "wr"
        assert rest.keys == ("d/3",)
        assert rest.beats == 4.0
        assert Note.rest(TREBLE, 1.0).keys == ("b/4",)

    def test_chord_group_end_uses_longest_member(self):
        group = ChordGroup(
            start_beat=2.0,
            notes=(
                QuantizedNote(60, 2.0, 1.0, TREBLE, 40),
                QuantizedNote(64, 2.0, 2.0, TREBLE, 80),
            ),
        )
        assert group.end_beat == 4.0
        assert group.pitches == (60, 64)
        assert group.average_velocity == 60.0


class TestErrors:
    """Error hierarchy."""

    def test_decode_error_is_value_error(self):
        assert issubclass(DecodeError, ValueError)
        assert issubclass(DecodeError, TranscriptionError)

    def test_analysis_error_is_runtime_error(self):
        assert issubclass(AnalysisError, RuntimeError)
        assert issubclass(AnalysisError, TranscriptionError)
