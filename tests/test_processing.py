"""Tests for quantization, chord grouping, voices and spelling."""

import numpy as np
import pytest

from pianoscore.core import BASS, TREBLE, ChordGroup, NoteKey, QuantizedNote, RawNoteEvent, TieSlurMarker
from pianoscore.core.constants import DURATION_VOCABULARY
from pianoscore.processing import (
    ChordGrouper,
    KeySpeller,
    Quantizer,
    VoiceSeparator,
    duration_transition,
)


def beats_event(pitch: int, start: float, beats: float, velocity: int = 64, tempo: float = 120) -> RawNoteEvent:
    """Event whose onset/duration are given in beats at ``tempo``."""
    spb = 60.0 / tempo
    return RawNoteEvent(pitch=pitch, onset=start * spb, duration=beats * spb, velocity=velocity)


def qn(pitch: int, start: float, beats: float = 1.0, clef: str = TREBLE, velocity: int = 64) -> QuantizedNote:
    return QuantizedNote(pitch, start, beats, clef, velocity)


class TestQuantizer:
    """Tests for duration decoding and grid snapping."""

    @pytest.mark.parametrize("decoder", ["greedy", "viterbi"])
    @pytest.mark.parametrize("beats", DURATION_VOCABULARY)
    def test_vocabulary_recovered(self, beats, decoder):
        [note] = Quantizer(120, decoder=decoder).quantize([beats_event(67, 0.0, beats)])
        assert note.duration_beats == beats

    @pytest.mark.parametrize("decoder", ["greedy", "viterbi"])
    def test_sequence_recovered(self, decoder):
        durations = [1.0, 1.0, 2.0, 0.5, 0.5, 1.5, 0.25, 3.0]
        start = 0.0
        events = []
        for d in durations:
            events.append(beats_event(60, start, d))
            start += d
        quantized = Quantizer(120, decoder=decoder).quantize(events)
        assert [n.duration_beats for n in quantized] == durations

    def test_viterbi_revises_earlier_choice(self):
        # 0.86 beats looks most like a dotted eighth on its own, but a quarter
        # followed by eighths is the likelier sequence
        events = [beats_event(60, 0.0, 0.86), beats_event(62, 1.0, 0.5), beats_event(64, 1.5, 0.5)]
        greedy = Quantizer(120, decoder="greedy").quantize(events)
        viterbi = Quantizer(120, decoder="viterbi").quantize(events)
        assert [n.duration_beats for n in greedy] == [0.75, 0.5, 0.5]
        assert [n.duration_beats for n in viterbi] == [1.0, 0.5, 0.5]

    def test_noisy_durations_snap(self):
        events = [beats_event(60, 0.0, 0.93), beats_event(60, 1.0, 1.07), beats_event(60, 2.0, 2.1)]
        quantized = Quantizer(120).quantize(events)
        assert [n.duration_beats for n in quantized] == [1.0, 1.0, 2.0]

    def test_starts_on_grid(self):
        rng = np.random.default_rng(7)
        events = [
            RawNoteEvent(pitch=60, onset=float(t), duration=0.3)
            for t in rng.uniform(0, 10, size=30)
        ]
        for note in Quantizer(97).quantize(events):
            assert (note.start_beat / 0.25) == pytest.approx(round(note.start_beat / 0.25))

    def test_snap_rounds_half_up(self):
        quantizer = Quantizer(120)
        assert quantizer.snap(0.125) == 0.25
        assert quantizer.snap(0.124) == 0.0

    def test_empty(self):
        assert Quantizer(120).quantize([]) == []

    def test_preserves_velocity_and_sets_clef(self):
        events = [beats_event(72, 0.0, 1.0, velocity=90), beats_event(48, 1.0, 1.0, velocity=30)]
        high, low = Quantizer(120).quantize(events)
        assert (high.clef, high.velocity) == (TREBLE, 90)
        assert (low.clef, low.velocity) == (BASS, 30)

    def test_keeps_input_order(self):
        events = [beats_event(60, 2.0, 1.0), beats_event(62, 0.0, 1.0)]
        assert [n.pitch for n in Quantizer(120).quantize(events)] == [60, 62]

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            Quantizer(0)
        with pytest.raises(ValueError):
            Quantizer(-10)
        with pytest.raises(ValueError):
            Quantizer(120, decoder="beam")

    def test_transitions(self):
        assert duration_transition(1.0, 1.0) == 0.4
        assert duration_transition(2.0, 1.0) == 0.25
        assert duration_transition(0.5, 1.0) == 0.25
        assert duration_transition(1.0, 1.5) == 0.15
        assert duration_transition(1.0, 4.0) == 0.1
        assert duration_transition(3.0, 0.75) == 0.1


class TestChordGrouper:
    """Tests for chord grouping and tie/slur detection."""

    def test_groups_simultaneous_notes(self):
        notes = [qn(67, 0.0), qn(60, 0.0), qn(64, 0.0), qn(72, 1.0)]
        groups = ChordGrouper(120).group(notes)
        assert len(groups) == 2
        assert groups[0].pitches == (60, 64, 67)
        assert groups[1].start_beat == 1.0

    def test_threshold_scales_with_tempo(self):
        notes = [qn(60, 0.0), qn(64, 0.25)]
        assert len(ChordGrouper(120).group(notes)) == 2  # 0.1 beats
        assert len(ChordGrouper(600).group(notes)) == 1  # 0.5 beats

    def test_oversized_chord_truncated(self):
        notes = [qn(40 + i, 0.0) for i in range(10)]
        [group] = ChordGrouper(120).group(notes)
        assert len(group.notes) == 8
        assert group.pitches == tuple(range(40, 48))

    def test_unsorted_input(self):
        groups = ChordGrouper(120).group([qn(60, 2.0), qn(62, 0.0)])
        assert [g.start_beat for g in groups] == [0.0, 2.0]

    def test_tie(self):
        grouper = ChordGrouper(120)
        groups = grouper.group([qn(60, 0.0), qn(60, 1.0)])
        markers = grouper.detect_ties_and_slurs(groups)
        assert markers[NoteKey(0, 60)] == TieSlurMarker()
        assert markers[NoteKey(1, 60)].tie_end

    def test_slur(self):
        grouper = ChordGrouper(120)
        groups = grouper.group([qn(60, 0.0), qn(62, 1.25), qn(65, 1.25)])
        markers = grouper.detect_ties_and_slurs(groups)
        assert markers[NoteKey(0, 60)].slur_start
        assert markers[NoteKey(1, 62)].slur_end
        assert markers[NoteKey(1, 65)].slur_end
        assert not markers[NoteKey(1, 62)].tie_end

    def test_same_pitch_after_short_rest_is_slurred(self):
        grouper = ChordGrouper(120)
        groups = grouper.group([qn(60, 0.0), qn(60, 1.25)])
        markers = grouper.detect_ties_and_slurs(groups)
        assert markers[NoteKey(0, 60)].slur_start
        assert not markers[NoteKey(1, 60)].tie_end

    def test_large_gap_has_no_markers(self):
        grouper = ChordGrouper(120)
        groups = grouper.group([qn(60, 0.0), qn(60, 2.0)])
        assert len(grouper.detect_ties_and_slurs(groups)) == 0

    def test_markers_read_only(self):
        grouper = ChordGrouper(120)
        markers = grouper.detect_ties_and_slurs(grouper.group([qn(60, 0.0), qn(60, 1.0)]))
        with pytest.raises(TypeError):
            markers[NoteKey(5, 60)] = TieSlurMarker()


class TestVoiceSeparator:
    """Tests for treble/bass assignment."""

    def test_middle_c_boundary(self):
        separator = VoiceSeparator()
        assert separator.separate([qn(60, 0.0, clef=BASS)])[0].clef == TREBLE
        assert separator.separate([qn(59, 0.0, clef=TREBLE)])[0].clef == BASS

    def test_narrow_chord_uses_middle_c(self):
        clefs = [n.clef for n in VoiceSeparator().separate([qn(55, 0.0), qn(60, 0.0), qn(64, 0.0)])]
        assert clefs == [BASS, TREBLE, TREBLE]

    def test_wide_two_note_chord_splits_at_gap(self):
        low, high = VoiceSeparator().separate([qn(62, 0.0), qn(76, 0.0)])
        assert (low.clef, high.clef) == (BASS, TREBLE)

    def test_wide_chord_splits_at_largest_gap(self):
        notes = [qn(p, 0.0) for p in (76, 36, 72, 40)]
        clefs = {n.pitch: n.clef for n in VoiceSeparator().separate(notes)}
        assert clefs == {36: BASS, 40: BASS, 72: TREBLE, 76: TREBLE}

    def test_wide_chord_without_big_gap_uses_middle_c(self):
        notes = [qn(p, 0.0) for p in (48, 52, 55, 59, 62, 65)]
        clefs = [n.clef for n in VoiceSeparator().separate(notes)]
        assert clefs == [BASS, BASS, BASS, BASS, TREBLE, TREBLE]

    def test_only_identical_starts_are_grouped(self):
        notes = [qn(62, 0.0), qn(76, 0.25)]
        clefs = [n.clef for n in VoiceSeparator().separate(notes)]
        assert clefs == [TREBLE, TREBLE]

    def test_separate_groups(self):
        groups = [ChordGroup(0.0, (qn(40, 0.0), qn(70, 0.0)))]
        [group] = VoiceSeparator().separate_groups(groups)
        assert [n.clef for n in group.notes] == [BASS, TREBLE]
        assert group.start_beat == 0.0


class TestKeySpeller:
    """Tests for pitch spelling against key signatures."""

    @pytest.mark.parametrize(
        "key,pitch,expected",
        [
            ("C", 60, ("c/4", None)),
            ("C", 61, ("c#/4", "#")),
            ("C", 59, ("b/3", None)),
            ("G", 66, ("f#/4", None)),
            ("G", 65, ("f/4", "n")),
            ("F", 70, ("bb/4", None)),
            ("F", 71, ("b/4", "n")),
            ("Eb", 63, ("eb/4", None)),
            ("Eb", 64, ("e/4", "n")),
            ("Eb", 61, ("db/4", "b")),
            ("Dm", 70, ("bb/4", None)),
            ("A", 21, ("a/0", None)),
        ],
    )
    def test_spelling(self, key, pitch, expected):
        assert KeySpeller(key).spell(pitch) == expected

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            KeySpeller("H")
