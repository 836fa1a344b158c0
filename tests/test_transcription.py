"""Tests for note detectors and the model cache."""

import os
import sys
import time

import numpy as np
import pytest

from pianoscore.core import RawNoteEvent
from pianoscore.transcription import (
    DiskModelCache,
    InMemoryModelCache,
    NeuralNoteDetector,
    NoteTracker,
    PianoTranscriptionModel,
    TrackerState,
    YinEnergyDetector,
)
from pianoscore.transcription.neural import to_velocity

from conftest import SR, generate_sine_wave, place


class TestNoteTracker:
    """Tests for the frame accumulator state machine."""

    def test_starts_idle(self):
        assert NoteTracker(hop_duration=0.1).state is TrackerState.IDLE

    def test_semitone_drift_extends_note(self):
        tracker = NoteTracker(hop_duration=0.1)
        assert tracker.voiced(0.0, 60, 80) is None
        assert tracker.state is TrackerState.ACCUMULATING
        assert tracker.voiced(0.1, 61, 80) is None
        assert tracker.voiced(0.2, 60, 80) is None

        note = tracker.unvoiced()
        assert isinstance(note, RawNoteEvent)
        assert (note.pitch, note.onset, note.velocity) == (60, 0.0, 80)
        assert note.duration == pytest.approx(0.2)
        assert tracker.state is TrackerState.IDLE

    def test_pitch_jump_closes_and_reopens(self):
        tracker = NoteTracker(hop_duration=0.1)
        tracker.voiced(0.0, 60, 80)
        tracker.voiced(0.1, 60, 80)
        closed = tracker.voiced(0.2, 67, 90)
        assert closed.pitch == 60
        assert closed.duration == pytest.approx(0.1)

        flushed = tracker.flush()
        assert flushed.pitch == 67
        assert flushed.onset == pytest.approx(0.2)
        assert flushed.duration == pytest.approx(0.1)  # one hop
        assert flushed.velocity == 90

    def test_short_note_discarded(self):
        tracker = NoteTracker(hop_duration=0.04, min_duration=0.05)
        tracker.voiced(0.0, 60, 80)
        assert tracker.unvoiced() is None

    def test_flush_when_idle(self):
        assert NoteTracker(hop_duration=0.1).flush() is None


class TestYinEnergyDetector:
    """Tests for the YIN/energy detector."""

    def test_detects_a4(self):
        audio = place(generate_sine_wave(440.0, 1.0), 2.0, at=0.5)
        notes = YinEnergyDetector().transcribe(audio, SR)
        assert notes
        assert any(n.pitch == 69 for n in notes)
        main = max(notes, key=lambda n: n.duration)
        assert main.pitch == 69
        assert main.onset == pytest.approx(0.5, abs=0.2)

    def test_silence_detects_nothing(self):
        assert YinEnergyDetector().transcribe(np.zeros(SR), SR) == []

    def test_quiet_signal_is_gated(self):
        audio = generate_sine_wave(440.0, 1.0, amplitude=0.005)
        assert YinEnergyDetector().transcribe(audio, SR) == []

    def test_out_of_band_pitch_rejected(self):
        audio = generate_sine_wave(3000.0, 1.0)
        assert all(n.pitch < 97 for n in YinEnergyDetector().transcribe(audio, SR))

    def test_detect_is_lazy_iterator(self):
        events = YinEnergyDetector().detect(generate_sine_wave(440.0, 1.0), SR)
        assert iter(events) is events

    def test_progress_reported(self):
        calls = []
        detector = YinEnergyDetector(progress_every=5)
        list(detector.detect(np.zeros(SR * 2), SR, progress=lambda done, total: calls.append((done, total))))
        total = (SR * 2) // 2048
        assert calls[0] == (0, total)
        assert all(done % 5 == 0 for done, _ in calls)


class FakeModel:
    def __init__(self, events, velocity_scale=127.0):
        self.events = events
        self.velocity_scale = velocity_scale

    def predict(self, audio, sr):
        return list(self.events)


class TestNeuralNoteDetector:
    """Tests for post-filtering of model output."""

    def test_filters_and_orders(self):
        model = FakeModel(
            [
                (60, 0.5, 0.2, 102),
                (20, 0.1, 0.5, 90),  # below piano range
                (109, 0.1, 0.5, 90),  # above piano range
                (64, 0.1, 0.02, 90),  # too short
                (72, 0.0, 0.5, 100),
                (67, 0.3, 0.03, 70),  # exactly the minimum
            ]
        )
        notes = NeuralNoteDetector(model=model).transcribe(np.zeros(SR), SR)
        assert [n.pitch for n in notes] == [72, 67, 60]
        assert notes[0].velocity == 100
        assert notes[2].velocity == 102

    def test_low_midi_velocity_kept(self):
        model = FakeModel([(60, 0.0, 0.5, 1), (64, 0.0, 0.5, 100)])
        notes = NeuralNoteDetector(model=model).transcribe(np.zeros(SR), SR)
        assert [n.velocity for n in notes] == [1, 100]

    def test_amplitude_model(self):
        model = FakeModel([(60, 0.0, 0.5, 0.8), (64, 0.0, 0.5, 1.0)], velocity_scale=1.0)
        notes = NeuralNoteDetector(model=model).transcribe(np.zeros(SR), SR)
        assert [n.velocity for n in notes] == [102, 127]

    def test_progress_reported(self):
        calls = []
        detector = NeuralNoteDetector(model=FakeModel([]))
        list(detector.detect(np.zeros(SR), SR, progress=lambda d, t: calls.append((d, t))))
        assert calls == [(0, 1), (1, 1)]

    @pytest.mark.parametrize(
        "value,scale,expected",
        [(0.0, 1.0, 0), (0.5, 1.0, 64), (1.0, 1.0, 127), (1, 127.0, 1), (64, 127.0, 64), (300, 127.0, 127)],
    )
    def test_velocity_scaling(self, value, scale, expected):
        assert to_velocity(value, scale) == expected

    def test_missing_dependency_hint(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "piano_transcription_inference", None)
        model = PianoTranscriptionModel()
        with pytest.raises(ImportError, match="pip install"):
            model.predict(np.zeros(SR), SR)


class TestModelCache:
    """Tests for checkpoint caches."""

    def test_in_memory(self):
        cache = InMemoryModelCache()
        assert not cache.has("w")
        assert cache.get("w") is None
        cache.put("w", b"weights")
        assert cache.has("w")
        assert cache.get("w") == b"weights"
        cache.clear()
        assert not cache.has("w")

    def test_disk_round_trip(self, tmp_path):
        cache = DiskModelCache(cache_dir=tmp_path)
        cache.put("checkpoint", b"\x00\x01weights")
        assert cache.has("checkpoint")
        assert DiskModelCache(cache_dir=tmp_path).get("checkpoint") == b"\x00\x01weights"

        cache.clear()
        assert cache.get("checkpoint") is None
        assert not list(tmp_path.iterdir())

    def test_disk_entries_expire(self, tmp_path):
        cache = DiskModelCache(cache_dir=tmp_path, ttl_hours=1)
        cache.put("checkpoint", b"weights")
        path = next(tmp_path.iterdir())
        old = time.time() - 2 * 3600
        os.utime(path, (old, old))

        assert cache.get("checkpoint") is None
        assert not path.exists()

    def test_checkpoint_restored_from_cache(self):
        cache = InMemoryModelCache()
        cache.put("piano_transcription_checkpoint", b"weights")
        model = PianoTranscriptionModel(cache=cache)

        path = model._resolve_checkpoint()
        try:
            with open(path, "rb") as f:
                assert f.read() == b"weights"
        finally:
            os.remove(path)

    def test_checkpoint_stored_in_cache(self, tmp_path):
        checkpoint = tmp_path / "model.pth"
        checkpoint.write_bytes(b"weights")
        cache = InMemoryModelCache()

        model = PianoTranscriptionModel(checkpoint_path=str(checkpoint), cache=cache)
        assert model._resolve_checkpoint() == str(checkpoint)
        assert cache.get("piano_transcription_checkpoint") == b"weights"
