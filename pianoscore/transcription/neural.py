"""Polyphonic note detection using a pretrained piano transcription model."""

import os
import tempfile
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple

import librosa
import numpy as np

from .base import FrameProgress, NoteDetector
from .cache import ModelCache
from ..core import RawNoteEvent
from ..core.constants import (
    NEURAL_MIN_NOTE_DURATION,
    NEURAL_SAMPLE_RATE,
    PIANO_MAX,
    PIANO_MIN,
)

# (pitch, onset seconds, duration seconds, velocity or amplitude)
ModelEvent = Tuple[int, float, float, float]

MIDI_VELOCITY_SCALE = 127.0
AMPLITUDE_SCALE = 1.0


class NoteModel(Protocol):
    """Anything that turns mono audio into note tuples.

    ``velocity_scale`` is the value the model reports for full loudness:
    127 for MIDI velocities, 1 for amplitudes.
    """

    velocity_scale: float

    def predict(self, audio: np.ndarray, sr: int) -> Iterable[ModelEvent]:
        ...


def to_velocity(value: float, scale: float = AMPLITUDE_SCALE) -> int:
    """Map a model loudness on a 0..``scale`` range to a MIDI velocity."""
    value = float(value) * MIDI_VELOCITY_SCALE / scale
    return int(max(0, min(127, round(value))))


class NeuralNoteDetector(NoteDetector):
    """
    Polyphonic detector that delegates to a :class:`NoteModel`.

    Events shorter than ``min_note_duration`` or outside the piano range are
    dropped.
    """

    def __init__(
        self,
        model: Optional[NoteModel] = None,
        min_note_duration: float = NEURAL_MIN_NOTE_DURATION,
        min_pitch: int = PIANO_MIN,
        max_pitch: int = PIANO_MAX,
    ):
        self.model = model if model is not None else PianoTranscriptionModel()
        self.min_note_duration = min_note_duration
        self.min_pitch = min_pitch
        self.max_pitch = max_pitch

    def detect(
        self,
        audio: np.ndarray,
        sr: int,
        progress: Optional[FrameProgress] = None,
    ) -> Iterator[RawNoteEvent]:
        if progress is not None:
            progress(0, 1)

        events = sorted(self.model.predict(audio, sr), key=lambda e: (e[1], e[0]))
        scale = self.model.velocity_scale

        if progress is not None:
            progress(1, 1)

        for pitch, onset, duration, velocity in events:
            pitch = int(pitch)
            if duration < self.min_note_duration:
                continue
            if not self.min_pitch <= pitch <= self.max_pitch:
                continue
            yield RawNoteEvent(
                pitch=pitch,
                onset=max(0.0, float(onset)),
                duration=float(duration),
                velocity=to_velocity(velocity, scale),
            )


class PianoTranscriptionModel:
    """
    :class:`NoteModel` backed by ``piano_transcription_inference``.

    The network is loaded on first use. When a cache is given, checkpoint
    bytes are stored under ``cache_key`` and restored from it on later runs.
    """

    INSTALL_HINT = (
        "Neural transcription requires optional dependencies. "
        "Install with: pip install pianoscore[neural]"
    )
    velocity_scale = MIDI_VELOCITY_SCALE

    def __init__(
        self,
        checkpoint_path: Optional[str] = None,
        device: str = "cpu",
        cache: Optional[ModelCache] = None,
        cache_key: str = "piano_transcription_checkpoint",
    ):
        """
        Initialize PianoTranscriptionModel.

        Args:
            checkpoint_path: Local checkpoint file (default: the package download)
            device: Device for inference ('cpu' or 'cuda')
            cache: Optional checkpoint byte cache
            cache_key: Key of the checkpoint in the cache
        """
        self.checkpoint_path = checkpoint_path
        self.device = device
        self.cache = cache
        self.cache_key = cache_key
        self._transcriptor = None
        self._restored_checkpoint: Optional[Path] = None

    def _resolve_checkpoint(self) -> Optional[str]:
        """Pick the checkpoint file, going through the cache if one is set."""
        if self.cache is None:
            return self.checkpoint_path

        data = self.cache.get(self.cache_key)
        if data is not None:
            fd, path = tempfile.mkstemp(suffix=".pth", prefix="pianoscore_")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            self._restored_checkpoint = Path(path)
            return path

        if self.checkpoint_path is not None and Path(self.checkpoint_path).exists():
            self.cache.put(self.cache_key, Path(self.checkpoint_path).read_bytes())
        return self.checkpoint_path

    def _load(self):
        if self._transcriptor is not None:
            return self._transcriptor

        try:
            import torch
            from piano_transcription_inference import PianoTranscription
        except ImportError as e:
            raise ImportError(self.INSTALL_HINT) from e

        self._transcriptor = PianoTranscription(
            device=torch.device(self.device),
            checkpoint_path=self._resolve_checkpoint(),
        )
        return self._transcriptor

    def predict(self, audio: np.ndarray, sr: int) -> List[ModelEvent]:
        """
        Run the network over a mono buffer.

        Args:
            audio: Mono audio array
            sr: Sample rate

        Returns:
            Note tuples with MIDI velocities
        """
        transcriptor = self._load()

        audio = np.asarray(audio, dtype=np.float32)
        if sr != NEURAL_SAMPLE_RATE:
            audio = librosa.resample(audio, orig_sr=sr, target_sr=NEURAL_SAMPLE_RATE)

        # The library always writes a MIDI file alongside its result
        with tempfile.TemporaryDirectory() as tmp_dir:
            midi_path = os.path.join(tmp_dir, "transcription.mid")
            result = transcriptor.transcribe(audio, midi_path)

        events = []
        for event in result.get("est_note_events", []):
            onset = float(event["onset_time"])
            offset = float(event["offset_time"])
            events.append(
                (int(event["midi_note"]), onset, offset - onset, float(event["velocity"]))
            )
        return events
