"""Monophonic note detection using YIN pitch tracking and RMS gating."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

import numpy as np

from .base import FrameProgress, NoteDetector
from ..analysis.pitch import PitchAnalyzer, calculate_rms, rms_to_velocity
from ..core import RawNoteEvent
from ..core.constants import (
    FRAME_SIZE,
    HOP_SIZE,
    MAX_FREQUENCY,
    MIN_FREQUENCY,
    MIN_NOTE_DURATION,
    MIN_VELOCITY,
    PROGRESS_EVERY_FRAMES,
    YIN_THRESHOLD,
)


class TrackerState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


@dataclass
class _OpenNote:
    pitch: int
    onset: float
    duration: float
    velocity: int


class NoteTracker:
    """
    Turns a frame-by-frame pitch track into note events.

    States are IDLE and ACCUMULATING. A voiced frame within one semitone of
    the open note extends it; any other frame closes it. Closing emits the
    note only when it outlasts ``min_duration``.
    """

    def __init__(self, hop_duration: float, min_duration: float = MIN_NOTE_DURATION):
        self.hop_duration = hop_duration
        self.min_duration = min_duration
        self._open: Optional[_OpenNote] = None

    @property
    def state(self) -> TrackerState:
        return TrackerState.IDLE if self._open is None else TrackerState.ACCUMULATING

    def voiced(self, time: float, pitch: int, velocity: int) -> Optional[RawNoteEvent]:
        """Feed a frame that passed the pitch and amplitude gates."""
        if self._open is not None and abs(self._open.pitch - pitch) <= 1:
            self._open.duration = time - self._open.onset
            return None

        closed = self._close()
        self._open = _OpenNote(pitch, time, self.hop_duration, velocity)
        return closed

    def unvoiced(self) -> Optional[RawNoteEvent]:
        """Feed a frame that was rejected."""
        return self._close()

    def flush(self) -> Optional[RawNoteEvent]:
        """Close any open note at the end of the buffer."""
        return self._close()

    def _close(self) -> Optional[RawNoteEvent]:
        note, self._open = self._open, None
        if note is None or note.duration <= self.min_duration:
            return None
        return RawNoteEvent(
            pitch=note.pitch,
            onset=note.onset,
            duration=note.duration,
            velocity=note.velocity,
        )


class YinEnergyDetector(NoteDetector):
    """Detects single-line notes frame by frame with YIN."""

    def __init__(
        self,
        frame_size: int = FRAME_SIZE,
        hop_size: int = HOP_SIZE,
        yin_threshold: float = YIN_THRESHOLD,
        min_note_duration: float = MIN_NOTE_DURATION,
        min_velocity: int = MIN_VELOCITY,
        fmin: float = MIN_FREQUENCY,
        fmax: float = MAX_FREQUENCY,
        progress_every: int = PROGRESS_EVERY_FRAMES,
    ):
        """
        Initialize YinEnergyDetector.

        Args:
            frame_size: Analysis window in samples
            hop_size: Samples between analysis frames
            yin_threshold: YIN dip threshold
            min_note_duration: Minimum note duration in seconds
            min_velocity: Frames at or below this velocity count as silence
            fmin: Lowest accepted frequency (Hz)
            fmax: Highest accepted frequency (Hz)
            progress_every: Report progress every this many frames
        """
        self.frame_size = frame_size
        self.hop_size = hop_size
        self.yin_threshold = yin_threshold
        self.min_note_duration = min_note_duration
        self.min_velocity = min_velocity
        self.fmin = fmin
        self.fmax = fmax
        self.progress_every = progress_every

    def detect(
        self,
        audio: np.ndarray,
        sr: int,
        progress: Optional[FrameProgress] = None,
    ) -> Iterator[RawNoteEvent]:
        audio = np.asarray(audio, dtype=np.float64)
        analyzer = PitchAnalyzer(
            sr=sr, threshold=self.yin_threshold, fmin=self.fmin, fmax=self.fmax
        )
        tracker = NoteTracker(self.hop_size / sr, self.min_note_duration)
        total_frames = len(audio) // self.hop_size

        for index in range(total_frames):
            start = index * self.hop_size
            frame = audio[start : start + self.frame_size]
            time = start / sr

            velocity = rms_to_velocity(calculate_rms(frame))
            freq = None
            if velocity > self.min_velocity:
                freq = analyzer.detect_frequency(frame)

            if analyzer.in_range(freq):
                closed = tracker.voiced(time, RawNoteEvent.freq_to_midi(freq), velocity)
            else:
                closed = tracker.unvoiced()

            if closed is not None:
                yield closed

            if progress is not None and index % self.progress_every == 0:
                progress(index, total_frames)

        closed = tracker.flush()
        if closed is not None:
            yield closed
