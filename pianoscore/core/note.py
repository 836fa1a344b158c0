"""RawNoteEvent - a detected note before any musical interpretation."""

from dataclasses import dataclass
import numpy as np

from .constants import A4_FREQUENCY, A4_MIDI, MIDI_MAX, MIDI_MIN, PITCH_NAMES


@dataclass(frozen=True)
class RawNoteEvent:
    """A note event as produced by a detector."""

    pitch: int  # MIDI pitch (0-127)
    onset: float  # Start time in seconds
    duration: float  # Length in seconds
    velocity: int = 64  # MIDI velocity (0-127)

    def __post_init__(self):
        if not MIDI_MIN <= self.pitch <= MIDI_MAX:
            raise ValueError(f"Pitch out of MIDI range: {self.pitch}")
        if self.onset < 0:
            raise ValueError(f"Onset must be non-negative: {self.onset}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive: {self.duration}")
        if not MIDI_MIN <= self.velocity <= MIDI_MAX:
            raise ValueError(f"Velocity out of MIDI range: {self.velocity}")

    @property
    def offset(self) -> float:
        """End time in seconds."""
        return self.onset + self.duration

    @property
    def pitch_name(self) -> str:
        """Get note name (e.g., 'C4', 'A#3')."""
        octave = (self.pitch // 12) - 1
        return f"{PITCH_NAMES[self.pitch % 12]}{octave}"

    @property
    def pitch_class(self) -> int:
        """Get pitch class (0-11, where 0=C)."""
        return self.pitch % 12

    @staticmethod
    def freq_to_midi(freq: float) -> int:
        """Convert frequency (Hz) to MIDI pitch."""
        if freq <= 0:
            return 0
        return int(round(A4_MIDI + 12 * np.log2(freq / A4_FREQUENCY)))

    @staticmethod
    def midi_to_freq(midi: int) -> float:
        """Convert MIDI pitch to frequency (Hz)."""
        return A4_FREQUENCY * (2 ** ((midi - A4_MIDI) / 12.0))
