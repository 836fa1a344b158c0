"""Shared fixtures: synthetic audio."""

import numpy as np
import pytest

SR = 22050


def generate_sine_wave(freq: float, duration: float, sr: int = SR, amplitude: float = 0.5) -> np.ndarray:
    """Generate a sine wave at given frequency."""
    t = np.linspace(0, duration, int(sr * duration), endpoint=False)
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def generate_chord(frequencies: list, duration: float, sr: int = SR) -> np.ndarray:
    """Sum sine waves, normalized to a 0.5 peak."""
    chord = np.sum([generate_sine_wave(f, duration, sr) for f in frequencies], axis=0)
    return (0.5 * chord / (np.max(np.abs(chord)) or 1.0)).astype(np.float32)


def place(tone: np.ndarray, total_duration: float, at: float, sr: int = SR) -> np.ndarray:
    """Put a tone into a silent clip starting at ``at`` seconds."""
    audio = np.zeros(int(total_duration * sr), dtype=np.float32)
    start = int(at * sr)
    audio[start : start + len(tone)] = tone[: len(audio) - start]
    return audio


@pytest.fixture
def sr():
    return SR


@pytest.fixture
def a4_quarter():
    """A 440 Hz quarter note (0.5 s at 120 BPM) inside 4 s of silence."""
    return place(generate_sine_wave(440.0, 0.5), 4.0, at=1.0)


@pytest.fixture
def silence():
    return np.zeros(4 * SR, dtype=np.float32)
