"""Transcription layer - Note-level detection from audio.

This layer converts audio signals into raw note events:
- YIN/energy detection (single melody line)
- Neural detection (polyphonic, pretrained piano model)
"""

from .base import NoteDetector
from .yin import NoteTracker, TrackerState, YinEnergyDetector
from .neural import NeuralNoteDetector, NoteModel, PianoTranscriptionModel
from .cache import DiskModelCache, InMemoryModelCache, ModelCache

__all__ = [
    "NoteDetector",
    "NoteTracker",
    "TrackerState",
    "YinEnergyDetector",
    "NeuralNoteDetector",
    "NoteModel",
    "PianoTranscriptionModel",
    "ModelCache",
    "InMemoryModelCache",
    "DiskModelCache",
]
