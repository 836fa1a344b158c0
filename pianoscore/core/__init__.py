"""Core types and constants for pianoscore."""

from .note import RawNoteEvent
from .score import (
    TREBLE,
    BASS,
    QuantizedNote,
    ChordGroup,
    NoteKey,
    TieSlurMarker,
    DynamicMarking,
    Note,
    Chord,
    Measure,
)
from .errors import TranscriptionError, DecodeError, AnalysisError
from .constants import (
    PITCH_NAMES,
    DEFAULT_BPM,
    BEATS_PER_MEASURE,
    TIME_SIGNATURE,
)

__all__ = [
    "RawNoteEvent",
    "TREBLE",
    "BASS",
    "QuantizedNote",
    "ChordGroup",
    "NoteKey",
    "TieSlurMarker",
    "DynamicMarking",
    "Note",
    "Chord",
    "Measure",
    "TranscriptionError",
    "DecodeError",
    "AnalysisError",
    "PITCH_NAMES",
    "DEFAULT_BPM",
    "BEATS_PER_MEASURE",
    "TIME_SIGNATURE",
]
