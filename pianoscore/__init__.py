"""pianoscore - Piano Audio to Sheet Music Transcription.

Architecture Layers:
    1. input/         - Audio decoding
    2. analysis/      - Low-level signal analysis (chromagram, tempo, pitch)
    3. transcription/ - Note-level detection (YIN/energy or neural)
    4. inference/     - Musical understanding (key, dynamics)
    5. processing/    - Notation (quantize, chords, voices, measures)
    6. pipeline       - End-to-end transcription
"""

__version__ = "0.1.0"

# Core types
from .core import (
    RawNoteEvent,
    QuantizedNote,
    ChordGroup,
    Note,
    Chord,
    Measure,
    DynamicMarking,
    TranscriptionError,
    DecodeError,
    AnalysisError,
)

# Input layer
from .input import AudioLoader, DecodedAudio

# Analysis layer
from .analysis import FeatureExtractor, TempoAnalyzer, PitchAnalyzer

# Transcription layer
from .transcription import NoteDetector, YinEnergyDetector, NeuralNoteDetector

# Inference layer
from .inference import KeyDetector, DynamicsExtractor

# Processing layer
from .processing import (
    Quantizer,
    ChordGrouper,
    VoiceSeparator,
    KeySpeller,
    MeasureAssembler,
)

# Pipeline
from .pipeline import (
    ScoreTranscriber,
    TranscriptionConfig,
    TranscriptionResult,
    transcribe,
)

__all__ = [
    # Core
    "RawNoteEvent",
    "QuantizedNote",
    "ChordGroup",
    "Note",
    "Chord",
    "Measure",
    "DynamicMarking",
    "TranscriptionError",
    "DecodeError",
    "AnalysisError",
    # Input
    "AudioLoader",
    "DecodedAudio",
    # Analysis
    "FeatureExtractor",
    "TempoAnalyzer",
    "PitchAnalyzer",
    # Transcription
    "NoteDetector",
    "YinEnergyDetector",
    "NeuralNoteDetector",
    # Inference
    "KeyDetector",
    "DynamicsExtractor",
    # Processing
    "Quantizer",
    "ChordGrouper",
    "VoiceSeparator",
    "KeySpeller",
    "MeasureAssembler",
    # Pipeline
    "ScoreTranscriber",
    "TranscriptionConfig",
    "TranscriptionResult",
    "transcribe",
]
