"""Analysis layer - Low-level signal analysis.

This layer extracts features from raw audio:
- Spectral features (radix-2 FFT, chromagram)
- Temporal features (tempo from the energy envelope)
- Pitch detection (YIN)
"""

from .features import FeatureExtractor, fft_radix2
from .tempo import TempoAnalyzer, TempoInfo
from .pitch import PitchAnalyzer, calculate_rms, rms_to_velocity

__all__ = [
    "FeatureExtractor",
    "fft_radix2",
    "TempoAnalyzer",
    "TempoInfo",
    "PitchAnalyzer",
    "calculate_rms",
    "rms_to_velocity",
]
