"""Input layer - Decoding audio files into sample buffers."""

from .loader import AudioLoader, DecodedAudio

__all__ = ["AudioLoader", "DecodedAudio"]
