"""Audio loading utilities."""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np
import soundfile as sf

from ..core.errors import DecodeError


@dataclass(frozen=True)
class DecodedAudio:
    """Decoded samples, shaped (channels, samples)."""

    samples: np.ndarray
    sample_rate: int
    channel_count: int

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.samples.shape[-1] / self.sample_rate

    def to_mono(self) -> np.ndarray:
        """Average all channels."""
        return np.mean(self.samples, axis=0)

    def first_channel(self) -> np.ndarray:
        return self.samples[0]


class AudioLoader:
    """Handles audio file decoding."""

    SUPPORTED_FORMATS = {".wav", ".mp3", ".flac", ".ogg", ".m4a", ".mp4", ".aiff", ".aif"}

    def __init__(self, normalize: bool = False):
        """
        Initialize AudioLoader.

        Args:
            normalize: Peak-normalize samples to [-1, 1] if True
        """
        self.normalize = normalize

    def load(self, path: Union[str, Path]) -> DecodedAudio:
        """
        Decode an audio file at its native sample rate.

        Args:
            path: Path to audio file

        Returns:
            DecodedAudio with every channel kept

        Raises:
            DecodeError: If the file is missing, unsupported or undecodable
        """
        path = Path(path)

        if not path.exists():
            raise DecodeError(f"Audio file not found: {path}")

        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise DecodeError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {sorted(self.SUPPORTED_FORMATS)}"
            )

        try:
            audio, sr = librosa.load(str(path), sr=None, mono=False)
        except Exception as e:
            raise DecodeError(f"Could not decode {path.name}: {e}") from e

        return self._wrap(audio, sr)

    def load_bytes(self, data: bytes) -> DecodedAudio:
        """
        Decode an in-memory audio file (any format libsndfile reads).

        Raises:
            DecodeError: If the bytes cannot be decoded
        """
        if not data:
            raise DecodeError("No audio data")

        try:
            audio, sr = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except Exception as e:
            raise DecodeError(f"Could not decode audio data: {e}") from e

        # soundfile returns (frames, channels)
        return self._wrap(audio.T, sr)

    def _wrap(self, audio: np.ndarray, sr: int) -> DecodedAudio:
        audio = np.atleast_2d(np.asarray(audio, dtype=np.float32))
        if audio.shape[-1] == 0:
            raise DecodeError("Audio contains no samples")
        if not np.all(np.isfinite(audio)):
            raise DecodeError("Audio contains non-finite samples")

        if self.normalize:
            audio = self._normalize(audio)

        return DecodedAudio(samples=audio, sample_rate=int(sr), channel_count=audio.shape[0])

    def _normalize(self, audio: np.ndarray) -> np.ndarray:
        """Normalize audio to [-1, 1] range using peak normalization."""
        peak = np.abs(audio).max()
        if peak > 0:
            audio = audio / peak
        return audio
