"""Spectral feature extraction - radix-2 FFT and chromagram."""

import numpy as np
import librosa
from scipy.signal import windows

from ..core.constants import A4_FREQUENCY, A4_MIDI, CHROMA_MIN_FREQUENCY, FRAME_SIZE
from ..core.errors import AnalysisError

# Frames transformed per batch in chromagram()
_FRAME_BATCH = 256


def _bit_reversal(n: int) -> np.ndarray:
    levels = n.bit_length() - 1
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.int64)
    for bit in range(levels):
        rev |= ((idx >> bit) & 1) << (levels - 1 - bit)
    return rev


def fft_radix2(x: np.ndarray) -> np.ndarray:
    """
    Iterative radix-2 Cooley-Tukey FFT along the last axis.

    Args:
        x: Real or complex array whose last axis has a power-of-two length

    Returns:
        Complex spectrum with the same shape as ``x``

    Raises:
        AnalysisError: If the transform length is not a power of two
    """
    x = np.asarray(x, dtype=np.complex128)
    n = x.shape[-1]
    if n == 0 or n & (n - 1):
        raise AnalysisError(f"FFT size must be a power of 2, got {n}")

    lead = x.shape[:-1]
    a = x[..., _bit_reversal(n)]

    size = 2
    while size <= n:
        half = size // 2
        twiddle = np.exp(-2j * np.pi * np.arange(half) / size)
        a = a.reshape(lead + (n // size, size))
        even = a[..., :half]
        odd = a[..., half:] * twiddle
        a = np.concatenate([even + odd, even - odd], axis=-1)
        size *= 2

    return a.reshape(lead + (n,))


class FeatureExtractor:
    """Extracts spectral features for key estimation."""

    def __init__(
        self,
        sr: int = 22050,
        frame_size: int = FRAME_SIZE,
        hop_length: int = FRAME_SIZE // 2,
        fmin: float = CHROMA_MIN_FREQUENCY,
    ):
        """
        Initialize FeatureExtractor.

        Args:
            sr: Sample rate
            frame_size: FFT window size (power of two)
            hop_length: Samples between frames
            fmin: Bins below this frequency are ignored
        """
        self.sr = sr
        self.frame_size = frame_size
        self.hop_length = hop_length
        self.fmin = fmin

    def magnitude_spectrum(self, frames: np.ndarray) -> np.ndarray:
        """
        Hann-windowed magnitude spectrum, positive frequencies only.

        Args:
            frames: Array [..., frame_size]

        Returns:
            Magnitudes [..., frame_size // 2]
        """
        n = frames.shape[-1]
        window = windows.hann(n, sym=True)
        spectrum = fft_radix2(frames * window)
        return np.abs(spectrum[..., : n // 2])

    def pitch_class_map(self) -> np.ndarray:
        """
        Pitch class of each spectrum bin, -1 for bins below fmin.

        Returns:
            Integer array [frame_size // 2]
        """
        bins = np.arange(self.frame_size // 2)
        freqs = bins * self.sr / self.frame_size
        classes = np.full(len(bins), -1, dtype=np.int64)
        audible = freqs >= self.fmin
        midi = A4_MIDI + 12 * np.log2(freqs[audible] / A4_FREQUENCY)
        classes[audible] = np.mod(np.round(midi).astype(np.int64), 12)
        return classes

    def chromagram(self, audio: np.ndarray) -> np.ndarray:
        """
        Compute a normalized 12-bin chromagram over the whole buffer.

        Returns:
            Array [12] summing to 1 (uniform when the buffer is silent)
        """
        chroma = np.zeros(12)
        audio = np.ascontiguousarray(audio, dtype=np.float64)

        if len(audio) >= self.frame_size:
            frames = librosa.util.frame(
                audio,
                frame_length=self.frame_size,
                hop_length=self.hop_length,
                axis=0,
            )
            spectrum = np.zeros(self.frame_size // 2)
            for start in range(0, len(frames), _FRAME_BATCH):
                batch = frames[start : start + _FRAME_BATCH]
                spectrum += self.magnitude_spectrum(batch).sum(axis=0)

            classes = self.pitch_class_map()
            audible = classes >= 0
            chroma = np.bincount(
                classes[audible], weights=spectrum[audible], minlength=12
            )

        total = chroma.sum()
        if total > 0:
            return chroma / total
        return np.full(12, 1.0 / 12)
