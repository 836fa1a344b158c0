"""Tempo analysis from the energy envelope."""

import numpy as np
from scipy.signal import find_peaks
from typing import Tuple
from dataclasses import dataclass

from ..core.constants import (
    BPM_PEAK_FACTOR,
    BPM_WINDOW_SECONDS,
    DEFAULT_BPM,
    MAX_BPM,
    MIN_BPM,
)


@dataclass(frozen=True)
class TempoInfo:
    """Container for tempo analysis results."""

    bpm: int
    peak_times: Tuple[float, ...] = ()  # Energy peak positions in seconds
    confidence: float = 0.0
    is_fallback: bool = False


class TempoAnalyzer:
    """Detect tempo from onset-peak spacing of the RMS envelope."""

    def __init__(
        self,
        window_seconds: float = BPM_WINDOW_SECONDS,
        default_bpm: int = DEFAULT_BPM,
        min_bpm: int = MIN_BPM,
        max_bpm: int = MAX_BPM,
    ):
        self.window_seconds = window_seconds
        self.default_bpm = default_bpm
        self.min_bpm = min_bpm
        self.max_bpm = max_bpm

    def energy_envelope(self, audio: np.ndarray, sr: int) -> Tuple[np.ndarray, int]:
        """
        RMS energy per fixed window.

        Returns:
            Tuple of (energies, window size in samples)
        """
        window = max(1, int(np.floor(sr * self.window_seconds)))
        n_windows = int(np.ceil(len(audio) / window))
        if n_windows == 0:
            return np.zeros(0), window

        padded = np.zeros(n_windows * window)
        padded[: len(audio)] = np.square(audio, dtype=np.float64)
        sums = padded.reshape(n_windows, window).sum(axis=1)

        # The last window may be partial
        counts = np.full(n_windows, window, dtype=np.float64)
        counts[-1] = len(audio) - (n_windows - 1) * window
        return np.sqrt(sums / counts), window

    def find_onset_peaks(self, energies: np.ndarray) -> np.ndarray:
        """Indices of local energy maxima above the peak threshold."""
        if len(energies) < 3:
            return np.zeros(0, dtype=int)

        threshold = energies.mean() * BPM_PEAK_FACTOR
        peaks, _ = find_peaks(energies, height=threshold)
        # find_peaks accepts plateaus and equality with the height
        strict = [
            p for p in peaks
            if energies[p] > threshold
            and energies[p] > energies[p - 1]
            and energies[p] > energies[p + 1]
        ]
        return np.asarray(strict, dtype=int)

    def detect(self, audio: np.ndarray, sr: int) -> int:
        """
        Detect tempo in BPM.

        Args:
            audio: Audio array (mono)
            sr: Sample rate

        Returns:
            Integer BPM clamped to [min_bpm, max_bpm]
        """
        return self.analyze(audio, sr).bpm

    def analyze(self, audio: np.ndarray, sr: int) -> TempoInfo:
        """
        Perform full tempo analysis.

        Args:
            audio: Audio array (mono)
            sr: Sample rate

        Returns:
            TempoInfo with the peaks the estimate was derived from
        """
        energies, window = self.energy_envelope(audio, sr)
        peaks = self.find_onset_peaks(energies)
        peak_times = tuple(float(p * window / sr) for p in peaks)

        if len(peaks) < 2:
            return TempoInfo(bpm=self.default_bpm, peak_times=peak_times, is_fallback=True)

        intervals = np.sort(np.diff(peaks))
        median_interval = intervals[len(intervals) // 2]
        seconds_per_beat = median_interval * window / sr
        bpm = int(round(60.0 / seconds_per_beat))
        bpm = max(self.min_bpm, min(self.max_bpm, bpm))

        # Share of gaps that agree with the median within 10%
        agreeing = np.abs(intervals - median_interval) <= 0.1 * median_interval
        confidence = float(np.mean(agreeing))

        return TempoInfo(bpm=bpm, peak_times=peak_times, confidence=confidence)
