"""Pitch analysis utilities - YIN fundamental frequency estimation."""

import numpy as np
from scipy import signal
from typing import Optional

from ..core.constants import (
    MAX_FREQUENCY,
    MIN_FREQUENCY,
    RMS_TO_VELOCITY,
    YIN_THRESHOLD,
)


def calculate_rms(frame: np.ndarray) -> float:
    """Root-mean-square energy of a frame (0.0 for an empty frame)."""
    if len(frame) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(frame, dtype=np.float64))))


def rms_to_velocity(rms: float) -> int:
    """Map frame RMS to a MIDI velocity."""
    return int(min(127, np.floor(rms * RMS_TO_VELOCITY)))


class PitchAnalyzer:
    """Frame-level pitch detection with the YIN algorithm."""

    def __init__(
        self,
        sr: int = 22050,
        threshold: float = YIN_THRESHOLD,
        fmin: float = MIN_FREQUENCY,
        fmax: float = MAX_FREQUENCY,
    ):
        self.sr = sr
        self.threshold = threshold
        self.fmin = fmin
        self.fmax = fmax

    def difference(self, frame: np.ndarray) -> np.ndarray:
        """
        YIN difference function d(tau) over the first half of the frame.

        Computed as e(0) + e(tau) - 2 r(tau), where e are the energies of the
        two compared windows and r is their cross-correlation.
        """
        half = len(frame) // 2
        x = frame.astype(np.float64)
        head = x[:half]

        energy = np.concatenate([[0.0], np.cumsum(x**2)])
        window_energy = energy[half : 2 * half] - energy[:half]
        cross = signal.correlate(x[: 2 * half - 1], head, mode="valid")

        diff = energy[half] + window_energy - 2.0 * cross
        return np.maximum(diff, 0.0)

    def cumulative_mean_normalized(self, diff: np.ndarray) -> np.ndarray:
        """Cumulative mean normalized difference d'(tau), with d'(0) = 1."""
        cmnd = np.ones_like(diff)
        if len(diff) < 2:
            return cmnd
        running = np.cumsum(diff[1:])
        taus = np.arange(1, len(diff))
        with np.errstate(divide="ignore", invalid="ignore"):
            normalized = diff[1:] * taus / running
        # An all-zero prefix (silence) never counts as a dip
        cmnd[1:] = np.where(running > 0, normalized, 1.0)
        return cmnd

    def detect_frequency(self, frame: np.ndarray) -> Optional[float]:
        """
        Estimate the fundamental frequency of one frame.

        Args:
            frame: Audio samples

        Returns:
            Frequency in Hz, or None when no period dips below the threshold
        """
        half = len(frame) // 2
        if half < 3:
            return None

        cmnd = self.cumulative_mean_normalized(self.difference(frame))

        tau = 2
        while tau < half:
            if cmnd[tau] < self.threshold:
                while tau + 1 < half and cmnd[tau + 1] < cmnd[tau]:
                    tau += 1
                break
            tau += 1

        if tau == half or cmnd[tau] >= self.threshold:
            return None

        better_tau = self._parabolic_interpolation(cmnd, tau)
        if better_tau <= 0:
            return None
        return self.sr / better_tau

    def _parabolic_interpolation(self, cmnd: np.ndarray, tau: int) -> float:
        """Refine the dip position to sub-sample precision."""
        x0 = tau - 1 if tau >= 1 else tau
        x2 = tau + 1 if tau + 1 < len(cmnd) else tau

        if x0 == tau:
            return float(tau if cmnd[tau] <= cmnd[x2] else x2)
        if x2 == tau:
            return float(tau if cmnd[tau] <= cmnd[x0] else x0)

        s0, s1, s2 = cmnd[x0], cmnd[tau], cmnd[x2]
        denominator = 2 * (2 * s1 - s2 - s0)
        if denominator == 0:
            return float(tau)
        return tau + (s2 - s0) / denominator

    def in_range(self, freq: Optional[float]) -> bool:
        """Check a candidate against the valid frequency band."""
        return freq is not None and self.fmin <= freq <= self.fmax
