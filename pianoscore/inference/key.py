"""Key detection - Identify the tonal center of a piece.

Implements Krumhansl-Schmuckler key finding over a 12-bin chromagram:
each of the 24 major/minor hypotheses is scored by the Pearson correlation
between the rotated chromagram and an empirical key profile.
"""

import numpy as np
from typing import List, Optional
from dataclasses import dataclass

from ..core.constants import (
    KEY_SIGNATURES,
    MAJOR_TONIC_NAMES,
    MINOR_TONIC_NAMES,
)

MAJOR = "major"
MINOR = "minor"


def key_signature_name(tonic: int, mode: str) -> str:
    """Key signature name for a tonic pitch class, e.g. 'Eb' or 'C#m'."""
    if mode == MINOR:
        return MINOR_TONIC_NAMES[tonic % 12] + "m"
    return MAJOR_TONIC_NAMES[tonic % 12]


@dataclass(frozen=True)
class KeyEstimate:
    """Container for key detection results."""

    tonic: int  # Pitch class 0-11 (0=C)
    mode: str  # "major" or "minor"
    confidence: float  # 0.0 - 1.0
    correlation: float = 0.0

    @property
    def tonic_name(self) -> str:
        if self.mode == MINOR:
            return MINOR_TONIC_NAMES[self.tonic]
        return MAJOR_TONIC_NAMES[self.tonic]

    @property
    def signature(self) -> str:
        return key_signature_name(self.tonic, self.mode)

    @property
    def accidentals(self) -> int:
        """Sharps (positive) or flats (negative) in the key signature."""
        return KEY_SIGNATURES[self.signature]

    @property
    def name(self) -> str:
        return f"{self.tonic_name} {self.mode}"


class KeyDetector:
    """Detect musical key from a chromagram."""

    # Krumhansl-Schmuckler key profiles (cognitive-based)
    KRUMHANSL_MAJOR = np.array(
        [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
    )
    KRUMHANSL_MINOR = np.array(
        [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]
    )

    def __init__(
        self,
        major_profile: Optional[np.ndarray] = None,
        minor_profile: Optional[np.ndarray] = None,
    ):
        self.major_profile = (
            self.KRUMHANSL_MAJOR if major_profile is None else np.asarray(major_profile)
        )
        self.minor_profile = (
            self.KRUMHANSL_MINOR if minor_profile is None else np.asarray(minor_profile)
        )

    def detect(self, chromagram: np.ndarray) -> KeyEstimate:
        """
        Find the best matching key.

        Args:
            chromagram: 12-element pitch class distribution (index 0 = C)

        Returns:
            KeyEstimate for the highest-correlating of the 24 keys
        """
        chroma = self._validate(chromagram)

        best_tonic, best_mode, best_corr = 0, MAJOR, -np.inf
        for tonic in range(12):
            rotated = np.roll(chroma, -tonic)
            for mode, profile in ((MAJOR, self.major_profile), (MINOR, self.minor_profile)):
                corr = self._correlate(rotated, profile)
                if corr > best_corr:
                    best_tonic, best_mode, best_corr = tonic, mode, corr

        return self._estimate(best_tonic, best_mode, best_corr)

    def rank(self, chromagram: np.ndarray) -> List[KeyEstimate]:
        """All 24 key hypotheses, best first."""
        chroma = self._validate(chromagram)
        candidates = []
        for tonic in range(12):
            rotated = np.roll(chroma, -tonic)
            candidates.append(
                self._estimate(tonic, MAJOR, self._correlate(rotated, self.major_profile))
            )
            candidates.append(
                self._estimate(tonic, MINOR, self._correlate(rotated, self.minor_profile))
            )
        # sort is stable, so equal scores keep tonic/major-first order
        candidates.sort(key=lambda c: c.correlation, reverse=True)
        return candidates

    def relative_key(self, key: KeyEstimate) -> KeyEstimate:
        """
        Get the relative major/minor key.

        Relative minor is 3 semitones down from major.
        Relative major is 3 semitones up from minor.
        """
        if key.mode == MAJOR:
            return KeyEstimate((key.tonic - 3) % 12, MINOR, key.confidence, key.correlation)
        return KeyEstimate((key.tonic + 3) % 12, MAJOR, key.confidence, key.correlation)

    def _validate(self, chromagram: np.ndarray) -> np.ndarray:
        chroma = np.asarray(chromagram, dtype=np.float64)
        if chroma.shape != (12,):
            raise ValueError(f"Chromagram must have exactly 12 elements, got {chroma.shape}")
        return chroma

    def _estimate(self, tonic: int, mode: str, correlation: float) -> KeyEstimate:
        # Correlation can be -1 to 1, map to 0-1
        confidence = max(0.0, min(1.0, (correlation + 1) / 2))
        return KeyEstimate(tonic=tonic, mode=mode, confidence=confidence, correlation=correlation)

    def _correlate(self, distribution: np.ndarray, profile: np.ndarray) -> float:
        """Pearson correlation, 0.0 when either side has no variance."""
        if distribution.std() == 0 or profile.std() == 0:
            return 0.0

        corr = np.corrcoef(distribution, profile)[0, 1]

        # Handle NaN (can occur with degenerate input)
        if np.isnan(corr):
            return 0.0

        return float(corr)
