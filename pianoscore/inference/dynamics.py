"""Dynamics extraction - map note velocities to sparse dynamic markings."""

from typing import List, Optional, Sequence

from ..core.constants import (
    BEATS_PER_MEASURE,
    DYNAMICS,
    DYNAMICS_MIN_MEASURE_SPACING,
)
from ..core.score import ChordGroup, DynamicMarking


def velocity_to_dynamic(velocity: float) -> str:
    """Dynamic tier (pp..ff) for a MIDI velocity."""
    for marking, upper in DYNAMICS:
        if velocity <= upper:
            return marking
    return "ff"


class DynamicsExtractor:
    """Emit dynamic markings where the velocity tier changes."""

    def __init__(
        self,
        beats_per_measure: int = BEATS_PER_MEASURE,
        min_measure_spacing: int = DYNAMICS_MIN_MEASURE_SPACING,
    ):
        self.beats_per_measure = beats_per_measure
        self.min_measure_spacing = min_measure_spacing

    def extract(self, groups: Sequence[ChordGroup]) -> List[DynamicMarking]:
        """
        Derive dynamic markings from chord groups.

        Args:
            groups: Chord groups in start-beat order

        Returns:
            Markings, each at least ``min_measure_spacing`` measures after
            the previous one
        """
        candidates = []
        last_tier: Optional[str] = None

        for group in groups:
            if not group.notes:
                continue
            tier = velocity_to_dynamic(group.average_velocity)
            if tier == last_tier:
                continue
            candidates.append(
                DynamicMarking(
                    measure_index=int(group.start_beat // self.beats_per_measure),
                    beat_in_measure=group.start_beat % self.beats_per_measure,
                    type=tier,
                    clef=group.notes[0].clef,
                )
            )
            last_tier = tier

        return self._thin(candidates)

    def _thin(self, candidates: List[DynamicMarking]) -> List[DynamicMarking]:
        kept: List[DynamicMarking] = []
        for marking in candidates:
            if not kept or marking.measure_index - kept[-1].measure_index >= self.min_measure_spacing:
                kept.append(marking)
        return kept
