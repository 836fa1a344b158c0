"""Voice separation - assign notes to the treble or bass staff."""

from dataclasses import replace
from typing import Dict, List, Sequence

import numpy as np

from .quantize import middle_c_clef
from ..core import BASS, TREBLE, ChordGroup, QuantizedNote
from ..core.constants import CHORD_SPLIT_MIN_GAP, CHORD_SPLIT_RANGE


class VoiceSeparator:
    """Split simultaneous notes between the two hands."""

    def __init__(
        self,
        split_range: int = CHORD_SPLIT_RANGE,
        min_gap: int = CHORD_SPLIT_MIN_GAP,
    ):
        """
        Initialize VoiceSeparator.

        Args:
            split_range: Chords spanning at most this many semitones use the
                middle-C rule
            min_gap: Wider chords split at their largest gap when it exceeds
                this many semitones
        """
        self.split_range = split_range
        self.min_gap = min_gap

    def assign(self, notes: Sequence[QuantizedNote]) -> List[QuantizedNote]:
        """Reassign clefs for one set of simultaneous notes."""
        if not notes:
            return []

        pitches = sorted(n.pitch for n in notes)
        if len(notes) == 1 or pitches[-1] - pitches[0] <= self.split_range:
            return [replace(n, clef=middle_c_clef(n.pitch)) for n in notes]

        gaps = np.diff(pitches)
        split = int(np.argmax(gaps))  # first largest gap
        if gaps[split] <= self.min_gap:
            return [replace(n, clef=middle_c_clef(n.pitch)) for n in notes]

        low_top = pitches[split]
        return [replace(n, clef=BASS if n.pitch <= low_top else TREBLE) for n in notes]

    def separate(self, notes: Sequence[QuantizedNote]) -> List[QuantizedNote]:
        """
        Assign clefs to notes sharing a start beat.

        Returns:
            Notes in input order with their clef set
        """
        by_start: Dict[float, List[int]] = {}
        for index, note in enumerate(notes):
            by_start.setdefault(note.start_beat, []).append(index)

        result: List[QuantizedNote] = list(notes)
        for indices in by_start.values():
            for index, note in zip(indices, self.assign([notes[i] for i in indices])):
                result[index] = note
        return result

    def separate_groups(self, groups: Sequence[ChordGroup]) -> List[ChordGroup]:
        """Apply :meth:`assign` to each group's members."""
        return [
            ChordGroup(start_beat=g.start_beat, notes=tuple(self.assign(g.notes)))
            for g in groups
        ]
