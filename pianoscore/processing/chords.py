"""Chord grouping and tie/slur detection over quantized notes."""

from dataclasses import replace
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence

from ..core import ChordGroup, NoteKey, QuantizedNote, TieSlurMarker
from ..core.constants import (
    CHORD_TIME_THRESHOLD,
    DEFAULT_BPM,
    MAX_CHORD_SIZE,
    TIE_GAP_THRESHOLD,
)

_EPS = 1e-9


class ChordGrouper:
    """Group near-simultaneous notes and relate consecutive groups."""

    def __init__(
        self,
        tempo: float = DEFAULT_BPM,
        chord_threshold: float = CHORD_TIME_THRESHOLD,
        tie_threshold: float = TIE_GAP_THRESHOLD,
        max_chord_size: int = MAX_CHORD_SIZE,
    ):
        """
        Initialize ChordGrouper.

        Args:
            tempo: Tempo in BPM, used to convert the thresholds to beats
            chord_threshold: Max onset spread inside a chord (seconds)
            tie_threshold: Max gap for a tie (seconds); slurs allow twice this
            max_chord_size: Notes beyond this count are dropped from a chord
        """
        if tempo <= 0:
            raise ValueError(f"Tempo must be positive, got {tempo}")
        self.tempo = tempo
        self.chord_threshold = chord_threshold
        self.tie_threshold = tie_threshold
        self.max_chord_size = max_chord_size

    @property
    def chord_threshold_beats(self) -> float:
        return self.chord_threshold * self.tempo / 60.0

    @property
    def tie_threshold_beats(self) -> float:
        return self.tie_threshold * self.tempo / 60.0

    def group(self, notes: Sequence[QuantizedNote]) -> List[ChordGroup]:
        """
        Collect notes into chord groups.

        A note joins the open group when its start is within the chord
        threshold of the group's first note.

        Returns:
            Groups in start order, members sorted by pitch
        """
        ordered = sorted(notes, key=lambda n: n.start_beat)
        groups: List[ChordGroup] = []
        members: List[QuantizedNote] = []

        for note in ordered:
            if members and abs(note.start_beat - members[0].start_beat) <= self.chord_threshold_beats + _EPS:
                if len(members) < self.max_chord_size:
                    members.append(note)
                continue
            if members:
                groups.append(self._close(members))
            members = [note]

        if members:
            groups.append(self._close(members))
        return groups

    def _close(self, members: List[QuantizedNote]) -> ChordGroup:
        return ChordGroup(
            start_beat=members[0].start_beat,
            notes=tuple(sorted(members, key=lambda n: n.pitch)),
        )

    def detect_ties_and_slurs(
        self, groups: Sequence[ChordGroup]
    ) -> Mapping[NoteKey, TieSlurMarker]:
        """
        Find ties and slurs between adjacent groups.

        A pitch held into the next group across a short gap is tied; other
        pitches across a slightly longer gap start a slur that ends on every
        note of the next group.

        Returns:
            Read-only mapping of (group index, pitch) to marker flags
        """
        markers: Dict[NoteKey, TieSlurMarker] = {}
        tie_thr = self.tie_threshold_beats

        for i in range(len(groups) - 1):
            current, following = groups[i], groups[i + 1]
            gap = following.start_beat - current.end_beat
            if gap < -_EPS:
                continue
            next_pitches = set(following.pitches)

            for pitch in current.pitches:
                if pitch in next_pitches and gap < tie_thr:
                    markers.setdefault(NoteKey(i, pitch), TieSlurMarker())
                    self._update(markers, NoteKey(i + 1, pitch), tie_end=True)
                elif gap < 2 * tie_thr:
                    self._update(markers, NoteKey(i, pitch), slur_start=True)
                    for next_pitch in following.pitches:
                        self._update(markers, NoteKey(i + 1, next_pitch), slur_end=True)

        return MappingProxyType(markers)

    @staticmethod
    def _update(markers: Dict[NoteKey, TieSlurMarker], key: NoteKey, **flags) -> None:
        markers[key] = replace(markers.get(key, TieSlurMarker()), **flags)
