"""Measure assembly - lay chord groups out as renderable grand-staff measures.

Each staff is built as one continuous timeline of notes and rests, cut at
bar lines and decomposed into notatable durations, then distributed into
measures. ``repair_measures`` is a separate pass that makes every staff of
every measure add up to a full bar.
"""

import math
import warnings
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .spelling import KeySpeller
from ..core import BASS, TREBLE, Chord, ChordGroup, Measure, Note, NoteKey, TieSlurMarker
from ..core.constants import (
    BEATS_PER_MEASURE,
    DURATION_VOCABULARY,
    GRID_RESOLUTION,
    MAX_MEASURES,
)
from ..core.score import duration_to_symbol

_EPS = 1e-6
_NO_MARK = TieSlurMarker()
CLEFS = (TREBLE, BASS)


def _marked(flags: Sequence[TieSlurMarker], name: str) -> Tuple[int, ...]:
    """Indices of the keys whose marker has ``name`` set."""
    return tuple(k for k, flag in enumerate(flags) if getattr(flag, name))


def _single(index: int, marked: Tuple[int, ...]) -> Tuple[int, ...]:
    return (0,) if index in marked else ()


def decompose(beats: float) -> List[float]:
    """Greedy largest-first split of a length into vocabulary durations."""
    pieces = []
    remaining = beats
    for value in DURATION_VOCABULARY:
        while remaining >= value - _EPS:
            pieces.append(value)
            remaining -= value
    return pieces


def staff_beats(notes: Sequence[Note]) -> float:
    """Total length of a staff in beats."""
    return sum(n.beats for n in notes)


@dataclass
class _StaffEvent:
    start: float
    duration: float
    pitches: Tuple[int, ...]
    velocity: int
    group_index: int


@dataclass
class _Placed:
    measure: int
    note: Note


class MeasureAssembler:
    """Build measures from chord groups."""

    def __init__(
        self,
        beats_per_measure: int = BEATS_PER_MEASURE,
        max_measures: int = MAX_MEASURES,
    ):
        self.beats_per_measure = beats_per_measure
        self.max_measures = max_measures

    def measure_count(self, groups: Sequence[ChordGroup]) -> int:
        """Bars needed to hold every group, capped at ``max_measures``."""
        if not groups:
            return 0
        last_beat = max(g.end_beat for g in groups)
        count = max(1, math.ceil(last_beat / self.beats_per_measure - _EPS))
        if count > self.max_measures:
            warnings.warn(
                f"Score needs {count} measures, truncating to {self.max_measures}"
            )
            count = self.max_measures
        return count

    def assemble(
        self,
        groups: Sequence[ChordGroup],
        markers: Optional[Mapping[NoteKey, TieSlurMarker]] = None,
        key_signature: str = "C",
        measure_count: Optional[int] = None,
    ) -> List[Measure]:
        """
        Lay out chord groups as measures.

        Args:
            groups: Chord groups in start order, clefs already assigned
            markers: Tie/slur markers keyed by (group index, pitch)
            key_signature: Key used for pitch spelling
            measure_count: Force this many measures

        Returns:
            Measures with both staves filled
        """
        markers = markers or {}
        count = self.measure_count(groups) if measure_count is None else measure_count
        if count <= 0:
            return []

        speller = KeySpeller(key_signature)
        staves: Dict[str, List[List[Note]]] = {}

        for clef in CLEFS:
            events = self._staff_events(groups, clef, count * self.beats_per_measure)
            placed = self._link_ties(self._timeline(events, clef, markers, speller, count))

            staves[clef] = [[] for _ in range(count)]
            for item in placed:
                staves[clef][item.measure].append(item.note)

        return [
            Measure(
                treble_notes=tuple(staves[TREBLE][i]),
                bass_notes=tuple(staves[BASS][i]),
                treble_chords=self._chords(staves[TREBLE][i]),
                bass_chords=self._chords(staves[BASS][i]),
            )
            for i in range(count)
        ]

    def _staff_events(
        self, groups: Sequence[ChordGroup], clef: str, total_beats: float
    ) -> List[_StaffEvent]:
        events = []
        for index, group in enumerate(groups):
            members = [n for n in group.notes if n.clef == clef]
            if not members:
                continue
            start = self._snap(group.start_beat)
            if start >= total_beats - _EPS:
                continue
            events.append(
                _StaffEvent(
                    start=start,
                    duration=self._snap(max(n.duration_beats for n in members)),
                    pitches=tuple(sorted({n.pitch for n in members})),
                    velocity=int(round(sum(n.velocity for n in members) / len(members))),
                    group_index=index,
                )
            )

        events.sort(key=lambda e: e.start)
        kept = []
        for i, event in enumerate(events):
            end = event.start + event.duration
            if i + 1 < len(events):
                end = min(end, events[i + 1].start)
            end = min(end, total_beats)
            if end - event.start < GRID_RESOLUTION - _EPS:
                continue
            event.duration = end - event.start
            kept.append(event)
        return kept

    def _timeline(
        self,
        events: List[_StaffEvent],
        clef: str,
        markers: Mapping[NoteKey, TieSlurMarker],
        speller: KeySpeller,
        count: int,
    ) -> List[_Placed]:
        placed: List[_Placed] = []
        cursor = 0.0

        for event in events:
            if event.start > cursor + _EPS:
                placed.extend(self._rests(clef, cursor, event.start))

            flags = [markers.get(NoteKey(event.group_index, p), _NO_MARK) for p in event.pitches]
            spelled = [speller.spell(p) for p in event.pitches]

            pieces = self._pieces(event.start, event.start + event.duration)
            every_key = tuple(range(len(event.pitches)))
            for i, (measure, beats) in enumerate(pieces):
                symbol, dotted = duration_to_symbol(beats)
                first = i == 0
                note = Note(
                    keys=tuple(k for k, _ in spelled),
                    duration=symbol,
                    clef=clef,
                    velocity=event.velocity,
                    accidentals=tuple(a for _, a in spelled),
                    dotted=dotted,
                    tie_end=_marked(flags, "tie_end") if first else every_key,
                    slur_start=_marked(flags, "slur_start") if first else (),
                    slur_end=_marked(flags, "slur_end") if first else (),
                )
                placed.append(_Placed(measure, note))
            cursor = event.start + event.duration

        total = count * self.beats_per_measure
        if cursor < total - _EPS:
            placed.extend(self._rests(clef, cursor, total))
        return placed

    def _rests(self, clef: str, start: float, end: float) -> List[_Placed]:
        return [
            _Placed(measure, Note.rest(clef, beats))
            for measure, beats in self._pieces(start, end)
        ]

    def _pieces(self, start: float, end: float) -> List[Tuple[int, float]]:
        """Cut a span at bar lines; each piece is (measure, beats)."""
        pieces = []
        position = start
        while position < end - _EPS:
            measure = int((position + _EPS) // self.beats_per_measure)
            bar_end = (measure + 1) * self.beats_per_measure
            segment_end = min(end, bar_end)
            pieces.extend((measure, beats) for beats in decompose(segment_end - position))
            position = segment_end
        return pieces

    def _link_ties(self, placed: List[_Placed]) -> List[_Placed]:
        """Keep only tie ends whose pitch sounds just before; set tie starts."""
        for i, item in enumerate(placed):
            note = item.note
            if not note.tie_end:
                continue
            previous = placed[i - 1].note if i > 0 else None
            held = set() if previous is None or previous.is_rest else set(previous.keys)
            kept = tuple(k for k in note.tie_end if note.keys[k] in held)
            if kept != note.tie_end:
                item.note = replace(note, tie_end=kept)

        for i, item in enumerate(placed):
            note = item.note
            if note.is_rest:
                continue
            following = placed[i + 1].note if i + 1 < len(placed) else None
            arriving = set()
            if following is not None and not following.is_rest:
                arriving = {following.keys[k] for k in following.tie_end}
            tied = tuple(k for k, key in enumerate(note.keys) if key in arriving)
            if note.tie_start != tied:
                item.note = replace(note, tie_start=tied)
        return placed

    @staticmethod
    def _chords(notes: Sequence[Note]) -> Optional[Tuple[Chord, ...]]:
        """Chord records for every struck chord of one staff of one bar."""
        chords = []
        offset = 0.0
        for note in notes:
            if note.is_chord and note.is_attack:
                members = tuple(
                    Note(
                        keys=(key,),
                        duration=note.duration,
                        clef=note.clef,
                        velocity=note.velocity,
                        accidentals=(accidental,),
                        dotted=note.dotted,
                        tie_start=_single(k, note.tie_start),
                        tie_end=_single(k, note.tie_end),
                        slur_start=_single(k, note.slur_start),
                        slur_end=_single(k, note.slur_end),
                    )
                    for k, (key, accidental) in enumerate(zip(note.keys, note.accidentals))
                )
                chords.append(Chord(notes=members, start_beat=offset))
            offset += note.beats
        return tuple(chords) or None

    @staticmethod
    def _snap(beat: float) -> float:
        return float(np.floor(beat / GRID_RESOLUTION + 0.5) * GRID_RESOLUTION)

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    def validate_measure(self, measure: Measure) -> bool:
        """True when both staves hold exactly one bar."""
        return all(
            abs(staff_beats(measure.staff(clef)) - self.beats_per_measure) < _EPS
            for clef in CLEFS
        )

    def fix_measure(self, measure: Measure) -> Measure:
        """Repair a single measure; overflow is discarded."""
        return self.repair_measures([measure])[0]

    def repair_measures(self, measures: Sequence[Measure]) -> List[Measure]:
        """
        Make every staff of every measure add up to one bar.

        Short staves are padded with rests. A note crossing the bar line is
        cut and tied into the next measure, taking later notes with it.
        Chord records of a staff that changed are rebuilt from its notes.
        Running this on its own output changes nothing.
        """
        repaired = []
        carry: Dict[str, List[Note]] = {clef: [] for clef in CLEFS}

        for index, measure in enumerate(measures):
            is_last = index == len(measures) - 1
            staves = {}
            chords = {}
            for clef in CLEFS:
                notes, overflow = self._fit(carry[clef] + list(measure.staff(clef)), clef)
                if is_last and overflow:
                    overflow = []
                    if notes and notes[-1].tie_start:
                        notes[-1] = replace(notes[-1], tie_start=())
                staves[clef] = notes
                carry[clef] = overflow
                if tuple(notes) == measure.staff(clef):
                    chords[clef] = measure.chords(clef)
                else:
                    chords[clef] = self._chords(notes)

            repaired.append(
                replace(
                    measure,
                    treble_notes=tuple(staves[TREBLE]),
                    bass_notes=tuple(staves[BASS]),
                    treble_chords=chords[TREBLE],
                    bass_chords=chords[BASS],
                )
            )
        return repaired

    def _fit(self, notes: List[Note], clef: str) -> Tuple[List[Note], List[Note]]:
        """Fit notes into one bar; returns (kept, carried)."""
        capacity = float(self.beats_per_measure)
        kept: List[Note] = []
        carried: List[Note] = []
        used = 0.0

        for note in notes:
            if carried or used >= capacity - _EPS:
                if not note.is_rest or carried:
                    carried.append(note)
                continue

            remaining = capacity - used
            if note.beats <= remaining + _EPS:
                kept.append(note)
                used += note.beats
                continue

            if note.is_rest:
                kept.extend(Note.rest(clef, beats) for beats in decompose(remaining))
                used = capacity
                continue

            head, tail = self._split(note, remaining)
            kept.extend(head)
            carried.extend(tail)
            used = capacity

        if used < capacity - _EPS:
            kept.extend(Note.rest(clef, beats) for beats in decompose(capacity - used))
        return kept, carried

    def _split(self, note: Note, at: float) -> Tuple[List[Note], List[Note]]:
        """Cut a note at ``at`` beats into tied head and tail pieces."""
        head_beats = decompose(at)
        tail_beats = decompose(note.beats - at)

        head = [
            self._piece(
                note,
                beats,
                tie_end=note.tie_end if i == 0 else note.all_keys,
                tie_start=note.all_keys,
                keep_slurs=i == 0,
            )
            for i, beats in enumerate(head_beats)
        ]
        # The last tail piece inherits whatever tie the original note started
        tail = [
            self._piece(
                note,
                beats,
                tie_end=note.all_keys,
                tie_start=note.tie_start if i == len(tail_beats) - 1 else note.all_keys,
                keep_slurs=False,
            )
            for i, beats in enumerate(tail_beats)
        ]
        return head, tail

    @staticmethod
    def _piece(
        note: Note,
        beats: float,
        tie_end: Tuple[int, ...],
        tie_start: Tuple[int, ...],
        keep_slurs: bool,
    ) -> Note:
        symbol, dotted = duration_to_symbol(beats)
        return replace(
            note,
            duration=symbol,
            dotted=dotted,
            tie_end=tie_end,
            tie_start=tie_start,
            slur_start=note.slur_start if keep_slurs else (),
            slur_end=note.slur_end if keep_slurs else (),
        )
