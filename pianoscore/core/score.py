"""Score model - the intermediate and renderable types of a transcription.

Every type here is frozen. Stages hand tuples of these objects to the next
stage, so no stage can mutate what an earlier one produced.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

from .constants import DOTTED_DURATIONS, DURATION_VOCABULARY

TREBLE = "treble"
BASS = "bass"

# Beats per base duration symbol (undotted)
SYMBOL_BEATS = {"w": 4.0, "h": 2.0, "q": 1.0, "8": 0.5, "16": 0.25}

# Vocabulary value -> (symbol, dotted)
DURATION_SYMBOLS = {
    4.0: ("w", False),
    3.0: ("h", True),
    2.0: ("h", False),
    1.5: ("q", True),
    1.0: ("q", False),
    0.75: ("8", True),
    0.5: ("8", False),
    0.25: ("16", False),
}

REST_KEYS = {TREBLE: "b/4", BASS: "d/3"}


def duration_to_symbol(beats: float) -> Tuple[str, bool]:
    """Map a vocabulary duration in beats to (symbol, dotted)."""
    for value in DURATION_VOCABULARY:
        if abs(beats - value) < 1e-6:
            return DURATION_SYMBOLS[value]
    raise ValueError(f"Not a notatable duration: {beats} beats")


def is_dotted_duration(beats: float) -> bool:
    return any(abs(beats - d) < 1e-6 for d in DOTTED_DURATIONS)


@dataclass(frozen=True)
class QuantizedNote:
    """A note snapped to the beat grid."""

    pitch: int
    start_beat: float
    duration_beats: float
    clef: str
    velocity: int = 64

    @property
    def end_beat(self) -> float:
        return self.start_beat + self.duration_beats


@dataclass(frozen=True)
class ChordGroup:
    """Notes attacked together, in ascending pitch order."""

    start_beat: float
    notes: Tuple[QuantizedNote, ...]

    @property
    def end_beat(self) -> float:
        if not self.notes:
            return self.start_beat
        return self.start_beat + max(n.duration_beats for n in self.notes)

    @property
    def pitches(self) -> Tuple[int, ...]:
        return tuple(n.pitch for n in self.notes)

    @property
    def average_velocity(self) -> float:
        if not self.notes:
            return 0.0
        return sum(n.velocity for n in self.notes) / len(self.notes)


class NoteKey(NamedTuple):
    """Identifies one pitch inside one chord group."""

    group_index: int
    pitch: int


@dataclass(frozen=True)
class TieSlurMarker:
    """Relationship of a note to the group that follows it."""

    tie_end: bool = False
    slur_start: bool = False
    slur_end: bool = False


@dataclass(frozen=True)
class DynamicMarking:
    """A dynamic marking placed at a point in the score."""

    measure_index: int
    beat_in_measure: float
    type: str
    clef: str


@dataclass(frozen=True)
class Note:
    """A renderable note, chord or rest on one staff.

    ``keys`` holds VexFlow-style spellings ("eb/4") in ascending pitch order,
    with one entry in ``accidentals`` per key (None when nothing is drawn).
    Tie and slur marks are tuples of indices into ``keys``, so a chord can
    hold one pitch over while the others are struck again.
    """

    keys: Tuple[str, ...]
    duration: str
    clef: str
    velocity: Optional[int] = None
    accidentals: Tuple[Optional[str], ...] = ()
    dotted: bool = False
    is_rest: bool = False
    tie_start: Tuple[int, ...] = ()
    tie_end: Tuple[int, ...] = ()
    slur_start: Tuple[int, ...] = ()
    slur_end: Tuple[int, ...] = ()

    @property
    def beats(self) -> float:
        """Length of the note in beats."""
        base = SYMBOL_BEATS[self.duration.rstrip("r")]
        return base * 1.5 if self.dotted else base

    @property
    def pitch_spelling(self) -> str:
        return self.keys[0]

    @property
    def is_chord(self) -> bool:
        return len(self.keys) > 1

    @property
    def all_keys(self) -> Tuple[int, ...]:
        return tuple(range(len(self.keys)))

    @property
    def is_attack(self) -> bool:
        """True when at least one key is struck rather than tied into."""
        return not self.is_rest and len(set(self.tie_end)) < len(self.keys)

    @classmethod
    def rest(cls, clef: str, beats: float) -> "Note":
        symbol, dotted = duration_to_symbol(beats)
        return cls(
            keys=(REST_KEYS[clef],),
            duration=symbol + "r",
            clef=clef,
            dotted=dotted,
            is_rest=True,
        )


@dataclass(frozen=True)
class Chord:
    """Simultaneous attack: one single-key Note per pitch."""

    notes: Tuple[Note, ...]
    start_beat: float


@dataclass(frozen=True)
class Measure:
    """One bar of the grand staff."""

    treble_notes: Tuple[Note, ...]
    bass_notes: Tuple[Note, ...]
    treble_chords: Optional[Tuple[Chord, ...]] = None
    bass_chords: Optional[Tuple[Chord, ...]] = None

    def staff(self, clef: str) -> Tuple[Note, ...]:
        return self.treble_notes if clef == TREBLE else self.bass_notes

    def chords(self, clef: str) -> Optional[Tuple[Chord, ...]]:
        return self.treble_chords if clef == TREBLE else self.bass_chords
