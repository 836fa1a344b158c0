"""Note quantization - Snap notes to a beat grid and a duration vocabulary.

Durations are decoded with a small hidden Markov model: each vocabulary
value is a state, the emission is a Gaussian around the observed length in
beats, and the transition favours repeating or halving/doubling the previous
duration.
"""

from typing import List, Optional, Sequence

import numpy as np

from ..core import RawNoteEvent, QuantizedNote, TREBLE, BASS
from ..core.constants import (
    DEFAULT_BPM,
    DOTTED_DURATIONS,
    DURATION_SIGMA,
    DURATION_VOCABULARY,
    GRID_RESOLUTION,
    MIDDLE_C_MIDI,
    MIN_PROBABILITY,
)

GREEDY = "greedy"
VITERBI = "viterbi"


def middle_c_clef(pitch: int) -> str:
    """Treble from middle C up, bass below."""
    return TREBLE if pitch >= MIDDLE_C_MIDI else BASS


def _is_dotted(beats: float) -> bool:
    return any(abs(beats - d) < 1e-9 for d in DOTTED_DURATIONS)


def duration_transition(previous: float, current: float) -> float:
    """
    Transition weight between two consecutive durations.

    Args:
        previous: Previous duration in beats
        current: Current duration in beats

    Returns:
        0.4 for a repeat, 0.25 for a 2:1 or 1:2 ratio, 0.15 when exactly one
        side is dotted, 0.1 otherwise
    """
    if abs(previous - current) < 1e-9:
        return 0.4
    ratio = previous / current
    if abs(ratio - 2.0) < 1e-9 or abs(ratio - 0.5) < 1e-9:
        return 0.25
    if _is_dotted(previous) != _is_dotted(current):
        return 0.15
    return 0.1


class Quantizer:
    """Quantize note timings to a rhythmic grid."""

    def __init__(
        self,
        tempo: float = DEFAULT_BPM,
        decoder: str = GREEDY,
        vocabulary: Sequence[float] = DURATION_VOCABULARY,
        sigma: float = DURATION_SIGMA,
        grid: float = GRID_RESOLUTION,
    ):
        """
        Initialize Quantizer.

        Args:
            tempo: Tempo in BPM
            decoder: "greedy" (note by note) or "viterbi" (whole sequence)
            vocabulary: Allowed durations in beats
            sigma: Width of the duration emission in beats
            grid: Start-beat grid in beats (0.25 = 16th note)
        """
        if tempo <= 0:
            raise ValueError(f"Tempo must be positive, got {tempo}")
        if decoder not in (GREEDY, VITERBI):
            raise ValueError(f"Unknown decoder: {decoder!r}")

        self.tempo = tempo
        self.decoder = decoder
        self.vocabulary = np.asarray(vocabulary, dtype=np.float64)
        self.sigma = sigma
        self.grid = grid
        self._transitions = np.array(
            [[duration_transition(p, c) for c in self.vocabulary] for p in self.vocabulary]
        )

    @property
    def beats_per_second(self) -> float:
        return self.tempo / 60.0

    def emission(self, observed: float) -> np.ndarray:
        """Gaussian likelihood of each vocabulary value, floored."""
        probs = np.exp(-((observed - self.vocabulary) ** 2) / (2 * self.sigma**2))
        return np.maximum(probs, MIN_PROBABILITY)

    def quantize(self, events: Sequence[RawNoteEvent]) -> List[QuantizedNote]:
        """
        Quantize note onsets and durations.

        Args:
            events: Notes in the order they should be decoded

        Returns:
            One quantized note per input event, same order
        """
        if not events:
            return []

        observed = [e.duration * self.beats_per_second for e in events]
        if self.decoder == VITERBI:
            states = self._decode_viterbi(observed)
        else:
            states = self._decode_greedy(observed)

        return [
            QuantizedNote(
                pitch=event.pitch,
                start_beat=self.snap(event.onset * self.beats_per_second),
                duration_beats=float(self.vocabulary[state]),
                clef=middle_c_clef(event.pitch),
                velocity=event.velocity,
            )
            for event, state in zip(events, states)
        ]

    def snap(self, beat: float) -> float:
        """Snap a beat position to the nearest grid line (halves round up)."""
        return float(np.floor(beat / self.grid + 0.5) * self.grid)

    def _decode_greedy(self, observed: List[float]) -> List[int]:
        states: List[int] = []
        previous: Optional[int] = None
        for obs in observed:
            scores = self.emission(obs)
            if previous is not None:
                scores = scores * self._transitions[previous]
            previous = int(np.argmax(scores))
            states.append(previous)
        return states

    def _decode_viterbi(self, observed: List[float]) -> List[int]:
        log_trans = np.log(self._transitions)
        log_emit = np.log(np.vstack([self.emission(obs) for obs in observed]))

        n_steps, n_states = log_emit.shape
        score = log_emit[0].copy()
        backpointers = np.zeros((n_steps, n_states), dtype=int)

        for t in range(1, n_steps):
            # candidates[i, j]: best path ending in i, then moving to j
            candidates = score[:, None] + log_trans
            backpointers[t] = np.argmax(candidates, axis=0)
            score = candidates[backpointers[t], np.arange(n_states)] + log_emit[t]

        path = [int(np.argmax(score))]
        for t in range(n_steps - 1, 0, -1):
            path.append(int(backpointers[t, path[-1]]))
        path.reverse()
        return path
