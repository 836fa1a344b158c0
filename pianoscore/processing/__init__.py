"""Processing layer - From raw note events to renderable measures.

This layer turns detected notes into notation:
- Quantization (duration HMM, beat grid)
- Chord grouping and tie/slur detection
- Voice separation (treble/bass)
- Pitch spelling for a key signature
- Measure assembly and repair
"""

from .quantize import Quantizer, duration_transition, middle_c_clef
from .chords import ChordGrouper
from .voices import VoiceSeparator
from .spelling import KeySpeller
from .measures import MeasureAssembler, decompose, staff_beats

__all__ = [
    "Quantizer",
    "duration_transition",
    "middle_c_clef",
    "ChordGrouper",
    "VoiceSeparator",
    "KeySpeller",
    "MeasureAssembler",
    "decompose",
    "staff_beats",
]
