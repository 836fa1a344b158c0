"""Pitch spelling relative to a key signature."""

from typing import Dict, Optional, Tuple

from ..core.constants import (
    FLAT_NAMES,
    FLAT_ORDER,
    KEY_SIGNATURES,
    SHARP_NAMES,
    SHARP_ORDER,
)


class KeySpeller:
    """
    Spell MIDI pitches as VexFlow keys ("eb/4") for a key signature.

    Flat keys use flat names, all others sharp names. Accidentals implied by
    the signature are not drawn; a natural is drawn on a letter the
    signature alters.
    """

    def __init__(self, key_signature: str = "C"):
        if key_signature not in KEY_SIGNATURES:
            raise ValueError(f"Unknown key signature: {key_signature!r}")

        self.key_signature = key_signature
        self.accidentals = KEY_SIGNATURES[key_signature]
        self.names = FLAT_NAMES if self.accidentals < 0 else SHARP_NAMES

        self.altered: Dict[str, str] = {}
        if self.accidentals > 0:
            self.altered = {letter: "#" for letter in SHARP_ORDER[: self.accidentals]}
        elif self.accidentals < 0:
            self.altered = {letter: "b" for letter in FLAT_ORDER[: -self.accidentals]}

    def spell(self, pitch: int) -> Tuple[str, Optional[str]]:
        """
        Spell one pitch.

        Returns:
            (key, displayed accidental), e.g. ("f#/4", None) in G major
        """
        name = self.names[pitch % 12]
        octave = pitch // 12 - 1
        letter, accidental = name[0], name[1:] or None
        implied = self.altered.get(letter)

        if accidental is None:
            shown = "n" if implied else None
        elif accidental == implied:
            shown = None
        else:
            shown = accidental

        return f"{name}/{octave}", shown
