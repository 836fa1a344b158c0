"""Inference layer - Musical understanding from features and notes.

- Key detection (Krumhansl-Schmuckler over a chromagram)
- Dynamics (velocity tiers to pp..ff markings)
"""

from .key import KeyDetector, KeyEstimate, key_signature_name
from .dynamics import DynamicsExtractor, velocity_to_dynamic

__all__ = [
    "KeyDetector",
    "KeyEstimate",
    "key_signature_name",
    "DynamicsExtractor",
    "velocity_to_dynamic",
]
