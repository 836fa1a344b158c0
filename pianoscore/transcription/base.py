"""Base classes for note detection."""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import numpy as np

from ..core import RawNoteEvent

# Called with (frames done, total frames)
FrameProgress = Callable[[int, int], None]


class NoteDetector(ABC):
    """Abstract base class for audio-to-note-event detection."""

    @abstractmethod
    def detect(
        self,
        audio: np.ndarray,
        sr: int,
        progress: Optional[FrameProgress] = None,
    ) -> Iterator[RawNoteEvent]:
        """
        Lazily detect note events over the whole buffer.

        Args:
            audio: Mono audio array
            sr: Sample rate
            progress: Optional frame progress callback

        Returns:
            Single-use iterator of note events
        """

    def transcribe(self, audio: np.ndarray, sr: int) -> List[RawNoteEvent]:
        """
        Transcribe audio to notes.

        Returns:
            List of detected notes sorted by onset
        """
        events = list(self.detect(audio, sr))
        events.sort(key=lambda e: (e.onset, e.pitch))
        return events
