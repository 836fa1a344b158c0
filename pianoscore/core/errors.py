"""Exception types raised by the transcription core."""


class TranscriptionError(Exception):
    """Base class for transcription failures."""


class DecodeError(TranscriptionError, ValueError):
    """Input audio cannot be interpreted as samples."""


class AnalysisError(TranscriptionError, RuntimeError):
    """An internal invariant was violated while analyzing audio."""
