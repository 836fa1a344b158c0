"""End-to-end transcription: audio samples in, measures out.

Stages run in a fixed order:
    tempo -> note detection -> chromagram/key -> quantize -> chord groups
    -> voices -> ties/slurs -> dynamics -> measures -> repair
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np

from .analysis import FeatureExtractor, TempoAnalyzer
from .core import DynamicMarking, Measure, RawNoteEvent
from .core.constants import (
    BEATS_PER_MEASURE,
    CHORD_TIME_THRESHOLD,
    FRAME_SIZE,
    HOP_SIZE,
    MAX_CHORD_SIZE,
    MAX_FREQUENCY,
    MAX_MEASURES,
    MIN_FREQUENCY,
    MIN_NOTE_DURATION,
    MIN_VELOCITY,
    NEURAL_MIN_NOTE_DURATION,
    TIE_GAP_THRESHOLD,
    TIME_SIGNATURE,
    YIN_THRESHOLD,
)
from .core.errors import AnalysisError, DecodeError
from .inference import DynamicsExtractor, KeyDetector, KeyEstimate
from .input import AudioLoader
from .processing import ChordGrouper, MeasureAssembler, Quantizer, VoiceSeparator
from .transcription import NeuralNoteDetector, NoteDetector, YinEnergyDetector

# Called with (percent 0-100, message)
ProgressCallback = Callable[[int, str], None]

DETECTORS = ("yin", "neural")
DECODERS = ("greedy", "viterbi")


@dataclass
class TranscriptionConfig:
    """Configuration for the transcription pipeline.

    Attributes:
        detector: Note detector, "yin" (monophonic) or "neural" (polyphonic)
        quantize_decoder: Duration decoder, "greedy" or "viterbi"
        frame_size: Analysis window in samples (power of two)
        hop_size: Samples between YIN frames
        yin_threshold: YIN dip threshold
        min_note_duration: Shortest YIN note kept, in seconds
        min_velocity: Frames at or below this velocity count as silence
        fmin: Lowest accepted pitch frequency (Hz)
        fmax: Highest accepted pitch frequency (Hz)
        neural_min_note_duration: Shortest neural note kept, in seconds
        chord_threshold: Onset spread merged into one chord, in seconds
        tie_threshold: Gap bridged by a tie, in seconds
        max_chord_size: Notes kept per chord
        beats_per_measure: Beats in a bar (4/4 time)
        max_measures: Longest score produced
        downmix: Average channels of decoded files instead of taking the first
    """

    detector: str = "yin"
    quantize_decoder: str = "greedy"
    frame_size: int = FRAME_SIZE
    hop_size: int = HOP_SIZE
    yin_threshold: float = YIN_THRESHOLD
    min_note_duration: float = MIN_NOTE_DURATION
    min_velocity: int = MIN_VELOCITY
    fmin: float = MIN_FREQUENCY
    fmax: float = MAX_FREQUENCY
    neural_min_note_duration: float = NEURAL_MIN_NOTE_DURATION
    chord_threshold: float = CHORD_TIME_THRESHOLD
    tie_threshold: float = TIE_GAP_THRESHOLD
    max_chord_size: int = MAX_CHORD_SIZE
    beats_per_measure: int = BEATS_PER_MEASURE
    max_measures: int = MAX_MEASURES
    downmix: bool = True

    def __post_init__(self):
        if self.detector not in DETECTORS:
            raise ValueError(f"Unknown detector {self.detector!r}, expected one of {DETECTORS}")
        if self.quantize_decoder not in DECODERS:
            raise ValueError(
                f"Unknown decoder {self.quantize_decoder!r}, expected one of {DECODERS}"
            )

    def build_detector(self) -> NoteDetector:
        if self.detector == "neural":
            return NeuralNoteDetector(min_note_duration=self.neural_min_note_duration)
        return YinEnergyDetector(
            frame_size=self.frame_size,
            hop_size=self.hop_size,
            yin_threshold=self.yin_threshold,
            min_note_duration=self.min_note_duration,
            min_velocity=self.min_velocity,
            fmin=self.fmin,
            fmax=self.fmax,
        )


@dataclass(frozen=True)
class TranscriptionResult:
    """A finished transcription, ready for rendering."""

    title: str
    artist: str
    bpm: int
    time_signature: str
    key_signature: str
    key: KeyEstimate
    measures: Tuple[Measure, ...]
    dynamics: Tuple[DynamicMarking, ...]
    events: Tuple[RawNoteEvent, ...]
    note_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict/list structure (JSON-serializable)."""
        data = asdict(self)
        data["key"]["name"] = self.key.name
        return data


def _silent(percent: int, message: str) -> None:
    pass


class ScoreTranscriber:
    """Runs the full audio-to-score pipeline."""

    def __init__(
        self,
        config: Optional[TranscriptionConfig] = None,
        detector: Optional[NoteDetector] = None,
    ):
        """
        Initialize ScoreTranscriber.

        Args:
            config: Pipeline configuration (default settings if None)
            detector: Note detector overriding ``config.detector``
        """
        self.config = config or TranscriptionConfig()
        self.detector = detector
        self.loader = AudioLoader()

    def transcribe_file(
        self,
        path: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None,
        title: Optional[str] = None,
        artist: str = "Transcribed",
    ) -> TranscriptionResult:
        """
        Decode an audio file and transcribe it.

        Raises:
            DecodeError: If the file cannot be decoded
            AnalysisError: If a stage fails
        """
        report = on_progress or _silent
        report(5, "Decoding audio file...")
        decoded = self.loader.load(path)
        samples = decoded.to_mono() if self.config.downmix else decoded.first_channel()
        return self.transcribe(
            samples,
            decoded.sample_rate,
            on_progress=on_progress,
            title=title or Path(path).stem,
            artist=artist,
        )

    def transcribe(
        self,
        audio: np.ndarray,
        sr: int,
        on_progress: Optional[ProgressCallback] = None,
        title: str = "Untitled",
        artist: str = "Transcribed",
    ) -> TranscriptionResult:
        """
        Transcribe a sample buffer to measures.

        Args:
            audio: Samples, mono or (channels, samples); the first channel is used
            sr: Sample rate
            on_progress: Optional (percent, message) callback
            title: Score title
            artist: Score artist

        Returns:
            TranscriptionResult

        Raises:
            DecodeError: If the buffer cannot be interpreted as samples
            AnalysisError: If a stage fails
        """
        report = on_progress or _silent
        report(10, "Preparing audio data...")
        samples = self._prepare(audio, sr)

        try:
            return self._run(samples, int(sr), report, title, artist)
        except (DecodeError, AnalysisError):
            raise
        except Exception as e:
            raise AnalysisError(f"Transcription failed: {e}") from e

    def _prepare(self, audio: np.ndarray, sr: int) -> np.ndarray:
        if (
            isinstance(sr, bool)
            or not isinstance(sr, (int, float, np.integer, np.floating))
            or not np.isfinite(sr)
            or sr <= 0
        ):
            raise DecodeError(f"Sample rate must be positive, got {sr!r}")

        try:
            samples = np.asarray(audio, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Audio is not numeric: {e}") from e

        if samples.ndim == 0 or samples.ndim > 2:
            raise DecodeError(f"Audio must be 1-D or 2-D, got {samples.ndim} dimensions")
        if samples.ndim == 2:
            if samples.shape[0] == 0:
                return np.zeros(0)
            samples = samples[0]
        if not np.all(np.isfinite(samples)):
            raise DecodeError("Audio contains non-finite samples")
        return samples

    def _run(
        self,
        samples: np.ndarray,
        sr: int,
        report: ProgressCallback,
        title: str,
        artist: str,
    ) -> TranscriptionResult:
        cfg = self.config

        report(15, "Detecting tempo...")
        bpm = TempoAnalyzer().detect(samples, sr)

        report(20, "Analyzing frequencies...")

        def frame_progress(done: int, total: int) -> None:
            report(20 + int(60 * done / max(total, 1)), "Analyzing frequencies...")

        detector = self.detector or cfg.build_detector()
        events = sorted(detector.detect(samples, sr, frame_progress), key=lambda e: e.onset)

        chroma = FeatureExtractor(
            sr=sr, frame_size=cfg.frame_size, hop_length=cfg.frame_size // 2
        ).chromagram(samples)
        key = KeyDetector().detect(chroma)

        report(85, "Post-processing notes...")
        quantized = Quantizer(bpm, decoder=cfg.quantize_decoder).quantize(events)

        grouper = ChordGrouper(
            bpm,
            chord_threshold=cfg.chord_threshold,
            tie_threshold=cfg.tie_threshold,
            max_chord_size=cfg.max_chord_size,
        )
        groups = VoiceSeparator().separate_groups(grouper.group(quantized))
        markers = grouper.detect_ties_and_slurs(groups)
        dynamics = DynamicsExtractor(beats_per_measure=cfg.beats_per_measure).extract(groups)

        report(90, "Generating sheet music...")
        assembler = MeasureAssembler(cfg.beats_per_measure, cfg.max_measures)
        measures = assembler.repair_measures(
            assembler.assemble(groups, markers, key.signature)
        )

        report(100, "Complete!")
        return TranscriptionResult(
            title=title,
            artist=artist,
            bpm=bpm,
            time_signature=TIME_SIGNATURE,
            key_signature=key.signature,
            key=key,
            measures=tuple(measures),
            dynamics=tuple(d for d in dynamics if d.measure_index < len(measures)),
            events=tuple(events),
            note_count=sum(len(g.notes) for g in groups),
        )


def transcribe(
    audio: np.ndarray,
    sr: int,
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[TranscriptionConfig] = None,
    detector: Optional[NoteDetector] = None,
    title: str = "Untitled",
    artist: str = "Transcribed",
) -> TranscriptionResult:
    """Transcribe a sample buffer with a one-off :class:`ScoreTranscriber`."""
    return ScoreTranscriber(config=config, detector=detector).transcribe(
        audio, sr, on_progress=on_progress, title=title, artist=artist
    )
