"""Command-line interface for pianoscore.

Provides commands for:
- transcribe: Convert piano audio to grand-staff measures
- analyze: Tempo and key only
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .analysis import FeatureExtractor, TempoAnalyzer
from .core.errors import TranscriptionError
from .inference import KeyDetector
from .input import AudioLoader
from .pipeline import DECODERS, DETECTORS, ScoreTranscriber, TranscriptionConfig, TranscriptionResult

app = typer.Typer(
    name="pianoscore",
    help="Piano audio to sheet music transcription",
    rich_markup_mode="markdown",
)
console = Console()


@dataclass
class StageTimings:
    """Track timing of processing stages."""

    stages: Dict[str, float] = field(default_factory=dict)
    _current_stage: Optional[str] = field(default=None, repr=False)
    _start_time: float = field(default=0.0, repr=False)

    def start(self, stage: str) -> None:
        """Close the running stage (if any) and start timing a new one."""
        if stage == self._current_stage:
            return
        self.stop()
        self._current_stage = stage
        self._start_time = time.time()

    def stop(self) -> float:
        """Stop timing the current stage, return duration."""
        if self._current_stage is None:
            return 0.0
        duration = time.time() - self._start_time
        self.stages[self._current_stage] = duration
        self._current_stage = None
        return duration

    @property
    def total_time(self) -> float:
        return sum(self.stages.values())

    def print_summary(self) -> None:
        console.print("\n[bold]Timing Summary:[/bold]")
        for stage, duration in self.stages.items():
            console.print(f"  {stage}: {duration:.2f}s")
        console.print(f"  [bold]Total: {self.total_time:.2f}s[/bold]")


@app.command()
def transcribe(
    input_file: Path = typer.Argument(..., help="Input audio file (WAV, FLAC, MP3, ...)"),
    detector: str = typer.Option(
        "yin", "-d", "--detector", help=f"Note detector: {' | '.join(DETECTORS)}"
    ),
    decoder: str = typer.Option(
        "greedy", "--decoder", help=f"Duration decoder: {' | '.join(DECODERS)}"
    ),
    title: Optional[str] = typer.Option(None, "--title", help="Score title (default: file name)"),
    json_output: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
):
    """Transcribe a piano recording into measures.

    Examples:
        pianoscore transcribe melody.wav
        pianoscore transcribe chords.wav --detector neural --json
    """
    try:
        config = TranscriptionConfig(detector=detector, quantize_decoder=decoder)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    transcriber = ScoreTranscriber(config)
    timings = StageTimings()

    try:
        if json_output:
            result = transcriber.transcribe_file(input_file, title=title)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Starting...", total=100)

                def on_progress(percent: int, message: str) -> None:
                    timings.start(message)
                    progress.update(task, completed=percent, description=message)

                result = transcriber.transcribe_file(
                    input_file, on_progress=on_progress, title=title
                )
            timings.stop()
    except TranscriptionError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return

    _show_summary(result)
    if verbose:
        _show_measures_table(result)
        timings.print_summary()
    console.print("[green]Transcription complete![/green]")


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """Detect tempo and key without transcribing notes."""
    try:
        decoded = AudioLoader().load(input_file)
    except TranscriptionError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    samples = decoded.to_mono()
    sr = decoded.sample_rate

    tempo = TempoAnalyzer().analyze(samples, sr)
    key = KeyDetector().detect(FeatureExtractor(sr=sr).chromagram(samples))

    console.print(f"[blue]File:[/blue] {input_file.name}")
    console.print(f"  Duration: {decoded.duration:.2f}s, Sample rate: {sr}Hz, Channels: {decoded.channel_count}")
    if tempo.is_fallback:
        console.print(f"  Tempo: {tempo.bpm} BPM [yellow](default, too few onsets)[/yellow]")
    else:
        console.print(f"  Tempo: {tempo.bpm} BPM (confidence: {tempo.confidence:.2f})")
    console.print(
        f"  Key: {key.name}, signature {key.signature} (confidence: {key.confidence:.2f})"
    )


def _show_summary(result: TranscriptionResult) -> None:
    """Display the headline numbers of a transcription."""
    table = Table(title=result.title)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Tempo", f"{result.bpm} BPM")
    table.add_row("Time signature", result.time_signature)
    table.add_row("Key", f"{result.key.name} ({result.key_signature})")
    table.add_row("Notes", str(result.note_count))
    table.add_row("Measures", str(len(result.measures)))
    table.add_row("Dynamics", ", ".join(d.type for d in result.dynamics) or "-")

    console.print(table)


def _format_staff(notes) -> str:
    parts = []
    for note in notes:
        label = "rest" if note.is_rest else " ".join(note.keys)
        parts.append(f"{label}:{note.duration}{'.' if note.dotted else ''}{'~' if note.tie_start else ''}")
    return "  ".join(parts)


def _show_measures_table(result: TranscriptionResult) -> None:
    """Display measures in a table."""
    table = Table(title="Measures")
    table.add_column("#", style="magenta")
    table.add_column("Treble", style="cyan")
    table.add_column("Bass", style="yellow")

    for index, measure in enumerate(result.measures, start=1):
        table.add_row(str(index), _format_staff(measure.treble_notes), _format_staff(measure.bass_notes))

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
