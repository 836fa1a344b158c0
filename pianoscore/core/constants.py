"""Global constants for pianoscore."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
SHARP_NAMES = ["c", "c#", "d", "d#", "e", "f", "f#", "g", "g#", "a", "a#", "b"]
FLAT_NAMES = ["c", "db", "d", "eb", "e", "f", "gb", "g", "ab", "a", "bb", "b"]

# Tuning
A4_FREQUENCY = 440.0
A4_MIDI = 69
MIDDLE_C_MIDI = 60

# Frame analysis
FRAME_SIZE = 4096
HOP_SIZE = 2048
YIN_THRESHOLD = 0.15
MIN_FREQUENCY = 65.0  # C2
MAX_FREQUENCY = 2093.0  # C7
CHROMA_MIN_FREQUENCY = 20.0
MIN_NOTE_DURATION = 0.05
MIN_VELOCITY = 10
RMS_TO_VELOCITY = 1000.0
PROGRESS_EVERY_FRAMES = 100

# Neural detector post-filter
NEURAL_MIN_NOTE_DURATION = 0.03
NEURAL_SAMPLE_RATE = 16000

# Tempo
BPM_WINDOW_SECONDS = 0.01
BPM_PEAK_FACTOR = 1.5
DEFAULT_BPM = 120
MIN_BPM = 60
MAX_BPM = 200

# Rhythm
BEATS_PER_MEASURE = 4
TIME_SIGNATURE = "4/4"
MAX_MEASURES = 16
GRID_RESOLUTION = 0.25  # 16th note
DURATION_VOCABULARY = (4.0, 3.0, 2.0, 1.5, 1.0, 0.75, 0.5, 0.25)
DOTTED_DURATIONS = (3.0, 1.5, 0.75)
DURATION_SIGMA = 0.15
MIN_PROBABILITY = 1e-10

# Chords, ties and slurs (seconds)
CHORD_TIME_THRESHOLD = 0.05
TIE_GAP_THRESHOLD = 0.1
MAX_CHORD_SIZE = 8

# Voice separation
CHORD_SPLIT_RANGE = 12
CHORD_SPLIT_MIN_GAP = 5

# Dynamics: upper velocity bound of each tier, "ff" takes the rest
DYNAMICS = (
    ("pp", 31),
    ("p", 47),
    ("mp", 63),
    ("mf", 79),
    ("f", 95),
)
DYNAMICS_MIN_MEASURE_SPACING = 4

# Key signatures: positive = sharps, negative = flats
KEY_SIGNATURES = {
    "C": 0, "G": 1, "D": 2, "A": 3, "E": 4, "B": 5, "F#": 6,
    "F": -1, "Bb": -2, "Eb": -3, "Ab": -4, "Db": -5,
    "Am": 0, "Em": 1, "Bm": 2, "F#m": 3, "C#m": 4, "G#m": 5,
    "Dm": -1, "Gm": -2, "Cm": -3, "Fm": -4, "Bbm": -5, "Ebm": -6,
}
MAJOR_TONIC_NAMES = ["C", "Db", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"]
MINOR_TONIC_NAMES = ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "G#", "A", "Bb", "B"]
SHARP_ORDER = "fcgdaeb"
FLAT_ORDER = "beadgcf"

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
PIANO_MIN = 21  # A0
PIANO_MAX = 108  # C8
