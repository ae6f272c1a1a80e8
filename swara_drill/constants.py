"""Shared constants for pitch tracking, utterance scoring and drill pacing."""

from typing import Dict, List

# Movable solfege alphabet, index == semitone above the tonic
NOTE_LABELS: List[str] = [
    "S",
    "R1",
    "R2",
    "G1",
    "G2",
    "M1",
    "M2",
    "P",
    "D1",
    "D2",
    "N1",
    "N2",
]
OCTAVE_UP_MARK = "'"
OCTAVE_DOWN_MARK = "."

WESTERN_NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]

# Pitch estimation
YIN_THRESHOLD = 0.15
MIN_FREQUENCY = 60.0  # Hz
MAX_FREQUENCY = 1000.0  # Hz

# Signal gating
SILENCE_THRESHOLD = 0.01  # RMS
SIGNAL_MIN_CONFIDENCE = 0.3

# Note matching
IN_TUNE_CENTS = 50
MATCH_MIN_CONFIDENCE = 0.7

# Utterance segmentation
UTTERANCE_SILENCE_DURATION_MS = 100
MIN_UTTERANCE_DURATION_MS = 150

# Discrete checks
STABILITY_THRESHOLD_SEMITONES = 0.5
LENGTH_TOLERANCE_MS = 300
TIMING_TOLERANCE_MS = 500

# Pitch curve comparison
CURVE_PASS_SCORE = 80
TRAINER_TRACE_TAIL_MS = 1000
MIN_CURVE_OVERLAP_MS = 100
CURVE_GRID_STEP_MS = 20
CURVE_MIN_POINTS = 10
CURVE_MAX_POINTS = 50

# Call and response pacing
ATTEMPT_COUNT = 3
DEFAULT_TEMPO_BPM = 60
TARGET_NOTE_GAP_MS = 200
DEFAULT_TARGET_DURATION_MS = 1200  # oscillator target length
DEFAULT_NOTE_DURATION_MS = 1000
REPLAY_DELAY_MS = 500

# Display
MAX_HISTORY = 200
LIVE_CHECK_INTERVAL_MS = 200


def _build_tonic_options() -> List[Dict[str, object]]:
    options = []
    for index in range((6 - 3 + 1) * 12):
        midi = 48 + index  # C3 is MIDI 48
        label = f"{WESTERN_NOTE_NAMES[midi % 12]}{midi // 12 - 1}"
        freq = 440.0 * 2 ** ((midi - 69) / 12)
        options.append({"label": label, "freq": freq})
    return options


# C3..B6
TONIC_OPTIONS = _build_tonic_options()
