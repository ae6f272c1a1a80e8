"""Utility functions for mapping frequencies to swara labels and back."""

import math
import re
from typing import Optional

import numpy as np

from .constants import (
    IN_TUNE_CENTS,
    MATCH_MIN_CONFIDENCE,
    NOTE_LABELS,
    OCTAVE_DOWN_MARK,
    OCTAVE_UP_MARK,
)
from .logging_config import get_logger
from .note_types import ClosestNote, MatchResult, Note

logger = get_logger(__name__)

# Base label followed by an optional run of octave markers
OCTAVE_SUFFIX_PATTERN = re.compile(r"[.']+$")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties towards positive infinity.

    Python's round() uses banker's rounding; note boundaries must not depend on
    whether the integer part is even.

    Examples:
        >>> round_half_up(0.5)
        1
        >>> round_half_up(-0.5)
        0
    """
    return int(math.floor(value + 0.5))


def note_value(tonic: float, pitch: float) -> float:
    """Continuous semitone position of ``pitch`` above ``tonic``.

    Returns NaN when either frequency is not positive.
    """
    if tonic <= 0 or pitch <= 0:
        return math.nan
    return 12 * math.log2(pitch / tonic)


def label_for_semitone(semitone: int) -> str:
    """Convert a semitone offset from the tonic into a label.

    Examples:
        >>> label_for_semitone(7)
        'P'
        >>> label_for_semitone(12)
        "S'"
        >>> label_for_semitone(-1)
        'N2.'
    """
    base_index = semitone % 12
    octave_offset = semitone // 12
    base_label = NOTE_LABELS[base_index]
    if octave_offset > 0:
        return base_label + OCTAVE_UP_MARK * octave_offset
    if octave_offset < 0:
        return base_label + OCTAVE_DOWN_MARK * -octave_offset
    return base_label


def note_by_label(label: str) -> Optional[Note]:
    """Parse a label into a Note.

    Returns None for an unknown base symbol or a suffix that mixes ' and .
    """
    if not label or not isinstance(label, str):
        return None

    base_label = OCTAVE_SUFFIX_PATTERN.sub("", label)
    suffix = label[len(base_label):]
    if base_label not in NOTE_LABELS:
        logger.debug(f"Unknown base label in '{label}'")
        return None

    octave_offset = 0
    if suffix:
        if set(suffix) == {OCTAVE_UP_MARK}:
            octave_offset = len(suffix)
        elif set(suffix) == {OCTAVE_DOWN_MARK}:
            octave_offset = -len(suffix)
        else:
            logger.debug(f"Mixed octave markers in '{label}'")
            return None

    return Note(label=label, semitone=NOTE_LABELS.index(base_label) + 12 * octave_offset)


def frequency_for_label(tonic: float, label: str) -> Optional[float]:
    """Equal-tempered frequency of ``label`` for the given tonic."""
    note = note_by_label(label)
    if note is None:
        return None
    return tonic * 2 ** (note.semitone / 12)


def closest_note(tonic: float, pitch: float) -> Optional[ClosestNote]:
    """Find the nearest scale degree to ``pitch``.

    Returns:
        ClosestNote, or None if the pitch cannot be placed (non-positive input)
    """
    value = note_value(tonic, pitch)
    if not np.isfinite(value):
        return None

    nearest = round_half_up(value)
    label = label_for_semitone(nearest)
    fraction = value - nearest
    display_label = label
    if abs(fraction) >= 0.005:
        sign = "+" if fraction >= 0 else "-"
        display_label = f"{label} {sign}{abs(fraction):.2f}"

    return ClosestNote(
        note=Note(label=label, semitone=nearest),
        cents=fraction * 100,
        semitone=nearest,
        display_label=display_label,
    )


def match_result(
    pitch: float,
    confidence: float,
    tonic: float,
    target_label: str,
    in_tune_cents: float = IN_TUNE_CENTS,
    min_confidence: float = MATCH_MIN_CONFIDENCE,
) -> Optional[MatchResult]:
    """Compare a pitch reading with the target label.

    Returns None when the reading is too weak to be scored.
    """
    if pitch <= 0 or confidence < min_confidence:
        return None

    closest = closest_note(tonic, pitch)
    if closest is None:
        return None

    tuned = abs(closest.cents) <= in_tune_cents
    matches_target = closest.note.label == target_label
    strong = confidence >= min_confidence
    return MatchResult(closest=closest, is_good=tuned and matches_target and strong)
