"""Drill sequences selectable by mode key."""

from typing import Dict, List

from .constants import DEFAULT_NOTE_DURATION_MS, NOTE_LABELS
from .note_types import Sequence

MODE_SEQUENCES: Dict[str, Sequence] = {
    "sp": Sequence.of(["S", "P"], default_duration_ms=DEFAULT_NOTE_DURATION_MS),
    "sps": Sequence.of(["S", "P", "S'"], default_duration_ms=DEFAULT_NOTE_DURATION_MS),
    "sargam": Sequence.of(
        ["S", "R2", "G2", "M1", "P", "D2", "N2", "S'"],
        default_duration_ms=DEFAULT_NOTE_DURATION_MS,
    ),
}

DEFAULT_MODE = "sargam"


def get_sequence(mode: str) -> Sequence:
    """Look up a sequence by mode key.

    Raises:
        ValueError: If the mode is unknown
    """
    try:
        return MODE_SEQUENCES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown mode '{mode}', expected one of {sorted(MODE_SEQUENCES)}"
        ) from None


def sample_labels() -> List[str]:
    """Every label a trainer sample may be needed for."""
    labels = list(NOTE_LABELS)
    for sequence in MODE_SEQUENCES.values():
        for label in sequence.labels:
            if label not in labels:
                labels.append(label)
    return labels
