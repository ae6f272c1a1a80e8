"""The utterance record and its evaluation verdicts."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .constants import CURVE_PASS_SCORE, SIGNAL_MIN_CONFIDENCE
from .logging_config import get_logger
from .note_types import PitchSample

logger = get_logger(__name__)


@dataclass
class DiscreteVerdict:
    """Outcome of the four independent checks; None means not evaluated."""

    is_stable: Optional[bool] = None
    is_expected_note: Optional[bool] = None
    is_expected_length: Optional[bool] = None
    is_at_expected_time: Optional[bool] = None

    @property
    def passed(self) -> bool:
        return (
            self.is_stable is True
            and self.is_expected_note is True
            and self.is_expected_length is True
            and self.is_at_expected_time is True
        )

    @property
    def evaluated(self) -> bool:
        return any(
            value is not None
            for value in (
                self.is_stable,
                self.is_expected_note,
                self.is_expected_length,
                self.is_at_expected_time,
            )
        )


@dataclass
class CurveVerdict:
    """Outcome of comparing the sung pitch curve with the trainer's."""

    score: Optional[float]
    rating: Optional[str]  # excellent, good, fair, poor, very_poor
    suggestion: str
    avg_diff_semitones: Optional[float] = None
    mse: Optional[float] = None
    points: int = 0
    overlap_ms: float = 0.0

    @property
    def passed(self) -> bool:
        return self.score is not None and self.score >= CURVE_PASS_SCORE

    @property
    def evaluated(self) -> bool:
        return True


EvaluationVerdict = Union[DiscreteVerdict, CurveVerdict]


@dataclass
class Utterance:
    """One continuous vocalization attempt bounded by silence."""

    id: str
    start_time: int  # ms
    expected_note: str
    expected_start_time: int  # ms
    expected_duration: int  # ms
    end_time: Optional[int] = None
    pitch_samples: List[PitchSample] = field(default_factory=list)
    starting_pitch: Optional[float] = None
    verdict: EvaluationVerdict = field(default_factory=DiscreteVerdict)
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return self.end_time is not None

    def add_sample(self, pitch: float, confidence: float, timestamp: int) -> None:
        """Append a reading; ignored once the utterance is closed."""
        if self.is_closed:
            return
        self.pitch_samples.append(PitchSample(int(timestamp), float(pitch), float(confidence)))
        if self.starting_pitch is None and pitch > 0:
            self.starting_pitch = float(pitch)

    def finalize(self, now: int) -> None:
        """Stamp the end time; a second call is a no-op."""
        if self.is_closed:
            return
        self.end_time = int(now)
        logger.debug(f"Utterance {self.id} closed after {self.duration(now)}ms")

    def duration(self, now: int) -> int:
        end = self.end_time if self.end_time is not None else now
        return end - self.start_time

    def valid_samples(self, min_confidence: float = SIGNAL_MIN_CONFIDENCE) -> List[PitchSample]:
        return [s for s in self.pitch_samples if s.is_valid(min_confidence)]

    @property
    def expected_end_time(self) -> int:
        return self.expected_start_time + self.expected_duration

    def snapshot(self) -> "Utterance":
        """Deep copy for read-only consumers."""
        return copy.deepcopy(self)
