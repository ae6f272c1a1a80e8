"""Type definitions for the Swara Drill project."""

from typing import ClassVar, List, Optional, Tuple
from dataclasses import dataclass


@dataclass(frozen=True)
class PitchEstimate:
    """Result of one periodicity estimation."""

    pitch_hz: float  # 0.0 when no periodicity was established
    confidence: float  # 0-1

    ZERO: ClassVar["PitchEstimate"]

    @property
    def is_voiced(self) -> bool:
        return self.pitch_hz > 0


PitchEstimate.ZERO = PitchEstimate(0.0, 0.0)


@dataclass(frozen=True)
class FrameAnalysis:
    """Per-frame loudness and gated pitch, as consumed by the segmenter."""

    timestamp: int  # ms
    pitch_hz: float
    confidence: float
    rms: float
    has_signal: bool

    @property
    def is_silent(self) -> bool:
        return not self.has_signal


@dataclass
class PitchSample:
    """A pitch reading accumulated into an utterance."""

    timestamp: int  # ms
    pitch: float  # Hz
    confidence: float  # 0-1

    def is_valid(self, min_confidence: float = 0.3) -> bool:
        return self.pitch > 0 and self.confidence >= min_confidence


@dataclass(frozen=True)
class Note:
    """A scale degree relative to the tonic."""

    label: str  # e.g. "P", "S'", "N2."
    semitone: int  # offset from the tonic, octave unbounded

    def __str__(self):
        return self.label


@dataclass(frozen=True)
class ClosestNote:
    """Nearest scale degree to a pitch plus its deviation."""

    note: Note
    cents: float
    semitone: int
    display_label: str


@dataclass(frozen=True)
class MatchResult:
    """Per-frame match of a pitch against the target label."""

    closest: ClosestNote
    is_good: bool


@dataclass(frozen=True)
class LiveFeedback:
    """What the tuner display shows for the current frame."""

    detected_label: str = ""
    cents: float = 0.0
    in_tune: bool = False


@dataclass(frozen=True)
class Sequence:
    """Ordered target labels with per-note expected durations."""

    labels: Tuple[str, ...]
    durations_ms: Tuple[int, ...]

    def __post_init__(self):
        if len(self.labels) != len(self.durations_ms):
            raise ValueError(
                f"Sequence has {len(self.labels)} labels but "
                f"{len(self.durations_ms)} durations"
            )
        if not self.labels:
            raise ValueError("Sequence must contain at least one label")

    @classmethod
    def of(cls, labels: List[str], durations_ms: Optional[List[int]] = None,
           default_duration_ms: int = 1000) -> "Sequence":
        """Build a sequence, filling missing durations with a default."""
        if durations_ms is None:
            durations_ms = [default_duration_ms] * len(labels)
        return cls(tuple(labels), tuple(int(d) for d in durations_ms))

    def __len__(self) -> int:
        return len(self.labels)

    def describe(self) -> str:
        return " ".join(self.labels)
