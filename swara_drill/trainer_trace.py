"""Bounded record of the trainer's pitch while a target note plays."""

from collections import deque
from typing import Deque, List, Optional, Tuple

from .constants import MAX_HISTORY
from .detection.signal_classifier import SignalClassifier
from .logging_config import get_logger

logger = get_logger(__name__)


class TrainerTrace:
    """Append-only (timestamp, pitch) series with a fixed capacity."""

    def __init__(self, max_length: int = MAX_HISTORY) -> None:
        self._points: Deque[Tuple[int, float]] = deque(maxlen=max_length)

    def __len__(self) -> int:
        return len(self._points)

    def append(self, timestamp: int, pitch: float) -> None:
        if pitch <= 0:
            return
        self._points.append((int(timestamp), float(pitch)))

    def record_buffer(
        self, classifier: SignalClassifier, buffer, sample_rate: float, timestamp: int
    ) -> Optional[float]:
        """Analyse one buffer of trainer output and record its pitch.

        Uses the same range and loudness gate as the singer's frames.
        """
        frame = classifier.analyze(buffer, sample_rate, timestamp)
        if frame.rms < classifier.silence_threshold or frame.pitch_hz <= 0:
            return None
        self.append(timestamp, frame.pitch_hz)
        return frame.pitch_hz

    def slice(self, start: int, end: int) -> Tuple[List[int], List[float]]:
        """Timestamps and pitches recorded within [start, end]."""
        times: List[int] = []
        pitches: List[float] = []
        for timestamp, pitch in self._points:
            if start <= timestamp <= end:
                times.append(timestamp)
                pitches.append(pitch)
        return times, pitches

    def clear(self) -> None:
        self._points.clear()
