"""State machine turning analysed frames into discrete utterances."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from ..constants import (
    MIN_UTTERANCE_DURATION_MS,
    SIGNAL_MIN_CONFIDENCE,
    UTTERANCE_SILENCE_DURATION_MS,
)
from ..logging_config import get_logger
from ..note_types import FrameAnalysis
from ..utterance import Utterance

logger = get_logger(__name__)


@dataclass(frozen=True)
class Expectation:
    """What the next utterance will be judged against."""

    expected_note: str
    expected_start_time: int
    expected_duration: int


@dataclass
class SegmentUpdate:
    """What happened to the segmenter on one frame."""

    started: Optional[Utterance] = None
    closed: Optional[Utterance] = None  # long enough to evaluate
    discarded: Optional[Utterance] = None  # closed but shorter than the minimum


class UtteranceSegmenter:
    """Two-state (idle/open) segmenter over the per-frame signal stream.

    An utterance opens on a silent-to-signal edge and accumulates a sample
    for every signal frame. It ends on a silent frame once the last valid
    sample is at least ``silence_duration_ms`` old, or immediately when it
    never had a valid sample.
    """

    def __init__(
        self,
        expectation_provider: Callable[[int], Expectation],
        silence_duration_ms: int = UTTERANCE_SILENCE_DURATION_MS,
        min_duration_ms: int = MIN_UTTERANCE_DURATION_MS,
        min_confidence: float = SIGNAL_MIN_CONFIDENCE,
        on_start: Optional[Callable[[Utterance], None]] = None,
        id_counter: Optional[Iterator[int]] = None,
    ) -> None:
        """Initialize the segmenter.

        Args:
            expectation_provider: Called with the current time when an utterance opens
            silence_duration_ms: Silence persistence required to end an utterance
            min_duration_ms: Closed utterances shorter than this are discarded
            min_confidence: Confidence a sample needs to count as valid
            on_start: Optional callback invoked when an utterance opens
            id_counter: Source of utterance numbers, scoped to the session
        """
        self._expectation_provider = expectation_provider
        self.silence_duration_ms = silence_duration_ms
        self.min_duration_ms = min_duration_ms
        self.min_confidence = min_confidence
        self._on_start = on_start
        self._ids = id_counter if id_counter is not None else itertools.count()

        self._current: Optional[Utterance] = None
        self._was_silent = True

    @property
    def current(self) -> Optional[Utterance]:
        return self._current

    @property
    def is_open(self) -> bool:
        return self._current is not None

    def process(self, frame: FrameAnalysis) -> SegmentUpdate:
        """Advance the state machine by one frame."""
        update = SegmentUpdate()
        now = frame.timestamp

        if self._current is not None and frame.is_silent:
            if self.should_end(self._current, now):
                self._close(self._current, now, update)

        if self._current is None and frame.has_signal and self._was_silent:
            update.started = self._open(now)

        if self._current is not None and frame.has_signal:
            self._current.add_sample(frame.pitch_hz, frame.confidence, now)
        elif frame.is_silent:
            self._was_silent = True

        return update

    def should_end(self, utterance: Utterance, now: int) -> bool:
        """Silence persistence rule, evaluated against wall-clock time."""
        valid = utterance.valid_samples(self.min_confidence)
        if not valid:
            return True
        return now - valid[-1].timestamp >= self.silence_duration_ms

    def force_close(self, now: int) -> Optional[Utterance]:
        """Finalize and detach the open utterance without any evaluation."""
        utterance = self._current
        if utterance is not None:
            utterance.finalize(now)
            logger.info(f"Utterance {utterance.id} force-closed")
        self._current = None
        self._was_silent = True
        return utterance

    def reset(self) -> None:
        self._current = None
        self._was_silent = True

    def _open(self, now: int) -> Utterance:
        expectation = self._expectation_provider(now)
        utterance = Utterance(
            id=f"utterance-{next(self._ids)}",
            start_time=now,
            expected_note=expectation.expected_note,
            expected_start_time=expectation.expected_start_time,
            expected_duration=expectation.expected_duration,
        )
        self._current = utterance
        self._was_silent = False
        logger.info(
            f"Utterance {utterance.id} started (target {utterance.expected_note}, "
            f"expected at {utterance.expected_start_time}ms for {utterance.expected_duration}ms)"
        )
        if self._on_start:
            self._on_start(utterance)
        return utterance

    def _close(self, utterance: Utterance, now: int, update: SegmentUpdate) -> None:
        utterance.finalize(now)
        self._current = None
        self._was_silent = True

        duration = utterance.duration(now)
        if duration < self.min_duration_ms:
            logger.debug(
                f"Discarding {utterance.id}: {duration}ms < {self.min_duration_ms}ms"
            )
            update.discarded = utterance
            return

        logger.info(f"Utterance {utterance.id} ended ({duration}ms, {len(utterance.pitch_samples)} samples)")
        update.closed = utterance
