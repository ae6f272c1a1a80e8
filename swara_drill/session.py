"""The drill session: one frame-driven tick loop owning all mutable state."""

from __future__ import annotations

import itertools
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple

from .audio.interfaces import ITargetPlayer
from .constants import LIVE_CHECK_INTERVAL_MS, MAX_HISTORY
from .core.config import DrillSettings
from .core.events import SessionEvents, SessionEventType
from .detection.periodicity import PeriodicityEstimator
from .detection.segmenter import SegmentUpdate, UtteranceSegmenter
from .detection.signal_classifier import SignalClassifier
from .director import DirectorDecision, RetryPolicy, SequenceDirector
from .evaluation.evaluator import EvaluatorConfig, UtteranceEvaluator
from .logging_config import get_logger
from .note_types import FrameAnalysis, LiveFeedback
from .note_utils import match_result
from .trainer_trace import TrainerTrace
from .utterance import Utterance

logger = get_logger(__name__)

SILENT_SUGGESTION = "Sing louder for a clear pitch."
WEAK_SUGGESTION = "Sing louder for a clearer pitch."
PERFECT_SUGGESTION = "Perfect! All checks passed."
IDLE_SUGGESTION = "Start listening to get feedback."


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of the session state for display."""

    pitch_history: List[Tuple[int, Optional[float]]]
    utterance_history: List[Utterance]
    current_utterance: Optional[Utterance]
    suggestions: List[str]
    suggestion: str
    feedback: LiveFeedback
    target_label: str
    target_index: int
    attempts_left: Optional[int]
    tonic: float
    beat: Dict[str, float] = field(default_factory=dict)


def live_suggestion(frame: FrameAnalysis, utterance: Optional[Utterance], silence_threshold: float,
                    min_confidence: float) -> str:
    """One coaching line for the current frame."""
    if frame.rms < silence_threshold:
        return SILENT_SUGGESTION
    if frame.pitch_hz <= 0 or frame.confidence < min_confidence:
        return WEAK_SUGGESTION
    if utterance is not None and utterance.suggestions:
        return " ".join(utterance.suggestions)
    if utterance is not None and utterance.verdict.passed:
        return PERFECT_SUGGESTION
    return IDLE_SUGGESTION


class DrillSession:
    """Runs estimator, classifier, segmenter, evaluator and director per frame.

    All state lives here and is mutated only from ``process_frame``; display
    code reads ``snapshot()`` copies.
    """

    def __init__(
        self,
        classifier: Optional[SignalClassifier] = None,
        evaluator: Optional[UtteranceEvaluator] = None,
        director: Optional[SequenceDirector] = None,
        segmenter_options: Optional[Dict] = None,
        trainer_trace: Optional[TrainerTrace] = None,
        live_checks: bool = True,
        live_check_interval_ms: int = LIVE_CHECK_INTERVAL_MS,
        max_history: int = MAX_HISTORY,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        self.classifier = classifier if classifier is not None else SignalClassifier()
        self.evaluator = evaluator if evaluator is not None else UtteranceEvaluator()
        self.director = director if director is not None else SequenceDirector()
        self.trainer_trace = trainer_trace if trainer_trace is not None else TrainerTrace()
        self.events = SessionEvents()
        self.live_checks = live_checks
        self.live_check_interval_ms = live_check_interval_ms
        self.clock = clock

        self._ids = itertools.count()
        self.segmenter = UtteranceSegmenter(
            expectation_provider=self.director.expectation,
            min_confidence=self.classifier.min_confidence,
            on_start=self._on_utterance_started,
            id_counter=self._ids,
            **(segmenter_options or {}),
        )

        self.pitch_history: Deque[Tuple[int, Optional[float]]] = deque(maxlen=max_history)
        self.utterance_history: List[Utterance] = []
        self.feedback = LiveFeedback()
        self.suggestion = IDLE_SUGGESTION
        self._last_live_check: Optional[int] = None

    @classmethod
    def from_settings(
        cls,
        settings: DrillSettings,
        player: Optional[ITargetPlayer] = None,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> "DrillSession":
        """Build a session from configuration sections."""
        pitch = settings.pitch
        classifier = SignalClassifier(
            estimator=PeriodicityEstimator(threshold=pitch["threshold"]),
            silence_threshold=pitch["silence_threshold"],
            min_confidence=pitch["min_confidence"],
            min_frequency=pitch["min_frequency"],
            max_frequency=pitch["max_frequency"],
        )
        ev = settings.evaluator
        evaluator = UtteranceEvaluator(
            EvaluatorConfig(
                use_curve_comparison=ev["use_curve_comparison"],
                stability_threshold_semitones=ev["stability_threshold_semitones"],
                length_tolerance_ms=ev["length_tolerance_ms"],
                timing_tolerance_ms=ev["timing_tolerance_ms"],
                min_confidence=pitch["min_confidence"],
                cents_feedback=ev["cents_feedback"],
                detailed_length_feedback=ev["detailed_length_feedback"],
            )
        )
        d = settings.director
        director = SequenceDirector(
            mode=d["mode"],
            tonic=d["tonic"],
            policy=RetryPolicy(d["policy"]),
            attempt_count=d["attempt_count"],
            player=player,
            tempo_bpm=d["tempo_bpm"],
            replay_delay_ms=d["replay_delay_ms"],
            gap_ms=d["gap_ms"],
        )
        return cls(
            classifier=classifier,
            evaluator=evaluator,
            director=director,
            segmenter_options=dict(settings.segmenter),
            live_checks=settings.session["live_checks"],
            live_check_interval_ms=settings.session["live_check_interval_ms"],
            max_history=settings.session["max_history"],
            clock=clock,
        )

    @property
    def tonic(self) -> float:
        return self.director.tonic

    @property
    def current_utterance(self) -> Optional[Utterance]:
        return self.segmenter.current

    def set_tonic(self, tonic: float) -> None:
        if tonic <= 0:
            raise ValueError("tonic must be positive")
        self.director.tonic = tonic

    def set_mode(self, mode: str) -> None:
        self.director.set_mode(mode)

    def process_buffer(self, buffer, sample_rate: float, now: Optional[int] = None) -> SegmentUpdate:
        """Analyse one microphone buffer and run the rest of the tick."""
        if now is None:
            now = self.clock()
        frame = self.classifier.analyze(buffer, sample_rate, now)
        return self.process_frame(frame)

    def record_trainer_buffer(self, buffer, sample_rate: float, now: Optional[int] = None) -> Optional[float]:
        """Analyse one buffer of trainer output into the reference trace."""
        if now is None:
            now = self.clock()
        return self.trainer_trace.record_buffer(self.classifier, buffer, sample_rate, now)

    def process_frame(self, frame: FrameAnalysis) -> SegmentUpdate:
        """Run segmentation, evaluation and pacing for one analysed frame."""
        now = frame.timestamp
        self.pitch_history.append((now, max(frame.pitch_hz, 0.0) if frame.has_signal else None))

        update = self.segmenter.process(frame)
        if update.discarded is not None:
            self.events.emit(SessionEventType.UTTERANCE_DISCARDED, update.discarded.snapshot())
        if update.closed is not None:
            self._finish_utterance(update.closed, now)

        current = self.segmenter.current
        if current is not None and frame.has_signal:
            self._run_live_checks(current, now)

        self.feedback = self._live_feedback(frame)
        self._prune_history()

        played = self.director.poll(now)
        if played is not None:
            self.events.emit(SessionEventType.TARGET_PLAYED, played, now)

        self.suggestion = live_suggestion(
            frame,
            current if current is not None else update.closed,
            self.classifier.silence_threshold,
            self.classifier.min_confidence,
        )
        return update

    def start_call_and_response(self, now: Optional[int] = None) -> None:
        """Reset the current attempt and play the first target note."""
        if now is None:
            now = self.clock()
        self.segmenter.force_close(now)
        self.director.start(now)
        self.events.emit(SessionEventType.TARGET_PLAYED, self.director.current_label, now)
        logger.info(f"Call and response started on '{self.director.mode}'")

    def stop(self, now: Optional[int] = None) -> None:
        """Tear down the open utterance (no evaluation) and pending targets."""
        if now is None:
            now = self.clock()
        dropped = self.segmenter.force_close(now)
        self.director.stop()
        self.feedback = LiveFeedback()
        self.suggestion = IDLE_SUGGESTION
        if dropped is not None:
            logger.info(f"Session stopped, dropped {dropped.id}")
        else:
            logger.info("Session stopped")

    def snapshot(self) -> SessionSnapshot:
        current = self.segmenter.current
        suggestions = list(current.suggestions) if current is not None else (
            list(self.utterance_history[-1].suggestions) if self.utterance_history else []
        )
        latest = self.pitch_history[-1][0] if self.pitch_history else None
        return SessionSnapshot(
            pitch_history=list(self.pitch_history),
            utterance_history=[u.snapshot() for u in self.utterance_history],
            current_utterance=current.snapshot() if current is not None else None,
            suggestions=suggestions,
            suggestion=self.suggestion,
            feedback=self.feedback,
            target_label=self.director.current_label,
            target_index=self.director.index,
            attempts_left=self.director.attempts_left
            if self.director.policy is RetryPolicy.COUNTDOWN else None,
            tonic=self.tonic,
            beat=self.director.context.metronome.beat_time(latest) if latest is not None else {},
        )

    def _on_utterance_started(self, utterance: Utterance) -> None:
        # Singing interrupts any scheduled target note
        self.director.cancel_pending()
        self._last_live_check = None
        self.events.emit(SessionEventType.UTTERANCE_STARTED, utterance.snapshot())

    def _finish_utterance(self, utterance: Utterance, now: int) -> Optional[DirectorDecision]:
        self.evaluator.evaluate(
            utterance,
            self.tonic,
            utterance.expected_note,
            now,
            trainer_trace=self.trainer_trace,
            target_play_time=self.director.context.target_play_time,
        )
        self.utterance_history.append(utterance)
        self.events.emit(SessionEventType.UTTERANCE_EVALUATED, utterance.snapshot())
        logger.info(f"{utterance.id} evaluated: passed={utterance.verdict.passed} {utterance.suggestions}")

        if not self.director.active:
            return None
        decision = self.director.decide(utterance.verdict, now)
        self.events.emit(SessionEventType.DECISION, decision)
        return decision

    def _run_live_checks(self, utterance: Utterance, now: int) -> None:
        if not self.live_checks or self.evaluator.use_curve_comparison:
            return
        if self._last_live_check is not None and now - self._last_live_check < self.live_check_interval_ms:
            return
        self._last_live_check = now
        verdict, suggestions = self.evaluator.run_checks(utterance, self.tonic, utterance.expected_note, now)
        utterance.verdict = verdict
        utterance.suggestions = suggestions

    def _live_feedback(self, frame: FrameAnalysis) -> LiveFeedback:
        if not frame.has_signal:
            return LiveFeedback()
        match = match_result(frame.pitch_hz, frame.confidence, self.tonic, self.director.current_label)
        if match is None:
            return LiveFeedback()
        return LiveFeedback(
            detected_label=match.closest.display_label or match.closest.note.label,
            cents=match.closest.cents,
            in_tune=match.is_good,
        )

    def _prune_history(self) -> None:
        """Drop utterances that have scrolled out of the pitch history window."""
        if not self.pitch_history:
            return
        oldest = self.pitch_history[0][0]
        self.utterance_history = [
            u for u in self.utterance_history if u.expected_end_time >= oldest
        ]
