"""Scores a sung utterance and derives coaching suggestions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..constants import (
    LENGTH_TOLERANCE_MS,
    SIGNAL_MIN_CONFIDENCE,
    STABILITY_THRESHOLD_SEMITONES,
    TIMING_TOLERANCE_MS,
    TRAINER_TRACE_TAIL_MS,
)
from ..logging_config import get_logger
from ..note_utils import match_result, note_by_label, note_value, round_half_up
from ..trainer_trace import TrainerTrace
from ..utterance import CurveVerdict, DiscreteVerdict, EvaluationVerdict, Utterance
from .curve import NO_TRAINER_PITCH, compare_pitch_curves

logger = get_logger(__name__)

CENTS_FEEDBACK_MODES = ("exact", "tiered")


@dataclass(frozen=True)
class CheckResult:
    """Verdict of a single check and the suggestion it produced, if any."""

    value: Optional[bool]
    suggestion: Optional[str] = None


@dataclass
class EvaluatorConfig:
    """Thresholds and feedback style for the evaluator."""

    use_curve_comparison: bool = False
    stability_threshold_semitones: float = STABILITY_THRESHOLD_SEMITONES
    length_tolerance_ms: float = LENGTH_TOLERANCE_MS
    timing_tolerance_ms: Optional[float] = TIMING_TOLERANCE_MS  # None = unbounded
    min_confidence: float = SIGNAL_MIN_CONFIDENCE
    cents_feedback: str = "exact"
    detailed_length_feedback: bool = False
    trainer_tail_ms: int = TRAINER_TRACE_TAIL_MS

    def __post_init__(self):
        if self.cents_feedback not in CENTS_FEEDBACK_MODES:
            raise ValueError(
                f"cents_feedback must be one of {CENTS_FEEDBACK_MODES}, got '{self.cents_feedback}'"
            )


def _format_number(value: float) -> str:
    return f"{value:g}"


def check_stability(
    utterance: Utterance,
    tonic: float,
    threshold_semitones: float = STABILITY_THRESHOLD_SEMITONES,
    min_confidence: float = SIGNAL_MIN_CONFIDENCE,
) -> CheckResult:
    """Mean absolute semitone deviation of valid samples from the starting pitch."""
    valid = utterance.valid_samples(min_confidence)
    if not utterance.starting_pitch or not valid:
        return CheckResult(None)

    reference = note_value(tonic, utterance.starting_pitch)
    deviations = [abs(note_value(tonic, s.pitch) - reference) for s in valid]
    variation = float(np.mean(deviations))
    if not np.isfinite(variation):
        return CheckResult(None)

    is_stable = variation <= threshold_semitones
    logger.debug(f"{utterance.id}: variation {variation:.3f} st (stable={is_stable})")
    return CheckResult(is_stable, None if is_stable else "Keep the note stable.")


def cents_suggestion(cents: float, target_label: str, mode: str) -> str:
    direction = "lower" if cents > 0 else "higher"
    magnitude = abs(cents)
    if mode == "tiered":
        if magnitude < 10:
            return f"Very close to {target_label}, sing a touch {direction}."
        if magnitude < 20:
            return f"Close to {target_label}, sing slightly {direction}."
        return f"Sing {direction} by {magnitude:.0f} cents to settle on {target_label}."
    return f"Adjust pitch by {magnitude:.1f} cents {direction} to match {target_label}."


def check_expected_note(
    utterance: Utterance,
    tonic: float,
    target_label: str,
    min_confidence: float = SIGNAL_MIN_CONFIDENCE,
    cents_feedback: str = "exact",
) -> CheckResult:
    """Compare the average pitch of the utterance with the target label."""
    valid = utterance.valid_samples(min_confidence)
    if not valid:
        return CheckResult(None)

    avg_pitch = float(np.mean([s.pitch for s in valid]))
    avg_confidence = float(np.mean([s.confidence for s in valid]))
    match = match_result(avg_pitch, avg_confidence, tonic, target_label)
    if match is None:
        return CheckResult(False, "Sing louder for a clearer pitch.")
    if match.is_good:
        return CheckResult(True)

    if match.closest.note.label == target_label:
        return CheckResult(
            False, cents_suggestion(match.closest.cents, target_label, cents_feedback)
        )

    expected = note_by_label(target_label)
    if expected is None:
        return CheckResult(False, f"Sing {target_label}.")

    delta = expected.semitone - note_value(tonic, avg_pitch)
    notes_off = round_half_up(abs(delta) * 10) / 10
    if notes_off > 11:
        octave = "higher" if delta > 0 else "lower"
        return CheckResult(False, f"Sing in the {octave} octave.")
    direction = "up" if delta > 0 else "down"
    return CheckResult(
        False,
        f"Go {direction} by {_format_number(notes_off)} semitones to reach {target_label}.",
    )


def check_expected_length(
    utterance: Utterance,
    now: int,
    tolerance_ms: float = LENGTH_TOLERANCE_MS,
    detailed: bool = False,
) -> CheckResult:
    """Compare the held duration with the expected duration."""
    difference = utterance.duration(now) - utterance.expected_duration
    if abs(difference) <= tolerance_ms:
        return CheckResult(True)
    if difference > 0:
        suggestion = "Hold the note shorter"
    else:
        suggestion = "Hold the note longer"
    if detailed:
        suggestion += f" by {abs(difference)}ms."
    else:
        suggestion += "."
    return CheckResult(False, suggestion)


def check_expected_timing(
    utterance: Utterance, tolerance_ms: Optional[float] = TIMING_TOLERANCE_MS
) -> CheckResult:
    """Compare the start time with the expected start time."""
    difference = utterance.start_time - utterance.expected_start_time
    if tolerance_ms is None or abs(difference) <= tolerance_ms:
        return CheckResult(True)
    if difference > 0:
        return CheckResult(False, f"Start earlier ({difference}ms late).")
    return CheckResult(False, f"Start later ({abs(difference)}ms early).")


class UtteranceEvaluator:
    """Runs either the four discrete checks or the pitch curve comparison."""

    def __init__(self, config: Optional[EvaluatorConfig] = None) -> None:
        self.config = config if config is not None else EvaluatorConfig()

    @property
    def use_curve_comparison(self) -> bool:
        return self.config.use_curve_comparison

    def evaluate(
        self,
        utterance: Utterance,
        tonic: float,
        target_label: str,
        now: int,
        trainer_trace: Optional[TrainerTrace] = None,
        target_play_time: Optional[int] = None,
    ) -> EvaluationVerdict:
        """Score ``utterance`` and store the verdict and suggestions on it.

        Args:
            utterance: A closed (or open, for live feedback) utterance
            tonic: Tonic frequency in Hz
            target_label: Label the attempt is judged against
            now: Current time in ms, used while the utterance is still open
            trainer_trace: Trainer reference, only used in curve mode
            target_play_time: When the target note started playing (curve mode)

        Returns:
            The verdict also assigned to ``utterance.verdict``
        """
        if self.config.use_curve_comparison:
            verdict = self.compare_with_trainer(utterance, trainer_trace, target_play_time)
            suggestions = [verdict.suggestion]
        else:
            verdict, suggestions = self.run_checks(utterance, tonic, target_label, now)

        utterance.verdict = verdict
        utterance.suggestions = suggestions
        logger.debug(f"{utterance.id}: {verdict} {suggestions}")
        return verdict

    def run_checks(self, utterance: Utterance, tonic: float, target_label: str, now: int):
        cfg = self.config
        stability = check_stability(
            utterance, tonic, cfg.stability_threshold_semitones, cfg.min_confidence
        )
        note = check_expected_note(
            utterance, tonic, target_label, cfg.min_confidence, cfg.cents_feedback
        )
        length = check_expected_length(
            utterance, now, cfg.length_tolerance_ms, cfg.detailed_length_feedback
        )
        timing = check_expected_timing(utterance, cfg.timing_tolerance_ms)

        verdict = DiscreteVerdict(
            is_stable=stability.value,
            is_expected_note=note.value,
            is_expected_length=length.value,
            is_at_expected_time=timing.value,
        )
        # Order is user-facing: the first suggestion is addressed first
        suggestions: List[str] = [
            check.suggestion
            for check in (stability, note, length, timing)
            if check.suggestion
        ]
        return verdict, suggestions

    def compare_with_trainer(
        self,
        utterance: Utterance,
        trainer_trace: Optional[TrainerTrace],
        target_play_time: Optional[int],
    ) -> CurveVerdict:
        valid = utterance.valid_samples(self.config.min_confidence)
        if trainer_trace is None or target_play_time is None:
            return CurveVerdict(score=None, rating=None, suggestion=NO_TRAINER_PITCH)

        window_end = target_play_time + utterance.expected_duration + self.config.trainer_tail_ms
        trainer_times, trainer_pitches = trainer_trace.slice(target_play_time, window_end)
        return compare_pitch_curves(
            [s.timestamp for s in valid],
            [s.pitch for s in valid],
            trainer_times,
            trainer_pitches,
        )
