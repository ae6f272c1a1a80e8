"""Whole-curve comparison of a sung pitch trajectory with the trainer's."""

from __future__ import annotations

import math
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ..constants import (
    CURVE_GRID_STEP_MS,
    CURVE_MAX_POINTS,
    CURVE_MIN_POINTS,
    MIN_CURVE_OVERLAP_MS,
)
from ..logging_config import get_logger
from ..utterance import CurveVerdict

logger = get_logger(__name__)

# (minimum score, rating, suggestion), highest tier first
RATING_TIERS: List[Tuple[float, str, str]] = [
    (90, "excellent", "Excellent! Your pitch curve closely follows the trainer."),
    (75, "good", "Good match. Small deviations from the trainer's pitch."),
    (60, "fair", "Fair match. Try to follow the trainer's pitch more closely."),
    (40, "poor", "Your pitch curve drifts from the trainer. Listen again and match its contour."),
    (-math.inf, "very_poor", "Your pitch curve is far from the trainer. Listen carefully and try again."),
]

NO_USER_PITCH = "Not enough pitch data in your attempt to compare with the trainer."
NO_TRAINER_PITCH = "No trainer pitch was recorded for this note."
TOO_SHORT = "Attempt too short to compare with the trainer."


def rate_score(score: float) -> Tuple[str, str]:
    """Map a 0-100 score onto its rating tier and suggestion."""
    for minimum, rating, suggestion in RATING_TIERS:
        if score >= minimum:
            return rating, suggestion
    return RATING_TIERS[-1][1], RATING_TIERS[-1][2]


def grid_size(overlap_ms: float) -> int:
    """Number of resampling points for an overlap window."""
    return int(min(max(math.floor(overlap_ms / CURVE_GRID_STEP_MS), CURVE_MIN_POINTS), CURVE_MAX_POINTS))


def resample(times: np.ndarray, pitches: np.ndarray, span_ms: float, points: int) -> np.ndarray:
    """Linearly resample a curve anchored at its own first timestamp.

    Values beyond the recorded range are held at the edge samples.
    """
    grid = times[0] + np.linspace(0.0, span_ms, points)
    return np.interp(grid, times, pitches)


def _prepare(times: Sequence[float], pitches: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    t = np.asarray(times, dtype=np.float64)
    p = np.asarray(pitches, dtype=np.float64)
    keep = np.isfinite(t) & np.isfinite(p) & (p > 0)
    t, p = t[keep], p[keep]
    order = np.argsort(t, kind="stable")
    return t[order], p[order]


def compare_pitch_curves(
    user_times: Sequence[float],
    user_pitches: Sequence[float],
    trainer_times: Sequence[float],
    trainer_pitches: Sequence[float],
    min_overlap_ms: float = MIN_CURVE_OVERLAP_MS,
) -> CurveVerdict:
    """Score how closely the user's pitch curve follows the trainer's.

    Both curves are resampled onto a common grid covering the shorter of the
    two spans and compared in semitone space. The score is
    ``clamp(100 - 20 * mean_semitone_difference, 0, 100)``.

    Args:
        user_times: Timestamps (ms) of the user's valid pitch samples
        user_pitches: User pitches in Hz
        trainer_times: Timestamps (ms) of the trainer reference trace
        trainer_pitches: Trainer pitches in Hz
        min_overlap_ms: Shortest overlap that can be compared

    Returns:
        CurveVerdict; score and rating are None when there is not enough data
    """
    u_times, u_pitches = _prepare(user_times, user_pitches)
    t_times, t_pitches = _prepare(trainer_times, trainer_pitches)

    if u_times.size == 0:
        return CurveVerdict(score=None, rating=None, suggestion=NO_USER_PITCH)
    if t_times.size == 0:
        return CurveVerdict(score=None, rating=None, suggestion=NO_TRAINER_PITCH)

    user_span = float(u_times[-1] - u_times[0])
    trainer_span = float(t_times[-1] - t_times[0])
    overlap = min(user_span, trainer_span)
    if overlap < min_overlap_ms:
        logger.debug(f"Curve overlap {overlap:.0f}ms below {min_overlap_ms}ms")
        return CurveVerdict(score=None, rating=None, suggestion=TOO_SHORT, overlap_ms=overlap)

    points = grid_size(overlap)
    user_curve = resample(u_times, u_pitches, overlap, points)
    trainer_curve = resample(t_times, t_pitches, overlap, points)

    diffs = np.abs(12.0 * (np.log2(user_curve) - np.log2(trainer_curve)))
    avg_diff = float(np.mean(diffs))
    mse = float(np.mean(diffs ** 2))
    score = float(np.clip(100.0 - avg_diff * 20.0, 0.0, 100.0))
    rating, suggestion = rate_score(score)

    logger.info(
        f"Curve comparison: {points} points over {overlap:.0f}ms, "
        f"avg diff {avg_diff:.2f} st, score {score:.1f} ({rating})"
    )
    return CurveVerdict(
        score=score,
        rating=rating,
        suggestion=suggestion,
        avg_diff_semitones=avg_diff,
        mse=mse,
        points=points,
        overlap_ms=overlap,
    )


def describe_verdict(verdict: CurveVerdict) -> Dict[str, object]:
    """Flatten a verdict for display."""
    return {
        "score": None if verdict.score is None else round(verdict.score, 1),
        "rating": verdict.rating,
        "avg_diff_semitones": verdict.avg_diff_semitones,
        "points": verdict.points,
        "suggestion": verdict.suggestion,
    }
