"""Utterance scoring: discrete checks and pitch curve comparison."""

from .curve import compare_pitch_curves, rate_score
from .evaluator import (
    CheckResult,
    EvaluatorConfig,
    UtteranceEvaluator,
    check_expected_length,
    check_expected_note,
    check_expected_timing,
    check_stability,
)

__all__ = [
    "compare_pitch_curves",
    "rate_score",
    "CheckResult",
    "EvaluatorConfig",
    "UtteranceEvaluator",
    "check_expected_length",
    "check_expected_note",
    "check_expected_timing",
    "check_stability",
]
