"""Loudness measurement and signal/silence gating for analysed frames."""

import numpy as np
from typing import Optional

from ..constants import (
    MAX_FREQUENCY,
    MIN_FREQUENCY,
    SIGNAL_MIN_CONFIDENCE,
    SILENCE_THRESHOLD,
)
from ..logging_config import get_logger
from ..note_types import FrameAnalysis, PitchEstimate
from .periodicity import PeriodicityEstimator

logger = get_logger(__name__)


def compute_rms(buffer) -> float:
    """Root-mean-square amplitude of a buffer (0.0 for an empty one)."""
    samples = np.asarray(buffer, dtype=np.float64).ravel()
    if samples.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(samples * samples)))
    return rms if np.isfinite(rms) else 0.0


class SignalClassifier:
    """Applies the frequency range gate and the combined signal threshold.

    Every consumer of pitch (singer frames and the trainer reference trace)
    goes through the same two stages: out-of-range estimates are discarded to
    zero, then loudness, pitch and confidence decide ``has_signal``.
    """

    def __init__(
        self,
        estimator: Optional[PeriodicityEstimator] = None,
        silence_threshold: float = SILENCE_THRESHOLD,
        min_confidence: float = SIGNAL_MIN_CONFIDENCE,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
    ) -> None:
        if min_frequency <= 0 or max_frequency <= min_frequency:
            raise ValueError("Frequency range must satisfy 0 < min_frequency < max_frequency")
        self.estimator = estimator if estimator is not None else PeriodicityEstimator()
        self.silence_threshold = silence_threshold
        self.min_confidence = min_confidence
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency

    def gate_range(self, estimate: PitchEstimate) -> PitchEstimate:
        """Discard estimates outside the plausible vocal range."""
        if self.min_frequency <= estimate.pitch_hz <= self.max_frequency:
            return estimate
        if estimate.is_voiced:
            logger.debug(f"Pitch {estimate.pitch_hz:.1f}Hz outside range, discarded")
        return PitchEstimate.ZERO

    def has_signal(self, pitch_hz: float, confidence: float, rms: float) -> bool:
        return (
            rms >= self.silence_threshold
            and pitch_hz > 0
            and confidence >= self.min_confidence
        )

    def classify(self, estimate: PitchEstimate, rms: float, timestamp: int) -> FrameAnalysis:
        """Gate a raw estimate and label the frame as signal or silence."""
        gated = self.gate_range(estimate)
        pitch, confidence = gated.pitch_hz, gated.confidence
        if rms < self.silence_threshold:
            # Quiet frames never report a pitch, even a periodic one
            pitch, confidence = 0.0, 0.0
        return FrameAnalysis(
            timestamp=int(timestamp),
            pitch_hz=pitch,
            confidence=confidence,
            rms=rms,
            has_signal=self.has_signal(pitch, confidence, rms),
        )

    def analyze(self, buffer, sample_rate: float, timestamp: int) -> FrameAnalysis:
        """Estimate, gate and classify one audio buffer."""
        estimate = self.estimator.estimate(buffer, sample_rate)
        return self.classify(estimate, compute_rms(buffer), timestamp)
