"""Monophonic pitch estimation with the cumulative mean normalized difference method."""

from __future__ import annotations

import numpy as np
from typing import ClassVar

from ..constants import YIN_THRESHOLD
from ..logging_config import get_logger
from ..note_types import PitchEstimate

logger = get_logger(__name__)


class PeriodicityEstimator:
    """Estimates the fundamental frequency of a time-domain buffer.

    The first half of the buffer is the analysis window. The first lag whose
    normalized difference dips under the threshold is followed down to its
    local minimum, which keeps later (deeper but spurious) dips from causing
    octave errors.
    """

    MIN_LAG: ClassVar[int] = 2

    def __init__(self, threshold: float = YIN_THRESHOLD) -> None:
        """Initialize the estimator.

        Args:
            threshold: Absolute threshold on the normalized difference (0.0 to 1.0)
        """
        if not 0.0 < threshold <= 1.0:
            raise ValueError("threshold must be in (0.0, 1.0]")
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    @staticmethod
    def difference(buffer: np.ndarray, half_size: int) -> np.ndarray:
        """Squared difference d(tau) over a fixed window of ``half_size`` samples."""
        diff = np.zeros(half_size, dtype=np.float64)
        window = buffer[:half_size]
        for tau in range(1, half_size):
            delta = window - buffer[tau:tau + half_size]
            diff[tau] = np.dot(delta, delta)
        return diff

    @staticmethod
    def cumulative_mean_normalized(diff: np.ndarray) -> np.ndarray:
        """Normalize d(tau) by its running mean; cmnd[0] is 1."""
        cmnd = np.ones_like(diff)
        if len(diff) < 2:
            return cmnd
        running_sum = np.cumsum(diff[1:])
        taus = np.arange(1, len(diff), dtype=np.float64)
        with np.errstate(divide="ignore", invalid="ignore"):
            normalized = diff[1:] * taus / running_sum
        cmnd[1:] = np.where(running_sum == 0, 1.0, normalized)
        return cmnd

    def find_lag(self, cmnd: np.ndarray) -> int:
        """Return the first dip under the threshold, or -1 if none exists."""
        below = np.nonzero(cmnd[self.MIN_LAG:] < self._threshold)[0]
        if below.size == 0:
            return -1
        tau = int(below[0]) + self.MIN_LAG
        while tau + 1 < len(cmnd) and cmnd[tau + 1] < cmnd[tau]:
            tau += 1
        return tau

    @staticmethod
    def refine_lag(cmnd: np.ndarray, tau: int) -> float:
        """Parabolic interpolation of the lag using its immediate neighbours."""
        if tau <= 0 or tau + 1 >= len(cmnd):
            return float(tau)
        prev, curr, nxt = cmnd[tau - 1], cmnd[tau], cmnd[tau + 1]
        denominator = 2 * curr - prev - nxt
        if denominator == 0:
            return float(tau)
        return tau + (nxt - prev) / (2 * denominator)

    def estimate(self, buffer, sample_rate: float) -> PitchEstimate:
        """Estimate pitch and confidence for one buffer.

        Args:
            buffer: Time-domain samples, nominally in [-1, 1]
            sample_rate: Sample rate in Hz

        Returns:
            PitchEstimate, PitchEstimate.ZERO when no periodicity was found
        """
        samples = np.asarray(buffer, dtype=np.float64).ravel()
        half_size = len(samples) // 2
        if half_size <= self.MIN_LAG or sample_rate <= 0:
            return PitchEstimate.ZERO
        if not np.all(np.isfinite(samples)):
            logger.debug("Non-finite samples in buffer, skipping estimation")
            return PitchEstimate.ZERO

        cmnd = self.cumulative_mean_normalized(self.difference(samples, half_size))
        tau = self.find_lag(cmnd)
        if tau == -1:
            return PitchEstimate.ZERO

        refined = self.refine_lag(cmnd, tau)
        if refined <= 0:
            return PitchEstimate.ZERO
        pitch = sample_rate / refined
        confidence = float(np.clip(1.0 - cmnd[tau], 0.0, 1.0))
        if not np.isfinite(pitch):
            return PitchEstimate.ZERO

        logger.debug(f"tau={tau} refined={refined:.3f} pitch={pitch:.2f}Hz conf={confidence:.3f}")
        return PitchEstimate(float(pitch), confidence)

    __call__ = estimate
