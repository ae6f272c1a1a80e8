"""Pitch detection and utterance segmentation."""

from .periodicity import PeriodicityEstimator
from .signal_classifier import SignalClassifier, compute_rms
from .segmenter import UtteranceSegmenter, SegmentUpdate, Expectation

__all__ = [
    "PeriodicityEstimator",
    "SignalClassifier",
    "compute_rms",
    "UtteranceSegmenter",
    "SegmentUpdate",
    "Expectation",
]
