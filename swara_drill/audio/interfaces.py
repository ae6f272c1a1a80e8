"""Interfaces for the audio collaborators around the drill core."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np


class IAudioProvider(ABC):
    """An abstract interface for audio providers."""

    @abstractmethod
    def start(self, on_data_callback: Callable[[np.ndarray], None]) -> None:
        """Starts the audio stream, calling the callback with float32 mono chunks."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stops the audio stream."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass

    @property
    @abstractmethod
    def channels(self) -> int:
        """The number of channels in the audio stream."""
        pass


class ITargetPlayer(ABC):
    """Plays the trainer's target note."""

    @abstractmethod
    def play(self, label: str, frequency: float, now: int) -> Optional[int]:
        """Start playing a target note.

        Returns:
            The playback duration in ms, or None if unknown
        """
        pass

    def stop(self) -> None:
        """Stop any playback in progress."""
        pass


class SilentTargetPlayer(ITargetPlayer):
    """Player that records requests without producing sound."""

    def __init__(self) -> None:
        self.played = []

    def play(self, label: str, frequency: float, now: int) -> Optional[int]:
        self.played.append((now, label, frequency))
        return None
