"""Tempo baseline used to derive expected note start times."""

from dataclasses import dataclass, replace
from typing import Dict

from .constants import DEFAULT_TEMPO_BPM
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Metronome:
    bpm: float
    start_time: int  # ms

    def __post_init__(self):
        if self.bpm <= 0:
            raise ValueError("bpm must be positive")

    @property
    def beats_per_second(self) -> float:
        return self.bpm / 60

    @property
    def ms_per_beat(self) -> float:
        return 1000 / self.beats_per_second

    def beat_time(self, now: int) -> Dict[str, float]:
        elapsed = now - self.start_time
        beats_elapsed = elapsed / self.ms_per_beat
        return {
            "elapsed_ms": elapsed,
            "beats_elapsed": beats_elapsed,
            "current_beat": int(beats_elapsed // 1),
            "beat_progress": beats_elapsed % 1,
        }

    def reset(self, now: int) -> "Metronome":
        return replace(self, start_time=int(now))


def create_metronome(now: int, bpm: float = DEFAULT_TEMPO_BPM) -> Metronome:
    logger.debug(f"Metronome at {bpm} bpm from {now}ms")
    return Metronome(bpm=bpm, start_time=int(now))
