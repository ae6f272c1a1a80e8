"""Live microphone capture and target note playback through sounddevice."""

from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from ..constants import DEFAULT_TARGET_DURATION_MS
from ..logging_config import get_logger
from .buffering import OutputFeed, output_blocks
from .interfaces import IAudioProvider, ITargetPlayer
from .wav_provider import to_mono

logger = get_logger(__name__)


class LiveAudioProvider(IAudioProvider):
    """Provides live audio from an input device using sounddevice."""

    def __init__(
        self, device_id: Optional[int], sample_rate: int, channels: int, chunk_size: int
    ):
        self._device_id = device_id
        self._sample_rate = sample_rate
        self._channels = channels
        self._chunk_size = chunk_size
        self._stream: Optional[sd.InputStream] = None
        self._on_data_callback: Optional[Callable[[np.ndarray], None]] = None

    def start(self, on_data_callback: Callable[[np.ndarray], None]) -> None:
        self._on_data_callback = on_data_callback
        self._stream = sd.InputStream(
            device=self._device_id,
            channels=self._channels,
            samplerate=self._sample_rate,
            blocksize=self._chunk_size,
            callback=self._audio_callback,
            dtype="float32",
        )
        self._stream.start()
        logger.info(f"Capturing from device {self._device_id} at {self._sample_rate}Hz")

    def stop(self) -> None:
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def _audio_callback(
        self, indata: np.ndarray, _frames: int, _time_info, status
    ) -> None:
        if status:
            logger.warning(f"Input stream status: {status}")
        if self._on_data_callback:
            self._on_data_callback(to_mono(indata.copy()))

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels


def sine_tone(frequency: float, duration_ms: int, sample_rate: int, level: float = 0.3) -> np.ndarray:
    """Sine with a short attack and an exponential release, like an oscillator note."""
    n = int(sample_rate * duration_ms / 1000)
    t = np.arange(n) / sample_rate
    envelope = np.minimum(1.0, t / 0.05) * np.exp(-3.0 * t / max(duration_ms / 1000, 1e-3))
    return (level * envelope * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class SineTargetPlayer(ITargetPlayer):
    """Plays target notes as sine tones and reports what it played.

    When a ``feed`` is given, the generated tone is queued on it block by
    block so the tick loop can analyse exactly what was sent to the speakers
    into the trainer reference trace.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        duration_ms: int = DEFAULT_TARGET_DURATION_MS,
        block_size: int = 4096,
        device_id: Optional[int] = None,
        feed: Optional[OutputFeed] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.duration_ms = duration_ms
        self.block_size = block_size
        self.device_id = device_id
        self.feed = feed

    def play(self, label: str, frequency: float, now: int) -> Optional[int]:
        tone = sine_tone(frequency, self.duration_ms, self.sample_rate)
        sd.play(tone, self.sample_rate, device=self.device_id)
        if self.feed is not None:
            self.feed.extend(output_blocks(tone, now, self.sample_rate, self.block_size))
        logger.debug(f"Playing {label} at {frequency:.1f}Hz for {self.duration_ms}ms")
        return self.duration_ms

    def stop(self) -> None:
        sd.stop()
        if self.feed is not None:
            self.feed.clear()
