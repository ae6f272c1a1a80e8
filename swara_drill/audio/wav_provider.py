import threading
import time
from typing import Callable, Iterator, Optional, Tuple

import numpy as np
import soundfile as sf

from ..logging_config import get_logger
from .interfaces import IAudioProvider

logger = get_logger(__name__)


def to_mono(data: np.ndarray) -> np.ndarray:
    """Average channels of a (frames, channels) block into a float32 vector."""
    if data.ndim == 2:
        data = data.mean(axis=1)
    return data.astype(np.float32, copy=False)


def iter_wav_frames(
    file_path: str, chunk_size: int, hop_ms: Optional[float] = None, gain: float = 1.0
) -> Iterator[Tuple[int, np.ndarray, int]]:
    """Yield (timestamp_ms, mono_chunk, sample_rate) windows from a WAV file.

    Timestamps are relative to the start of the file. Windows of
    ``chunk_size`` samples advance by ``hop_ms`` (default: one chunk),
    and the last partial window is zero padded.
    """
    with sf.SoundFile(file_path) as f:
        sample_rate = f.samplerate
        data = to_mono(f.read(dtype="float32", always_2d=True))
    if gain != 1.0:
        data = data * gain
    hop = max(1, int(sample_rate * hop_ms / 1000)) if hop_ms else chunk_size

    logger.info(f"Read {len(data)} samples at {sample_rate}Hz from {file_path}")
    for start in range(0, max(len(data), 1), hop):
        chunk = data[start:start + chunk_size]
        if len(chunk) < chunk_size:
            chunk = np.concatenate((chunk, np.zeros(chunk_size - len(chunk), dtype=np.float32)))
        yield int(start * 1000 / sample_rate), chunk, sample_rate


class WavFileAudioProvider(IAudioProvider):
    """Provides audio data by reading from a WAV file."""

    def __init__(
        self, file_path: str, chunk_size: int, loop: bool = False, gain: float = 1.0
    ):
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._loop = loop
        self._gain = gain
        self._on_data_callback: Optional[Callable[[np.ndarray], None]] = None
        self._is_running = False
        self._thread: Optional[threading.Thread] = None

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._channels = f.channels

    def start(self, on_data_callback: Callable[[np.ndarray], None]) -> None:
        if self._is_running:
            return

        self._on_data_callback = on_data_callback
        self._is_running = True
        self._thread = threading.Thread(target=self._stream_data, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._is_running = False
        if self._thread:
            self._thread.join()
            self._thread = None

    @property
    def is_running(self) -> bool:
        """Returns True if the provider is currently streaming data."""
        return self._is_running

    def _stream_data(self) -> None:
        while self._is_running:
            try:
                with sf.SoundFile(self._file_path) as f:
                    while self._is_running:
                        data = f.read(self._chunk_size, dtype="float32", always_2d=True)
                        if len(data) == 0:
                            if self._loop:
                                f.seek(0)
                                continue
                            else:
                                break

                        chunk = to_mono(data)
                        if self._gain != 1.0:
                            chunk = chunk * self._gain

                        if self._on_data_callback:
                            self._on_data_callback(chunk)

                        # Simulate real-time playback speed
                        time.sleep(self._chunk_size / self.sample_rate)

                if not self._loop:
                    break

            except (OSError, RuntimeError) as e:
                logger.error(f"Error streaming WAV file: {e}")
                break

        self._is_running = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels
