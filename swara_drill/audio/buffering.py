"""Hand-off buffers between audio callbacks and the tick loop."""

import threading
from collections import deque
from typing import Deque, Iterator, Optional, Tuple

import numpy as np

from ..logging_config import get_logger

logger = get_logger(__name__)

OutputBlock = Tuple[int, np.ndarray, int]  # (timestamp_ms, block, sample_rate)


class BufferedInput:
    """Sliding window over the most recent capture samples.

    The audio thread pushes blocks of any size; the tick loop reads the last
    ``window_size`` samples on every tick, independent of the capture block
    size.
    """

    def __init__(self, window_size: int) -> None:
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        self.window_size = window_size
        self._window = np.zeros(window_size, dtype=np.float32)
        self._filled = 0
        self._lock = threading.Lock()

    @property
    def is_full(self) -> bool:
        return self._filled >= self.window_size

    def push(self, block: np.ndarray) -> None:
        samples = np.asarray(block, dtype=np.float32).ravel()
        if samples.size == 0:
            return
        with self._lock:
            if samples.size >= self.window_size:
                self._window[:] = samples[-self.window_size:]
            else:
                self._window = np.roll(self._window, -samples.size)
                self._window[-samples.size:] = samples
            self._filled = min(self.window_size, self._filled + samples.size)

    def window(self) -> Optional[np.ndarray]:
        """Copy of the current window, or None until it has been filled once."""
        with self._lock:
            if not self.is_full:
                return None
            return self._window.copy()


def output_blocks(
    tone: np.ndarray, start_ms: int, sample_rate: int, block_size: int
) -> Iterator[OutputBlock]:
    """Split generated output into half-overlapping analysis blocks."""
    hop = max(1, block_size // 2)
    for start in range(0, len(tone) - block_size + 1, hop):
        yield start_ms + int(start * 1000 / sample_rate), tone[start:start + block_size], sample_rate


class OutputFeed:
    """FIFO of played output blocks waiting to be analysed by the tick loop."""

    def __init__(self) -> None:
        self._blocks: Deque[OutputBlock] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._blocks)

    def extend(self, blocks) -> None:
        with self._lock:
            self._blocks.extend(blocks)
            logger.debug(f"{len(self._blocks)} output blocks queued")

    def pop(self) -> Optional[OutputBlock]:
        with self._lock:
            return self._blocks.popleft() if self._blocks else None

    def clear(self) -> None:
        with self._lock:
            self._blocks.clear()
