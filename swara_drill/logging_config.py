"""Logging setup for Swara Drill.

Every module logs through ``get_logger(__name__)``. Names must be registered in
``MODULE_LOG_LEVELS`` so that a typo in a module path fails at import time
instead of silently logging through the root logger.
"""

import logging
import sys
from typing import IO, Dict, Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "swara_drill": logging.INFO,
    "swara_drill.note_utils": logging.INFO,
    "swara_drill.utterance": logging.INFO,
    "swara_drill.session": logging.INFO,
    "swara_drill.director": logging.INFO,
    "swara_drill.metronome": logging.INFO,
    "swara_drill.trainer_trace": logging.INFO,
    # Detection and evaluation
    "swara_drill.detection.periodicity": logging.INFO,  # DEBUG logs every frame
    "swara_drill.detection.signal_classifier": logging.INFO,
    "swara_drill.detection.segmenter": logging.INFO,
    "swara_drill.evaluation.evaluator": logging.INFO,
    "swara_drill.evaluation.curve": logging.INFO,
    # Infrastructure
    "swara_drill.core.config": logging.INFO,
    "swara_drill.core.events": logging.INFO,
    "swara_drill.audio.buffering": logging.INFO,
    "swara_drill.audio.wav_provider": logging.INFO,
    "swara_drill.audio.live": logging.INFO,
    "swara_drill.cli.main": logging.INFO,
    # Root logger
    "": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConsoleHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stdout`` is at emit time.

    A handler created with ``sys.stdout`` keeps writing to that object even
    after the stream is swapped (click's test runner does this per
    invocation). Passing an explicit stream pins the handler to it.
    """

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        super().__init__(stream)
        self._pinned = stream

    @property
    def stream(self):
        return self._pinned if self._pinned is not None else sys.stdout

    @stream.setter
    def stream(self, value) -> None:
        self._pinned = value


_console_handler: Optional[ConsoleHandler] = None
_logger_cache: Dict[str, logging.Logger] = {}


def _shared_handler() -> ConsoleHandler:
    global _console_handler
    if _console_handler is None:
        _console_handler = ConsoleHandler()
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return _console_handler


def resolve_levels(level: Optional[str] = None) -> Dict[str, int]:
    """Registered levels, with every swara_drill logger overridden by ``level``.

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    levels = MODULE_LOG_LEVELS.copy()
    if not level:
        return levels
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    for name in levels:
        if name.startswith("swara_drill"):
            levels[name] = numeric_level
    return levels


def setup_logging(level: Optional[str] = None, stream: Optional[IO[str]] = None) -> None:
    """Attach the shared console handler to every registered logger.

    Safe to call more than once; each call re-applies levels and re-points
    the handler.

    Args:
        level: Override for all swara_drill loggers (e.g. "DEBUG")
        stream: Write here instead of the current sys.stdout
    """
    handler = _shared_handler()
    handler.stream = stream

    for name, module_level in resolve_levels(level).items():
        logger = logging.getLogger(name)
        logger.setLevel(module_level)
        for old in logger.handlers[:]:
            logger.removeHandler(old)
        logger.addHandler(handler)
        logger.propagate = False

    logging.getLogger("swara_drill").debug("Logging configured")


def get_logger(name: str) -> logging.Logger:
    """Logger for a registered module name.

    Raises:
        ValueError: If the name is not in MODULE_LOG_LEVELS
    """
    if name in _logger_cache:
        return _logger_cache[name]

    if name not in MODULE_LOG_LEVELS:
        raise ValueError(
            f"Logger '{name}' not found in MODULE_LOG_LEVELS. "
            "Please add it to the configuration."
        )

    logger = logging.getLogger(name)
    logger.setLevel(MODULE_LOG_LEVELS[name])
    if _console_handler is not None and _console_handler not in logger.handlers:
        logger.addHandler(_console_handler)
        logger.propagate = False

    _logger_cache[name] = logger
    return logger
