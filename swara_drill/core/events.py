"""Event system for Swara Drill components."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logging_config import get_logger

logger = get_logger(__name__)


class SessionEventType(Enum):
    """Event types emitted by a drill session."""

    UTTERANCE_STARTED = auto()
    UTTERANCE_DISCARDED = auto()
    UTTERANCE_EVALUATED = auto()
    TARGET_PLAYED = auto()
    DECISION = auto()


class EventEmitter:
    """Event emitter for Swara Drill components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        Listener errors are logged; rendering or reporting must never break
        the tick loop.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}")

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class SessionEvents:
    """Typed registration helpers for session events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on(self, event_type: SessionEventType, callback: Callable) -> None:
        self._emitter.on(event_type, callback)

    def on_utterance_started(self, callback: Callable) -> None:
        """Callback receives the utterance snapshot."""
        self._emitter.on(SessionEventType.UTTERANCE_STARTED, callback)

    def on_utterance_evaluated(self, callback: Callable) -> None:
        """Callback receives the evaluated utterance snapshot."""
        self._emitter.on(SessionEventType.UTTERANCE_EVALUATED, callback)

    def on_decision(self, callback: Callable) -> None:
        """Callback receives the DirectorDecision."""
        self._emitter.on(SessionEventType.DECISION, callback)

    def on_target_played(self, callback: Callable) -> None:
        """Callback receives the label and the play time in ms."""
        self._emitter.on(SessionEventType.TARGET_PLAYED, callback)

    def emit(self, event_type: SessionEventType, *args, **kwargs) -> None:
        self._emitter.emit(event_type, *args, **kwargs)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
