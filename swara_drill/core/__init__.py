"""Core infrastructure for the Swara Drill application."""

from .config import ConfigManager, DrillSettings
from .events import EventEmitter, SessionEvents, SessionEventType

__all__ = [
    "ConfigManager",
    "DrillSettings",
    "EventEmitter",
    "SessionEvents",
    "SessionEventType",
]
