"""Swara Drill - real-time pitch tracking and call and response singing drills."""

__version__ = "0.1.0"
