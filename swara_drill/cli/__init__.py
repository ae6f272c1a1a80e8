"""Command-line interface for Swara Drill."""

from .main import cli, main

__all__ = ["cli", "main"]
