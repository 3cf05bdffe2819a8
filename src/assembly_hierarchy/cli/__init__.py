"""Command-line interface for the assembly hierarchy engine."""

from .main import main

__all__ = ["main"]
