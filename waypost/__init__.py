"""Waypost: in-process request dispatch with a priority-ordered hook bus."""

__version__ = "0.1.0"
