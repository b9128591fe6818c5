"""Synthetic event generation utilities.

This package produces realistic-but-fake event streams to exercise the
conversion-latency pipeline without accessing production data.
"""

from .generator import generate_conversion_events

__all__ = ["generate_conversion_events"]
