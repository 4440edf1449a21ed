"""
Core Module Package.

Infrastructure shared by the storage and registry packages.

Components:
- clock: Unified time abstraction
"""

from .clock import (
    ClockProtocol,
    MockClock,
    SystemClock,
    ensure_utc,
    from_iso8601,
    to_iso8601,
)

__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "ensure_utc",
    "from_iso8601",
    "to_iso8601",
]
