"""
Core Module - System Clock.

============================================================
RESPONSIBILITY
============================================================
Provides a testable clock abstraction for the risk service.

- Timestamps written to profiles come from this clock
- The trailing return-activity window is measured against it
- Enables deterministic tests

============================================================
DESIGN PRINCIPLES
============================================================
- UTC only
- Mockable for testing
- Thread-safe

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Generator, Optional
import threading


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for system clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass

    def days_ago(self, days: int) -> datetime:
        """Start of a trailing window of the given length."""
        return self.now() - timedelta(days=days)

    def format_iso(self, dt: Optional[datetime] = None) -> str:
        """Format datetime as ISO 8601."""
        dt = dt or self.now()
        return to_iso8601(dt)


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock using actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current UTC)
        """
        initial_time = initial_time or datetime.now(timezone.utc)
        if initial_time.tzinfo is None:
            initial_time = initial_time.replace(tzinfo=timezone.utc)
        self._time = initial_time
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        """Set the current time."""
        with self._lock:
            if new_time.tzinfo is None:
                new_time = new_time.replace(tzinfo=timezone.utc)
            self._time = new_time

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)


# ============================================================
# CLOCK FACTORY
# ============================================================

class ClockFactory:
    """Holds the process-wide clock instance."""

    _instance: Optional[ClockProtocol] = None
    _lock = threading.Lock()

    @classmethod
    def get_clock(cls) -> ClockProtocol:
        """Get the global clock instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = SystemClock()
            return cls._instance

    @classmethod
    def set_clock(cls, clock: ClockProtocol) -> None:
        """Set the global clock instance."""
        with cls._lock:
            cls._instance = clock

    @classmethod
    def reset(cls) -> None:
        """Reset to default system clock."""
        with cls._lock:
            cls._instance = SystemClock()

    @classmethod
    @contextmanager
    def use_mock(
        cls,
        initial_time: Optional[datetime] = None,
    ) -> Generator[MockClock, None, None]:
        """
        Context manager to use mock clock temporarily.

        Args:
            initial_time: Initial time for mock clock
        """
        original = cls._instance
        mock = MockClock(initial_time)
        cls.set_clock(mock)
        try:
            yield mock
        finally:
            cls._instance = original


# ============================================================
# TIMESTAMP UTILITIES
# ============================================================

def to_iso8601(dt: datetime) -> str:
    """Convert datetime to ISO 8601 string."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def from_iso8601(iso_string: str) -> datetime:
    """Parse ISO 8601 string to datetime."""
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def now_utc() -> datetime:
    """Get current UTC time using global clock."""
    return ClockFactory.get_clock().now()


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ClockFactory",
    "to_iso8601",
    "from_iso8601",
    "now_utc",
]
