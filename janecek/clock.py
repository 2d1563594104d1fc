"""
Clock oracle: the only source of "now" for handlers (unix seconds).

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod


class ClockOracle(ABC):
    """Supplies the invocation timestamp."""

    @abstractmethod
    def now(self) -> int:
        """Current unix timestamp in seconds."""


class SystemClock(ClockOracle):
    """Wall clock."""

    def now(self) -> int:
        return int(time.time())


class FixedClock(ClockOracle):
    """Manually driven clock for tests and local simulation."""

    def __init__(self, timestamp: int = 0):
        self._timestamp = timestamp
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._timestamp

    def set(self, timestamp: int) -> None:
        with self._lock:
            self._timestamp = timestamp

    def advance(self, seconds: int) -> int:
        """Move forward and return the new timestamp."""
        with self._lock:
            self._timestamp += seconds
            return self._timestamp
