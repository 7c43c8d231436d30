"""
Shared status cell holding the most recent Reading.

Written only by the update loop, read by any number of HTTP request
handlers. The cell stores a reference to an immutable Reading and swaps it
under a lock, so a reader sees either the previous reading or the new one,
never a mix of both.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import threading

from grabber.src.models import Reading


class StatusCell:
    """Concurrency-safe holder of the latest Reading.

    Constructed once at startup and passed to both the update loop and the
    HTTP app. ``read()`` returns ``None`` until the first successful poll.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reading: Reading | None = None

    def publish(self, reading: Reading) -> None:
        """Atomically replace the current reading."""
        with self._lock:
            self._reading = reading

    def read(self) -> Reading | None:
        """Return the current reading, or ``None`` if not ready yet."""
        with self._lock:
            return self._reading
