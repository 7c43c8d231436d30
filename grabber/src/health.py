"""
Health file writer for the grabber daemon.

Writes a JSON health file at a configurable path with four fields:
- last_poll_ts: ISO timestamp of the most recent poll attempt.
- last_success_ts: ISO timestamp of the most recent published reading.
- last_error: Message of the most recent failure (cleared on success
  or on a successful re-login).
- wake_interval_s: Current wake interval of the update loop.

The file is rewritten on every poll attempt, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-18: Clear last_error on re-login recovery
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes update loop health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_success_ts: str | None = None
        self._last_error: str | None = None
        self._wake_interval_s: float | None = None

    def record_success(self, wake_interval_s: float) -> None:
        """Record a successful poll and write health file."""
        now = datetime.now(tz=UTC).isoformat()
        self._last_poll_ts = now
        self._last_success_ts = now
        self._last_error = None
        self._wake_interval_s = wake_interval_s
        self._write()

    def record_recovery(self, wake_interval_s: float) -> None:
        """Record a successful re-login; last_success_ts is left unchanged."""
        self._last_poll_ts = datetime.now(tz=UTC).isoformat()
        self._last_error = None
        self._wake_interval_s = wake_interval_s
        self._write()

    def record_failure(self, error: str, wake_interval_s: float) -> None:
        """Record a failed poll attempt and write health file.

        Args:
            error: Description of the failure.
            wake_interval_s: The backed-off wake interval.
        """
        self._last_poll_ts = datetime.now(tz=UTC).isoformat()
        self._last_error = error
        self._wake_interval_s = wake_interval_s
        self._write()

    def _write(self) -> None:
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_success_ts": self._last_success_ts,
            "last_error": self._last_error,
            "wake_interval_s": self._wake_interval_s,
        }
        self.path.write_text(json.dumps(data))
