"""
Update loop: logs in, polls the vendor service at its cadence, and publishes
each normalized Reading into the shared StatusCell.

The loop is an explicit state machine with the wake interval as state:

- LOGGING_IN: calling ``service.login()``. The initial login is fatal on
  failure; a re-login after NotAuthorizedError is not.
- POLLING: waking every ``wake_interval`` seconds, only calling
  ``service.update()`` once ``service.poll_interval()`` has elapsed since
  the last successful update (the cadence gate).
- BACKING_OFF: the last attempt failed; the wake interval has been doubled
  (capped at MAX_WAKE_INTERVAL_S). The next wake retries the update.

Any success (update or recovery login) resets the wake interval to
DEFAULT_WAKE_INTERVAL_S at once. A failed poll leaves the previously
published Reading in place.

``step()`` performs one wake check without sleeping so the transitions can
be tested directly; ``run_forever()`` adds the sleeps.

CHANGELOG:
- 2026-10-18: Report re-login recovery to the health writer
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from grabber.src.errors import NotAuthorizedError, ServiceError

if TYPE_CHECKING:
    from grabber.src.health import HealthWriter
    from grabber.src.services import Service
    from grabber.src.status import StatusCell

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_WAKE_INTERVAL_S: float = 10.0
"""Wake interval floor; also the interval after any success."""

BACKOFF_FACTOR: float = 2.0
"""Multiplier applied to the wake interval on each retryable failure."""

MAX_WAKE_INTERVAL_S: float = 320.0
"""Ceiling for the backed-off wake interval."""


class LoopState(enum.Enum):
    """Phase of the update loop."""

    LOGGING_IN = "logging_in"
    POLLING = "polling"
    BACKING_OFF = "backing_off"


class UpdateLoop:
    """Drives login, cadence-gated polling, backoff and publication.

    Args:
        service: The vendor service (sole owner of the session).
        status_cell: Cell that receives every successful Reading.
        clock: Returns the current time in seconds since the epoch.
        sleep: Awaitable sleep, injectable for tests.
        health: HealthWriter instance, or None to skip health writes.
    """

    def __init__(
        self,
        service: Service,
        status_cell: StatusCell,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        health: HealthWriter | None = None,
    ) -> None:
        self._service = service
        self._status_cell = status_cell
        self._clock = clock
        self._sleep = sleep
        self._health = health
        self._state = LoopState.LOGGING_IN
        self._wake_interval = DEFAULT_WAKE_INTERVAL_S
        self._last_updated = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        """Current phase of the loop."""
        return self._state

    @property
    def wake_interval(self) -> float:
        """Seconds to sleep before the next wake check."""
        return self._wake_interval

    @property
    def last_updated(self) -> int:
        """Poll time of the last successful update, 0 if none yet."""
        return self._last_updated

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Perform the initial login.

        Raises:
            ServiceError: If the login fails. There is no recovery from a
                failed initial login.
        """
        self._state = LoopState.LOGGING_IN
        logger.info("Logging in to %s", self._service.name)
        await self._service.login()
        logger.info("Logged in to %s successfully", self._service.name)

        self._last_updated = 0
        self._reset_backoff()
        self._state = LoopState.POLLING

    def is_due(self, now: int) -> bool:
        """Return True when the vendor's poll interval has elapsed.

        Elapsed time is clamped to zero if the clock went backwards.
        """
        elapsed = max(0, now - self._last_updated)
        return elapsed >= self._service.poll_interval()

    async def step(self, now: int) -> bool:
        """Execute one wake check at time *now*.

        Never raises for service failures: they are logged, reported to the
        health writer, and turned into backoff.

        Returns:
            True if a poll was attempted, False if the cadence was not due.
        """
        if not self.is_due(now):
            return False

        try:
            reading = await self._service.update(now)
        except NotAuthorizedError as exc:
            await self._relogin(exc)
            return True
        except ServiceError as exc:
            self._fail(f"Failed to update status: {exc}")
            return True
        except Exception as exc:
            logger.error("Unexpected error during update", exc_info=True)
            self._fail(f"Unexpected error during update: {exc!r}")
            return True

        self._status_cell.publish(reading)
        self._last_updated = now
        self._reset_backoff()
        self._state = LoopState.POLLING
        logger.info(
            "Updated status: current=%.1f W total=%.3f kWh at %d",
            reading.current_power_w,
            reading.total_energy_kwh,
            reading.observed_at,
        )
        self._record_success()
        return True

    async def _relogin(self, cause: NotAuthorizedError) -> None:
        """Log in again after the session was rejected.

        ``last_updated`` is left alone so the cadence gate still counts from
        the last successful reading.
        """
        self._state = LoopState.LOGGING_IN
        logger.warning("Update unauthorized (%s), trying to log in again", cause)
        try:
            await self._service.login()
        except ServiceError as exc:
            self._fail(f"Re-login failed: {exc}")
            return
        except Exception as exc:
            logger.error("Unexpected error during re-login", exc_info=True)
            self._fail(f"Unexpected error during re-login: {exc!r}")
            return

        logger.info("Logged in to %s successfully", self._service.name)
        self._reset_backoff()
        self._state = LoopState.POLLING
        self._record_recovery()

    # ------------------------------------------------------------------
    # Runners
    # ------------------------------------------------------------------

    async def run_forever(self) -> None:
        """Sleep for the wake interval and step, forever.

        Expects :meth:`start` to have succeeded.
        """
        logger.info(
            "Update loop started (poll interval=%ss)", self._service.poll_interval()
        )
        while True:
            await self._sleep(self._wake_interval)
            await self.step(int(self._clock()))

    async def run(self) -> None:
        """Log in, then poll forever. Only the initial login can raise."""
        await self.start()
        await self.run_forever()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> None:
        self._increase_backoff()
        self._state = LoopState.BACKING_OFF
        logger.warning("%s; next attempt in %.0fs", message, self._wake_interval)
        if self._health is not None:
            try:
                self._health.record_failure(message, self._wake_interval)
            except Exception:
                logger.warning("Failed to write health file", exc_info=True)

    def _record_success(self) -> None:
        if self._health is not None:
            try:
                self._health.record_success(self._wake_interval)
            except Exception:
                logger.warning("Failed to write health file", exc_info=True)

    def _record_recovery(self) -> None:
        if self._health is not None:
            try:
                self._health.record_recovery(self._wake_interval)
            except Exception:
                logger.warning("Failed to write health file", exc_info=True)

    def _increase_backoff(self) -> None:
        """Multiply the wake interval by BACKOFF_FACTOR, capped."""
        self._wake_interval = min(
            self._wake_interval * BACKOFF_FACTOR,
            MAX_WAKE_INTERVAL_S,
        )

    def _reset_backoff(self) -> None:
        self._wake_interval = DEFAULT_WAKE_INTERVAL_S
