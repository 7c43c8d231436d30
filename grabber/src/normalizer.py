"""
Pure normalization helpers shared by the vendor services.

Vendor APIs deliver numbers as JSON numbers, as numbers wrapped in strings,
or as an empty string where other APIs would send ``null``. These helpers
convert such values faithfully and raise MalformedError instead of silently
substituting a default.

MonotonicTotal masks transient regressions of the cumulative energy counter
(one vendor resets "today" at midnight before folding it into the total)
so that published totals never decrease within a process lifetime.

All functions are pure: no I/O, no clock.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from typing import Any

from grabber.src.errors import MalformedError

logger = logging.getLogger(__name__)

WH_PER_KWH: float = 1000.0


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------


def empty_as_none(value: Any) -> Any:
    """Map the empty-string sentinel to ``None``, pass anything else through.

    Used as a pydantic ``BeforeValidator`` on vendor response fields.
    """
    if isinstance(value, str) and value == "":
        return None
    return value


def parse_number(value: Any, field: str) -> float | None:
    """Convert a JSON number or numeric string into a float.

    Args:
        value: The raw value from the vendor response.
        field: Field name, used in the error message.

    Returns:
        The float value, or ``None`` if *value* is ``None`` or the empty
        string sentinel.

    Raises:
        MalformedError: If *value* is a non-empty non-numeric string, a
            non-finite number, or of any other type.
    """
    if value is None or value == "":
        return None

    # bool is an int subclass; a boolean is never a valid measurement.
    if isinstance(value, bool):
        raise MalformedError(f"Field '{field}': expected a number, got {value!r}")

    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise MalformedError(
                f"Field '{field}': non-numeric string {value!r}"
            ) from None
    else:
        raise MalformedError(
            f"Field '{field}': expected a number, got {type(value).__name__}"
        )

    if not math.isfinite(result):
        raise MalformedError(f"Field '{field}': non-finite value {value!r}")
    return result


def require_number(value: Any, field: str) -> float:
    """Like :func:`parse_number`, but an absent value is an error too."""
    result = parse_number(value, field)
    if result is None:
        raise MalformedError(f"Field '{field}': required value is missing")
    return result


def wh_to_kwh(value: float) -> float:
    """Convert watt-hours to kilowatt-hours."""
    return value / WH_PER_KWH


# ---------------------------------------------------------------------------
# Monotonic cumulative total
# ---------------------------------------------------------------------------


class MonotonicTotal:
    """Tracks the last emitted cumulative energy total.

    :meth:`apply` returns the new total only if it is strictly greater than
    the last one emitted; otherwise it returns the previous value and leaves
    the tracker unchanged.

    Args:
        initial: Starting value of the tracker (default 0.0).
    """

    def __init__(self, initial: float = 0.0) -> None:
        self._last: float = initial

    @property
    def last(self) -> float:
        """The last total emitted by :meth:`apply`."""
        return self._last

    def apply(self, total: float) -> float:
        """Return a total that is never lower than any previously emitted one.

        Args:
            total: The freshly computed cumulative total.

        Returns:
            *total* if it exceeds the last emitted value, otherwise the last
            emitted value.
        """
        if total <= self._last:
            if total < self._last:
                logger.info(
                    "Total energy regressed from %.3f to %.3f kWh, keeping %.3f",
                    self._last,
                    total,
                    self._last,
                )
            return self._last

        self._last = total
        return total
