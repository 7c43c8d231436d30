"""
Error taxonomy for vendor service calls.

Every failure a service reports to the update loop is one of three kinds:

- NotAuthorizedError: the vendor rejected the session or credentials. The
  loop reacts by logging in again.
- TransportError: network or HTTP level failure not mapped to
  NotAuthorizedError. The loop backs off.
- MalformedError: a response arrived but could not be normalized (invalid
  JSON, missing field, non-numeric string). The loop backs off.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for all vendor service failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotAuthorizedError(ServiceError):
    """Session expired or credentials rejected."""


class TransportError(ServiceError):
    """Network failure or unexpected HTTP status."""


class MalformedError(ServiceError):
    """Response could not be parsed into a Reading."""
