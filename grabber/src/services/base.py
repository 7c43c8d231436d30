"""
Abstract vendor service and the HTTP plumbing shared by all vendors.

A Service owns one authenticated httpx.AsyncClient (its cookie jar is the
vendor session) and exposes three capabilities to the update loop:
``poll_interval()``, ``login()`` and ``update(poll_timestamp)``. Services
never retry; all retry and backoff policy lives in the update loop.

HTTP and parsing failures are mapped onto the closed ServiceError taxonomy:

- 401/403 responses -> NotAuthorizedError
- other non-2xx responses and network errors -> TransportError
- invalid JSON or response shapes -> MalformedError

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from grabber.src.errors import MalformedError, NotAuthorizedError, TransportError
from grabber.src.models import Reading

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S: float = 5.0
"""Per-request timeout in seconds (httpx default)."""

_UNAUTHORIZED_STATUSES = frozenset({401, 403})

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class Service(ABC):
    """Capability set implemented once per supported cloud vendor.

    Args:
        client: Optional preconfigured AsyncClient (tests inject one backed
            by ``httpx.MockTransport``). When omitted a client with a cookie
            jar and redirect following is created.
        timeout: Per-request timeout in seconds for the default client.
    """

    name: str = "service"

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if client is None:
            client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._client = client

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @abstractmethod
    def poll_interval(self) -> int:
        """Seconds between real data polls, matching the vendor's refresh rate."""

    @abstractmethod
    async def login(self) -> None:
        """Authenticate from scratch and leave the session ready for update().

        Raises:
            ServiceError: If the handshake fails.
        """

    @abstractmethod
    async def update(self, poll_timestamp: int) -> Reading:
        """Fetch and normalize one reading stamped with *poll_timestamp*.

        Raises:
            ServiceError: If any request or the normalization fails.
        """

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request and map failures onto the ServiceError taxonomy."""
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in _UNAUTHORIZED_STATUSES:
                raise NotAuthorizedError(
                    f"{method} {url} rejected with HTTP {status}",
                    status_code=status,
                ) from exc
            raise TransportError(
                f"{method} {url} failed with HTTP {status}",
                status_code=status,
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {url} failed: {exc!r}") from exc
        return response

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Like :meth:`_request`, but decode the JSON body."""
        response = await self._request(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedError(f"{method} {url} returned invalid JSON") from exc

    @staticmethod
    def _parse(model: type[_ModelT], payload: Any) -> _ModelT:
        """Validate a decoded JSON payload against a response model."""
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise MalformedError(
                f"Unexpected {model.__name__} payload: {exc.error_count()} error(s)"
            ) from exc

    @staticmethod
    def _reading(
        *, current_power_w: float, total_energy_kwh: float, observed_at: int
    ) -> Reading:
        try:
            return Reading(
                current_power_w=current_power_w,
                total_energy_kwh=total_energy_kwh,
                observed_at=observed_at,
            )
        except ValidationError as exc:
            raise MalformedError(f"Reading out of range: {exc}") from exc

    def __repr__(self) -> str:
        return f"<{type(self).__name__} poll_interval={self.poll_interval()}s>"
