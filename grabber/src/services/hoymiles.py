"""
Hoymiles cloud service (https://global.hoymiles.com).

Uses the private Hoymiles API gateway: a JSON login returns a token that is
stored as the ``hm_token`` cookie, after which a single station endpoint
reports current power and two energy counters in watt-hours.

Quirks handled here:

- Numbers arrive as strings (``"123.4"``), the status code as an integer in a
  string (``"0"``), and ``data`` is ``""`` instead of ``null`` when absent.
- ``total_eq`` excludes today's production, so the total is
  ``total_eq + today_eq``. Around midnight ``today_eq`` is reset before it
  has been folded into ``total_eq``; the resulting dip is masked by
  MonotonicTotal.
- An expired token is answered with HTTP 200 and status 100. Other
  non-zero statuses (unknown station, gateway errors) are not session
  related and are reported as TransportError.

CHANGELOG:
- 2026-10-18: Only token rejection (status 100) maps to NotAuthorizedError
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated, Any, Literal

import httpx
from pydantic import BaseModel, BeforeValidator

from grabber.src.errors import MalformedError, NotAuthorizedError, TransportError
from grabber.src.models import Reading
from grabber.src.normalizer import (
    MonotonicTotal,
    empty_as_none,
    require_number,
    wh_to_kwh,
)
from grabber.src.services.base import DEFAULT_TIMEOUT_S, Service

logger = logging.getLogger(__name__)

BASE_URL = "https://global.hoymiles.com/platform/api/gateway"
COOKIE_DOMAIN = "global.hoymiles.com"

LANGUAGE = "en_us"
"""API language; the gateway answers in ``zh_cn`` when unset."""

POLL_INTERVAL_S = 300
"""Hoymiles processes inverter data about every 15 minutes; poll faster."""

TOKEN_REJECTED_STATUSES = frozenset({100})
"""API statuses meaning the ``hm_token`` session is no longer valid."""


class HoymilesConfig(BaseModel):
    """Credentials and station selection for the Hoymiles service."""

    kind: Literal["hoymiles"] = "hoymiles"
    username: str
    password: str
    sid: int


# ---------------------------------------------------------------------------
# API response models
# ---------------------------------------------------------------------------


class ApiLoginData(BaseModel):
    token: str


class ApiLoginResponse(BaseModel):
    """Response of the login endpoint; ``status`` 0 means OK."""

    status: int
    message: str = ""
    data: Annotated[ApiLoginData | None, BeforeValidator(empty_as_none)] = None


class ApiStationData(BaseModel):
    """Station real-time data. Energy in Wh, power in W, all as strings."""

    today_eq: Any = None
    total_eq: Any = None
    real_power: Any = None
    last_data_time: str | None = None


class ApiStationResponse(BaseModel):
    status: int
    message: str = ""
    data: Annotated[ApiStationData | None, BeforeValidator(empty_as_none)] = None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Return the hex MD5 digest the login endpoint expects."""
    return hashlib.md5(password.encode("utf-8")).hexdigest()


class HoymilesService(Service):
    """Hoymiles service with a token cookie session.

    Args:
        config: Credentials and station ID.
        client: Optional preconfigured AsyncClient.
        timeout: Per-request timeout for the default client.
    """

    name = "hoymiles"

    def __init__(
        self,
        config: HoymilesConfig,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._config = config
        self._total = MonotonicTotal()

    def poll_interval(self) -> int:
        return POLL_INTERVAL_S

    async def login(self) -> None:
        """Log in and store the returned token as the ``hm_token`` cookie."""
        self._client.cookies.set("hm_token_language", LANGUAGE, domain=COOKIE_DOMAIN)

        payload = await self._request_json(
            "POST",
            f"{BASE_URL}/iam/auth_login",
            json={
                "body": {
                    "user_name": self._config.username,
                    "password": hash_password(self._config.password),
                }
            },
        )
        response = self._parse(ApiLoginResponse, payload)
        if response.status != 0:
            raise NotAuthorizedError(
                f"Hoymiles login rejected (status {response.status}: {response.message})"
            )
        if response.data is None:
            raise MalformedError("Hoymiles login response carries no token")

        self._client.cookies.set("hm_token", response.data.token, domain=COOKIE_DOMAIN)

    async def update(self, poll_timestamp: int) -> Reading:
        """Fetch the station's real-time data.

        The reported total is the sum of ``total_eq`` and ``today_eq``
        converted to kWh and passed through MonotonicTotal.
        """
        payload = await self._request_json(
            "POST",
            f"{BASE_URL}/pvm-data/data_count_station_real_data",
            json={"body": {"sid": self._config.sid}},
        )
        response = self._parse(ApiStationResponse, payload)
        if response.status in TOKEN_REJECTED_STATUSES:
            raise NotAuthorizedError(
                f"Hoymiles token rejected (status {response.status}: "
                f"{response.message})"
            )
        if response.status != 0:
            raise TransportError(
                f"Hoymiles data request failed (status {response.status}: "
                f"{response.message})"
            )
        data = response.data
        if data is None:
            raise MalformedError("Hoymiles station response carries no data")

        today_wh = require_number(data.today_eq, "today_eq")
        total_wh = require_number(data.total_eq, "total_eq")
        current_w = require_number(data.real_power, "real_power")
        logger.debug(
            "Hoymiles station %d: today=%s Wh total=%s Wh power=%s W (data time %s)",
            self._config.sid,
            today_wh,
            total_wh,
            current_w,
            data.last_data_time,
        )
        if current_w < 0:
            raise MalformedError(f"Hoymiles reported negative power {current_w} W")

        total_kwh = self._total.apply(wh_to_kwh(total_wh + today_wh))
        return self._reading(
            current_power_w=current_w,
            total_energy_kwh=total_kwh,
            observed_at=poll_timestamp,
        )
