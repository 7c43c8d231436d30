"""
My Autarco cloud service (https://my.autarco.com).

Logs in with a form post (the session cookie lands in the client's cookie
jar) and reads two KPI endpoints per poll, one after the other: ``energy``
for the cumulative total (kWh) and ``power`` for the current output (W).

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from pydantic import BaseModel

from grabber.src.errors import MalformedError
from grabber.src.models import Reading
from grabber.src.normalizer import MonotonicTotal, require_number
from grabber.src.services.base import DEFAULT_TIMEOUT_S, Service

logger = logging.getLogger(__name__)

BASE_URL = "https://my.autarco.com"

POLL_INTERVAL_S = 300
"""My Autarco refreshes inverter data every 5 minutes."""


class MyAutarcoConfig(BaseModel):
    """Credentials and site selection for the My Autarco service."""

    kind: Literal["my_autarco"] = "my_autarco"
    username: str
    password: str
    site_id: str


class ApiEnergy(BaseModel):
    """Energy KPIs; only the total since installation (kWh) is used."""

    pv_to_date: Any = None


class ApiPower(BaseModel):
    """Power KPIs; current production in W."""

    pv_now: Any = None


def api_url(site_id: str, endpoint: str) -> str:
    return f"{BASE_URL}/api/site/{site_id}/kpis/{endpoint}"


class MyAutarcoService(Service):
    """My Autarco service with a cookie session."""

    name = "my_autarco"

    def __init__(
        self,
        config: MyAutarcoConfig,
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
        await self._request(
            "POST",
            f"{BASE_URL}/auth/login",
            data={
                "username": self._config.username,
                "password": self._config.password,
            },
        )

    async def update(self, poll_timestamp: int) -> Reading:
        """Read the ``energy`` and then the ``power`` endpoint."""
        site_id = self._config.site_id

        energy = self._parse(
            ApiEnergy, await self._request_json("GET", api_url(site_id, "energy"))
        )
        power = self._parse(
            ApiPower, await self._request_json("GET", api_url(site_id, "power"))
        )

        total_kwh = require_number(energy.pv_to_date, "pv_to_date")
        current_w = require_number(power.pv_now, "pv_now")
        if current_w < 0:
            raise MalformedError(f"My Autarco reported negative power {current_w} W")

        return self._reading(
            current_power_w=current_w,
            total_energy_kwh=self._total.apply(total_kwh),
            observed_at=poll_timestamp,
        )
