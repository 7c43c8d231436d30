"""
Tests for the My Autarco service.

Uses an httpx.MockTransport standing in for my.autarco.com. Tests verify
the form login, the session cookie round trip, the sequential energy/power
requests, and error mapping.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest
from grabber.src.errors import MalformedError, NotAuthorizedError, TransportError
from grabber.src.services.my_autarco import (
    BASE_URL,
    MyAutarcoConfig,
    MyAutarcoService,
    api_url,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_POLL_TS = 1_760_000_000
_SITE_ID = "site-42"


class _FakeAutarco:
    """Scripted stand-in for the My Autarco site.

    ``energy`` and ``power`` hold the responses (dict, httpx.Response, or
    exception) returned for successive KPI requests.
    """

    def __init__(
        self,
        *,
        energy: list[object] | None = None,
        power: list[object] | None = None,
        login: httpx.Response | None = None,
    ) -> None:
        self.energy = list(energy or [])
        self.power = list(power or [])
        self.login = login
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/auth/login":
            if self.login is not None:
                return self.login
            return httpx.Response(
                200, headers={"set-cookie": "session=abc123; Path=/"}, text="ok"
            )
        if path.endswith("/kpis/energy"):
            item = self.energy.pop(0)
        elif path.endswith("/kpis/power"):
            item = self.power.pop(0)
        else:
            return httpx.Response(404)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)


def _make_service(site: _FakeAutarco) -> MyAutarcoService:
    config = MyAutarcoConfig(username="autarco-user", password="s3cret", site_id=_SITE_ID)
    client = httpx.AsyncClient(transport=httpx.MockTransport(site))
    return MyAutarcoService(config, client=client)


# ===========================================================================
# Login
# ===========================================================================


class TestLogin:
    @pytest.mark.asyncio
    async def test_posts_form_credentials(self) -> None:
        site = _FakeAutarco()
        service = _make_service(site)

        await service.login()

        request = site.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/auth/login"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert parse_qs(request.content.decode()) == {
            "username": ["autarco-user"],
            "password": ["s3cret"],
        }

    @pytest.mark.asyncio
    async def test_session_cookie_sent_on_kpi_requests(self) -> None:
        site = _FakeAutarco(energy=[{"pv_to_date": 10}], power=[{"pv_now": 100}])
        service = _make_service(site)

        await service.login()
        await service.update(_POLL_TS)

        assert "session=abc123" in site.requests[1].headers["cookie"]
        assert "session=abc123" in site.requests[2].headers["cookie"]

    @pytest.mark.asyncio
    async def test_rejected_login_is_not_authorized(self) -> None:
        service = _make_service(_FakeAutarco(login=httpx.Response(401)))
        with pytest.raises(NotAuthorizedError):
            await service.login()


# ===========================================================================
# Update
# ===========================================================================


class TestUpdate:
    @pytest.mark.asyncio
    async def test_energy_then_power_requested(self) -> None:
        site = _FakeAutarco(energy=[{"pv_to_date": 4321}], power=[{"pv_now": 1200}])
        service = _make_service(site)

        await service.update(_POLL_TS)

        assert [str(r.url) for r in site.requests] == [
            api_url(_SITE_ID, "energy"),
            api_url(_SITE_ID, "power"),
        ]
        assert all(r.method == "GET" for r in site.requests)

    @pytest.mark.asyncio
    async def test_reading_fields(self) -> None:
        site = _FakeAutarco(
            energy=[{"pv_today": 12, "pv_month": 300, "pv_to_date": 4321}],
            power=[{"pv_now": 1200}],
        )
        service = _make_service(site)

        reading = await service.update(_POLL_TS)

        assert reading.total_energy_kwh == 4321.0
        assert reading.current_power_w == 1200.0
        assert reading.observed_at == _POLL_TS

    @pytest.mark.asyncio
    async def test_numeric_strings_accepted(self) -> None:
        site = _FakeAutarco(energy=[{"pv_to_date": "4321"}], power=[{"pv_now": "0"}])
        reading = await _make_service(site).update(_POLL_TS)
        assert reading.total_energy_kwh == 4321.0
        assert reading.current_power_w == 0.0

    @pytest.mark.asyncio
    async def test_total_never_decreases(self) -> None:
        site = _FakeAutarco(
            energy=[{"pv_to_date": 100}, {"pv_to_date": 99}, {"pv_to_date": 101}],
            power=[{"pv_now": 1}, {"pv_now": 2}, {"pv_now": 3}],
        )
        service = _make_service(site)

        totals = [(await service.update(_POLL_TS + n)).total_energy_kwh for n in range(3)]

        assert totals == [100.0, 100.0, 101.0]

    def test_poll_interval(self) -> None:
        assert _make_service(_FakeAutarco()).poll_interval() == 300


class TestUpdateErrors:
    @pytest.mark.asyncio
    async def test_expired_session_is_not_authorized(self) -> None:
        site = _FakeAutarco(energy=[httpx.Response(401)])
        service = _make_service(site)

        with pytest.raises(NotAuthorizedError):
            await service.update(_POLL_TS)
        # The power endpoint is not called after the energy call failed.
        assert len(site.requests) == 1

    @pytest.mark.asyncio
    async def test_power_endpoint_failure_is_transport_error(self) -> None:
        site = _FakeAutarco(energy=[{"pv_to_date": 10}], power=[httpx.Response(503)])
        with pytest.raises(TransportError) as excinfo:
            await _make_service(site).update(_POLL_TS)
        assert excinfo.value.status_code == 503

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self) -> None:
        site = _FakeAutarco(energy=[httpx.ReadTimeout("timed out")])
        with pytest.raises(TransportError):
            await _make_service(site).update(_POLL_TS)

    @pytest.mark.asyncio
    async def test_missing_field_is_malformed(self) -> None:
        site = _FakeAutarco(energy=[{"pv_today": 3}], power=[{"pv_now": 1}])
        with pytest.raises(MalformedError, match="pv_to_date"):
            await _make_service(site).update(_POLL_TS)

    @pytest.mark.asyncio
    async def test_non_numeric_power_is_malformed(self) -> None:
        site = _FakeAutarco(energy=[{"pv_to_date": 3}], power=[{"pv_now": "lots"}])
        with pytest.raises(MalformedError, match="pv_now"):
            await _make_service(site).update(_POLL_TS)

    @pytest.mark.asyncio
    async def test_non_object_payload_is_malformed(self) -> None:
        site = _FakeAutarco(energy=[[1, 2, 3]], power=[{"pv_now": 1}])
        with pytest.raises(MalformedError):
            await _make_service(site).update(_POLL_TS)
