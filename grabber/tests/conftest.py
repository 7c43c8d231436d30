"""
Shared test fixtures for grabber tests.

Provides environment variable fixtures for GrabberSettings configuration
tests and a mocked vendor service for update loop tests. All grabber env
vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from grabber.src.models import Reading

# All GrabberSettings environment variable names, used for cleanup.
_ALL_GRABBER_ENV_VARS = (
    "SERVICE_KIND",
    "SERVICE_USERNAME",
    "SERVICE_PASSWORD",
    "HOYMILES_SID",
    "MY_AUTARCO_SITE_ID",
    "REQUEST_TIMEOUT_S",
    "HTTP_HOST",
    "HTTP_PORT",
    "HEALTH_PATH",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_grabber_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all grabber env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_GRABBER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_hoymiles(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every variable for a Hoymiles configuration."""
    env = {
        "SERVICE_KIND": "hoymiles",
        "SERVICE_USERNAME": "solar@example.com",
        "SERVICE_PASSWORD": "hunter2",
        "HOYMILES_SID": "123456",
        "REQUEST_TIMEOUT_S": "7.5",
        "HTTP_HOST": "127.0.0.1",
        "HTTP_PORT": "8080",
        "HEALTH_PATH": "/tmp/grabber-health.json",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_my_autarco(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required variables for a My Autarco configuration."""
    env = {
        "SERVICE_KIND": "my_autarco",
        "SERVICE_USERNAME": "autarco-user",
        "SERVICE_PASSWORD": "s3cret",
        "MY_AUTARCO_SITE_ID": "site-42",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


def make_reading(
    current_power_w: float = 1500.0,
    total_energy_kwh: float = 1234.5,
    observed_at: int = 1_700_000_000,
) -> Reading:
    """Create a Reading with sensible defaults."""
    return Reading(
        current_power_w=current_power_w,
        total_energy_kwh=total_energy_kwh,
        observed_at=observed_at,
    )


@pytest.fixture()
def mock_service() -> MagicMock:
    """Create a mock vendor service with a 300 s poll interval.

    ``login`` succeeds and ``update`` returns a Reading stamped with the
    poll timestamp unless a test overrides the side effects.
    """

    async def _update(poll_timestamp: int) -> Reading:
        return make_reading(observed_at=poll_timestamp)

    service = MagicMock()
    service.name = "fake"
    service.poll_interval = MagicMock(return_value=300)
    service.login = AsyncMock(return_value=None)
    service.update = AsyncMock(side_effect=_update)
    service.aclose = AsyncMock()
    return service
