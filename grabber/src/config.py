"""
Grabber daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded credentials. Settings are read once at startup and treated as
immutable for the process lifetime.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import logging
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from grabber.src.services import HoymilesConfig, MyAutarcoConfig


class GrabberSettings(BaseSettings):
    """Grabber daemon configuration.

    All values are loaded from environment variables. Required variables
    must be set; optional variables have sensible defaults.

    Attributes:
        service_kind: Vendor selector, ``hoymiles`` or ``my_autarco``.
        service_username: Account username for the vendor cloud.
        service_password: Account password for the vendor cloud.
        hoymiles_sid: Hoymiles station ID (required for hoymiles).
        my_autarco_site_id: My Autarco site ID (required for my_autarco).
        request_timeout_s: Per-request HTTP timeout in seconds.
        http_host: Bind address for the status endpoint.
        http_port: Bind port for the status endpoint.
        health_path: Health JSON file path; empty disables the file.
        log_level: Root log level name.
    """

    service_kind: Literal["hoymiles", "my_autarco"]
    service_username: str
    service_password: str
    hoymiles_sid: int | None = None
    my_autarco_site_id: str = ""
    request_timeout_s: float = 5.0
    http_host: str = "0.0.0.0"
    http_port: int = 8000
    health_path: str = ""
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _vendor_identifier_present(self) -> "GrabberSettings":
        """Require the identifier belonging to the selected vendor."""
        if self.service_kind == "hoymiles" and self.hoymiles_sid is None:
            raise ValueError("HOYMILES_SID must be set when SERVICE_KIND=hoymiles")
        if self.service_kind == "my_autarco" and not self.my_autarco_site_id:
            raise ValueError(
                "MY_AUTARCO_SITE_ID must be set when SERVICE_KIND=my_autarco"
            )
        return self

    @field_validator("hoymiles_sid")
    @classmethod
    def hoymiles_sid_must_be_positive(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("HOYMILES_SID must be >= 1")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def request_timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        return v

    @field_validator("http_port")
    @classmethod
    def http_port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("HTTP_PORT must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL '{v}' is not a valid logging level")
        return level

    def service_config(self) -> HoymilesConfig | MyAutarcoConfig:
        """Build the configuration of the selected vendor service."""
        if self.service_kind == "hoymiles":
            return HoymilesConfig(
                username=self.service_username,
                password=self.service_password,
                sid=self.hoymiles_sid,
            )
        return MyAutarcoConfig(
            username=self.service_username,
            password=self.service_password,
            site_id=self.my_autarco_site_id,
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True}
