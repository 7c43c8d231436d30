"""
Grabber daemon entrypoint.

Loads the configuration, builds the vendor service, the shared StatusCell
and the UpdateLoop, and serves the FastAPI status app with uvicorn. The
update loop runs inside the app lifespan: the initial login happens before
the server accepts requests, and a failed initial login stops the process.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from grabber.src.api import create_app
from grabber.src.health import HealthWriter
from grabber.src.services import get_service
from grabber.src.status import StatusCell
from grabber.src.update import UpdateLoop

if TYPE_CHECKING:
    from fastapi import FastAPI

    from grabber.src.config import GrabberSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the grabber daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_secret(value: str | None) -> str:
    """Return a short non-reversible fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: GrabberSettings) -> None:
    """Log a config summary at startup, excluding secrets.

    The password is replaced by a masked fingerprint.
    """
    logger.info(
        "Grabber starting with config: "
        "service_kind=%s, service_username=%s, hoymiles_sid=%s, "
        "my_autarco_site_id=%s, request_timeout_s=%s, "
        "http_host=%s, http_port=%s, health_path=%s, "
        "password_masked=%s",
        settings.service_kind,
        settings.service_username,
        settings.hoymiles_sid,
        settings.my_autarco_site_id,
        settings.request_timeout_s,
        settings.http_host,
        settings.http_port,
        settings.health_path or "disabled",
        _masked_secret(settings.service_password),
    )


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_app(settings: GrabberSettings) -> FastAPI:
    """Construct the service, status cell, update loop and FastAPI app."""
    service = get_service(
        settings.service_config(),
        timeout=settings.request_timeout_s,
    )
    status_cell = StatusCell()
    health = HealthWriter(settings.health_path) if settings.health_path else None
    updater = UpdateLoop(service, status_cell, health=health)
    return create_app(status_cell, updater=updater, service=service)


def main() -> None:
    """Synchronous entrypoint for the grabber daemon."""
    import uvicorn

    from grabber.src.config import GrabberSettings

    settings = GrabberSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    app = build_app(settings)
    uvicorn.run(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
