"""
Supported cloud services.

The service is selected once at startup from configuration (the ``kind``
discriminator) and never changes afterwards.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import Annotated

import httpx
from pydantic import Field

from grabber.src.services.base import DEFAULT_TIMEOUT_S, Service
from grabber.src.services.hoymiles import HoymilesConfig, HoymilesService
from grabber.src.services.my_autarco import MyAutarcoConfig, MyAutarcoService

ServiceConfig = Annotated[
    HoymilesConfig | MyAutarcoConfig,
    Field(discriminator="kind"),
]
"""Service-specific configuration, tagged by ``kind``."""


def get_service(
    config: HoymilesConfig | MyAutarcoConfig,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> Service:
    """Instantiate the service matching *config*.

    Raises:
        ValueError: If the configuration type is not supported.
    """
    if isinstance(config, HoymilesConfig):
        return HoymilesService(config, client=client, timeout=timeout)
    if isinstance(config, MyAutarcoConfig):
        return MyAutarcoService(config, client=client, timeout=timeout)
    raise ValueError(f"Unsupported service configuration: {type(config).__name__}")


__all__ = [
    "HoymilesConfig",
    "HoymilesService",
    "MyAutarcoConfig",
    "MyAutarcoService",
    "Service",
    "ServiceConfig",
    "get_service",
]
