"""
Pydantic model for the normalized inverter reading.

Defines the Reading model that every vendor service produces after its raw
API responses have been parsed and converted to canonical units.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Reading(BaseModel):
    """A single normalized reading of the photovoltaic inverter.

    All values are in canonical units after vendor-specific conversion.
    ``observed_at`` is injected by the update loop (the poll time), not
    taken from the vendor's own reporting timestamp.

    Instances are frozen: a reading is never mutated after construction,
    only superseded by a newer one.

    Attributes:
        current_power_w: Instantaneous power production in watts.
        total_energy_kwh: Energy produced since installation in kWh.
        observed_at: Poll time in seconds since the epoch.
    """

    model_config = ConfigDict(frozen=True)

    current_power_w: float = Field(ge=0)
    total_energy_kwh: float = Field(ge=0)
    observed_at: int
