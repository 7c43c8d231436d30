"""
Solar grabber daemon package.

Logs into a photovoltaic inverter vendor's cloud service, polls the live and
cumulative production figures at the vendor's own cadence, normalizes them
into a single Reading, and serves the latest one over HTTP.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

__version__ = "0.1.0"
