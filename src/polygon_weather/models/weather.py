"""
Weather sample models.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class WeatherSample:
    """One hourly archive value at a coordinate."""

    timestamp: str
    value: float
    latitude: float
    longitude: float
