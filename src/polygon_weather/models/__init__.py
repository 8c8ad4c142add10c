"""
Data models for the polygon weather dashboard.

Contains DTOs for colour rules, data sources, polygons and weather samples.
"""

from .rule import ColorRule, OPERATORS
from .data_source import DataSource
from .polygon import Polygon, TimeWindow, Vertex
from .weather import WeatherSample

__all__ = [
    "ColorRule",
    "OPERATORS",
    "DataSource",
    "Polygon",
    "TimeWindow",
    "Vertex",
    "WeatherSample",
]
