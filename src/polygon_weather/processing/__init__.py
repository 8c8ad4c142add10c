"""
Data processing module for the polygon weather dashboard.

Provides rule evaluation, polygon geometry, colour helpers and aggregation.
"""

from .aggregator import WeatherAggregator, round_half_away
from .geometry import centroid, validate_vertices, validate_point, close_ring
from .rules import classify, evaluate_rule
from .colors import hex_to_hsl, contrast_color

__all__ = [
    "WeatherAggregator",
    "round_half_away",
    "centroid",
    "validate_vertices",
    "validate_point",
    "close_ring",
    "classify",
    "evaluate_rule",
    "hex_to_hsl",
    "contrast_color",
]
