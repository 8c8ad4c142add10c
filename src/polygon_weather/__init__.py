"""
Polygon Weather Dashboard

This package colours user-drawn map polygons by threshold rules evaluated
against historical weather data at each polygon's centroid.
"""

__version__ = "0.1.0"
__description__ = "Colour map polygons by historical weather thresholds"


def __getattr__(name):
    """Lazy import to avoid importing dependencies when not needed."""
    if name == "PolygonWeatherApp":
        from .main import PolygonWeatherApp
        return PolygonWeatherApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "PolygonWeatherApp",
]
