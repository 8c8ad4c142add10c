"""
Polygon geometry helpers.
"""

import math
from typing import Sequence, Tuple

from ..core import constants
from ..models import Vertex


def centroid(vertices: Sequence[Vertex]) -> Vertex:
    """
    Get the unweighted vertex centroid of a polygon.

    This is the mean of the vertex coordinates, not the area-weighted
    centroid; close enough for a regional weather lookup.

    Args:
        vertices: Sequence of (longitude, latitude) pairs

    Returns:
        (longitude, latitude) of the centroid

    Raises:
        ValueError: If no vertices are given
    """
    if not vertices:
        raise ValueError("Cannot compute the centroid of an empty vertex list")

    count = len(vertices)
    longitude = sum(vertex[0] for vertex in vertices) / count
    latitude = sum(vertex[1] for vertex in vertices) / count
    return longitude, latitude


def validate_vertices(vertices: Sequence[Vertex]) -> Tuple[Vertex, ...]:
    """
    Validate a polygon ring and return it as a tuple of float pairs.

    Raises:
        ValueError: On a wrong vertex count or an out-of-range coordinate
    """
    count = len(vertices)
    if count < constants.MIN_POLYGON_VERTICES:
        raise ValueError(
            f"A polygon needs at least {constants.MIN_POLYGON_VERTICES} points, got {count}"
        )
    if count > constants.MAX_POLYGON_VERTICES:
        raise ValueError(
            f"A polygon can have at most {constants.MAX_POLYGON_VERTICES} points, got {count}"
        )

    validated = []
    for longitude, latitude in vertices:
        validated.append(validate_point((longitude, latitude)))
    return tuple(validated)


def validate_point(point: Vertex) -> Vertex:
    """Check a single (longitude, latitude) pair."""
    longitude, latitude = float(point[0]), float(point[1])
    if not (math.isfinite(longitude) and math.isfinite(latitude)):
        raise ValueError(f"Coordinates must be finite: {point}")
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Longitude out of range [-180, 180]: {longitude}")
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Latitude out of range [-90, 90]: {latitude}")
    return longitude, latitude


def close_ring(vertices: Sequence[Vertex]) -> Tuple[Vertex, ...]:
    """Get the ring with its first vertex repeated at the end, as map renderers expect."""
    if not vertices:
        return ()
    return tuple(vertices) + (tuple(vertices[0]),)
