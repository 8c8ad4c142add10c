"""
Polygon data models.

Contains DTOs for user-drawn polygons and the timeline window they are
evaluated over.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional, Tuple

from ..core.date_utils import DateUtils

Vertex = Tuple[float, float]  # (longitude, latitude)


@dataclass(frozen=True)
class Polygon:
    """User-drawn region used as a query footprint."""

    id: str
    name: str
    vertices: Tuple[Vertex, ...]  # open ring, first vertex not repeated
    data_source_id: str
    color: str
    created_at: datetime
    current_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "vertices": [list(vertex) for vertex in self.vertices],
            "data_source_id": self.data_source_id,
            "color": self.color,
            "current_value": self.current_value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Polygon":
        return cls(
            id=data["id"],
            name=data["name"],
            vertices=tuple((float(lon), float(lat)) for lon, lat in data["vertices"]),
            data_source_id=data["data_source_id"],
            color=data["color"],
            created_at=DateUtils.parse_timestamp(data["created_at"]),
            current_value=data.get("current_value"),
        )


@dataclass(frozen=True)
class TimeWindow:
    """Timeline window with a current time pointer."""

    start: datetime
    end: datetime
    current: datetime

    @classmethod
    def default(cls, reference_time: Optional[datetime] = None) -> "TimeWindow":
        start, end, current = DateUtils().default_window(reference_time)
        return cls(start=start, end=end, current=current)

    def query_range(self, is_range_mode: bool) -> Tuple[datetime, datetime]:
        """
        Get the range a polygon value is computed over.

        Args:
            is_range_mode: Use the whole window instead of the current hour

        Returns:
            Tuple of (start, end)
        """
        if is_range_mode:
            return self.start, self.end
        return DateUtils.single_point_range(self.current)
