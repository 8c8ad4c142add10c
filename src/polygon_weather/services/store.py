"""
Dashboard application state.

One store owns every piece of dashboard state. All mutations go through
named commands; each command notifies subscribers with an immutable
snapshot of the new state. Polygons, data sources, map position and the
sidebar flag are persisted when a storage is attached; the timeline,
range mode, drawing state and loading flag are not.

Persisted commands write the storage file synchronously on the calling
thread, once per command. A refresh writes each polygon's value and colour
with one command. A failed write is logged and the in-memory state is kept.
"""

import itertools
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, Any, Iterable, List, Optional, Tuple

from ..core import constants, DateUtils
from ..models import ColorRule, DataSource, Polygon, TimeWindow, Vertex
from ..processing.geometry import validate_point, validate_vertices
from .persistence import StateStorage

# Change kinds
TIME_WINDOW = "time_window"
RANGE_MODE = "range_mode"
POLYGONS = "polygons"
POLYGON_RESULT = "polygon_result"
DRAWING = "drawing"
DATA_SOURCES = "data_sources"
SELECTION = "selection"
MAP_VIEW = "map_view"
SIDEBAR = "sidebar"
LOADING = "loading"
RESTORED = "restored"

PERSISTED_KINDS = frozenset({POLYGONS, POLYGON_RESULT, DATA_SOURCES, MAP_VIEW, SIDEBAR})


def default_data_sources() -> Tuple[DataSource, ...]:
    """Data sources available before the user adds any."""
    return (
        DataSource(
            id="open-meteo-temperature",
            name="Temperature (°C)",
            field=constants.DEFAULT_FIELD,
            rules=(
                ColorRule("<", 10, "#3b82f6", "Cold"),
                ColorRule(">=", 10, "#22c55e", "Mild"),
                ColorRule(">=", 25, "#ef4444", "Hot"),
            ),
            api_endpoint=constants.DEFAULT_ARCHIVE_URL,
        ),
    )


@dataclass(frozen=True)
class DashboardSnapshot:
    """Read-only view of the dashboard state."""

    time_window: TimeWindow
    is_range_mode: bool
    polygons: Tuple[Polygon, ...]
    is_drawing_mode: bool
    drawing_points: Tuple[Vertex, ...]
    data_sources: Tuple[DataSource, ...]
    selected_data_source_id: Optional[str]
    map_center: Tuple[float, float]
    map_zoom: int
    sidebar_open: bool
    loading: bool

    def get_polygon(self, polygon_id: str) -> Optional[Polygon]:
        return next((p for p in self.polygons if p.id == polygon_id), None)

    def get_data_source(self, data_source_id: str) -> Optional[DataSource]:
        return next((ds for ds in self.data_sources if ds.id == data_source_id), None)


@dataclass(frozen=True)
class StateChange:
    """Notification sent to subscribers after a command."""

    kind: str
    snapshot: DashboardSnapshot


Subscriber = Callable[[StateChange], None]


class DashboardStore:
    """Single owner of the dashboard state."""

    def __init__(
        self,
        storage: Optional[StateStorage] = None,
        storage_key: str = constants.DEFAULT_STORAGE_KEY,
        reference_time: Optional[datetime] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the store and restore persisted state if any.

        Args:
            storage: Key-value storage for the persisted part of the state
            storage_key: Key the state is stored under
            reference_time: Centre of the initial timeline window (defaults to now)
            logger: Logger instance
        """
        self.storage = storage
        self.storage_key = storage_key
        self.logger = logger or logging.getLogger(__name__)
        self._subscribers: List[Subscriber] = []
        self._ids = itertools.count(1)

        self._time_window = TimeWindow.default(reference_time)
        self._is_range_mode = False
        self._polygons: List[Polygon] = []
        self._is_drawing_mode = False
        self._drawing_points: List[Vertex] = []
        self._data_sources: List[DataSource] = list(default_data_sources())
        self._selected_data_source_id: Optional[str] = self._data_sources[0].id
        self._map_center: Tuple[float, float] = constants.DEFAULT_MAP_CENTER
        self._map_zoom: int = constants.DEFAULT_MAP_ZOOM
        self._sidebar_open = True
        self._loading = False

        if self.storage is not None:
            payload = self.storage.load(self.storage_key)
            if payload is not None:
                self.restore(payload)

    # Observers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for state changes.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def snapshot(self) -> DashboardSnapshot:
        """Get an immutable copy of the current state."""
        return DashboardSnapshot(
            time_window=self._time_window,
            is_range_mode=self._is_range_mode,
            polygons=tuple(self._polygons),
            is_drawing_mode=self._is_drawing_mode,
            drawing_points=tuple(self._drawing_points),
            data_sources=tuple(self._data_sources),
            selected_data_source_id=self._selected_data_source_id,
            map_center=self._map_center,
            map_zoom=self._map_zoom,
            sidebar_open=self._sidebar_open,
            loading=self._loading,
        )

    def _changed(self, kind: str) -> None:
        if kind in PERSISTED_KINDS:
            self.save()
        change = StateChange(kind=kind, snapshot=self.snapshot())
        for callback in list(self._subscribers):
            callback(change)

    def _next_id(self, prefix: str, existing: Iterable[str]) -> str:
        taken = set(existing)
        while True:
            candidate = f"{prefix}-{next(self._ids)}"
            if candidate not in taken:
                return candidate

    # Timeline

    def set_time_window(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        current: Optional[datetime] = None
    ) -> None:
        """Update any of the window bounds and the current time pointer."""
        changes: Dict[str, datetime] = {}
        if start is not None:
            changes["start"] = DateUtils.to_utc(start)
        if end is not None:
            changes["end"] = DateUtils.to_utc(end)
        if current is not None:
            changes["current"] = DateUtils.to_utc(current)
        if not changes:
            return
        self._time_window = replace(self._time_window, **changes)
        self._changed(TIME_WINDOW)

    def reset_time_window(self, reference_time: Optional[datetime] = None) -> None:
        """Go back to the 30-day window centred on now."""
        self._time_window = TimeWindow.default(reference_time)
        self._changed(TIME_WINDOW)

    def set_range_mode(self, is_range: bool) -> None:
        self._is_range_mode = bool(is_range)
        self._changed(RANGE_MODE)

    # Polygons

    def add_polygon(
        self,
        vertices: Iterable[Vertex],
        data_source_id: str,
        color: str,
        name: Optional[str] = None
    ) -> Polygon:
        """
        Add a polygon.

        Raises:
            ValueError: If the ring has fewer than 3 or more than 12 vertices
        """
        polygon = Polygon(
            id=self._next_id("polygon", (p.id for p in self._polygons)),
            name=name or f"Polygon {len(self._polygons) + 1}",
            vertices=validate_vertices(list(vertices)),
            data_source_id=data_source_id,
            color=color,
            created_at=DateUtils.now(),
        )
        self._polygons.append(polygon)
        self.logger.info(f"Added {polygon.name} ({polygon.id}) with {len(polygon.vertices)} points")
        self._changed(POLYGONS)
        return polygon

    def remove_polygon(self, polygon_id: str) -> bool:
        """
        Delete a polygon.

        Returns:
            True if the polygon existed
        """
        remaining = [p for p in self._polygons if p.id != polygon_id]
        if len(remaining) == len(self._polygons):
            return False
        self._polygons = remaining
        self.logger.info(f"Removed polygon {polygon_id}")
        self._changed(POLYGONS)
        return True

    def _update_polygon(self, polygon_id: str, **changes: Any) -> bool:
        for index, polygon in enumerate(self._polygons):
            if polygon.id == polygon_id:
                self._polygons[index] = replace(polygon, **changes)
                self._changed(POLYGON_RESULT)
                return True
        # Deleted while its refresh was in flight
        self.logger.debug(f"Ignoring update for missing polygon {polygon_id}")
        return False

    def update_polygon_color(self, polygon_id: str, color: str) -> bool:
        return self._update_polygon(polygon_id, color=color)

    def update_polygon_value(self, polygon_id: str, value: float) -> bool:
        return self._update_polygon(polygon_id, current_value=value)

    def update_polygon_result(self, polygon_id: str, value: float, color: str) -> bool:
        """Write a refreshed value and its colour as one change."""
        return self._update_polygon(polygon_id, current_value=value, color=color)

    # Drawing

    def set_drawing_mode(self, enabled: bool) -> None:
        """Enter or leave drawing mode; entering starts a fresh point list."""
        self._is_drawing_mode = bool(enabled)
        if enabled:
            self._drawing_points = []
        self._changed(DRAWING)

    def add_drawing_point(self, point: Vertex) -> None:
        """
        Append a clicked point to the polygon being drawn.

        Raises:
            ValueError: Outside drawing mode, or when the polygon already has 12 points
        """
        if not self._is_drawing_mode:
            raise ValueError("Not in drawing mode")
        if len(self._drawing_points) >= constants.MAX_POLYGON_VERTICES:
            raise ValueError(
                f"You can only add up to {constants.MAX_POLYGON_VERTICES} points per polygon"
            )
        self._drawing_points.append(validate_point(point))
        self._changed(DRAWING)

    def clear_drawing_points(self) -> None:
        self._drawing_points = []
        self._changed(DRAWING)

    def finish_polygon(self) -> Polygon:
        """
        Turn the drawn points into a polygon of the selected data source.

        The polygon starts with the colour of the data source's first rule.

        Raises:
            ValueError: With fewer than 3 points or no selected data source
        """
        if len(self._drawing_points) < constants.MIN_POLYGON_VERTICES:
            raise ValueError(
                f"A polygon needs at least {constants.MIN_POLYGON_VERTICES} points"
            )
        data_source = self.get_data_source(self._selected_data_source_id)
        if data_source is None:
            raise ValueError("No data source selected")

        color = data_source.rules[0].color if data_source.rules else constants.DEFAULT_POLYGON_COLOR
        points = list(self._drawing_points)
        self._is_drawing_mode = False
        self._drawing_points = []
        self._changed(DRAWING)
        return self.add_polygon(points, data_source.id, color)

    def cancel_drawing(self) -> None:
        self._is_drawing_mode = False
        self._drawing_points = []
        self._changed(DRAWING)

    # Data sources

    def get_data_source(self, data_source_id: Optional[str]) -> Optional[DataSource]:
        return next((ds for ds in self._data_sources if ds.id == data_source_id), None)

    def _require_data_source(self, data_source_id: str) -> int:
        for index, data_source in enumerate(self._data_sources):
            if data_source.id == data_source_id:
                return index
        raise ValueError(f"Unknown data source: {data_source_id}")

    def add_data_source(
        self,
        name: str,
        field: str,
        rules: Iterable[ColorRule] = (),
        api_endpoint: Optional[str] = None
    ) -> DataSource:
        data_source = DataSource(
            id=self._next_id("datasource", (ds.id for ds in self._data_sources)),
            name=name,
            field=field,
            rules=tuple(rules),
            api_endpoint=api_endpoint,
        )
        self._data_sources.append(data_source)
        self._changed(DATA_SOURCES)
        return data_source

    def update_data_source(self, data_source_id: str, **changes: Any) -> DataSource:
        """
        Change fields of a data source (name, field, rules, api_endpoint).

        Raises:
            ValueError: For an unknown data source or an attempt to change its id
        """
        if "id" in changes:
            raise ValueError("The id of a data source cannot be changed")
        index = self._require_data_source(data_source_id)
        if "rules" in changes:
            changes["rules"] = tuple(changes["rules"])
        updated = replace(self._data_sources[index], **changes)
        self._data_sources[index] = updated
        self._changed(DATA_SOURCES)
        return updated

    def add_color_rule(self, data_source_id: str, rule: ColorRule) -> DataSource:
        index = self._require_data_source(data_source_id)
        rules = self._data_sources[index].rules + (rule,)
        return self.update_data_source(data_source_id, rules=rules)

    def remove_color_rule(self, data_source_id: str, rule_index: int) -> DataSource:
        """
        Delete a rule by its position in the data source.

        Raises:
            ValueError: For an unknown data source
            IndexError: For a position outside the rule list
        """
        index = self._require_data_source(data_source_id)
        rules = list(self._data_sources[index].rules)
        if not 0 <= rule_index < len(rules):
            raise IndexError(f"No rule at position {rule_index}")
        del rules[rule_index]
        return self.update_data_source(data_source_id, rules=rules)

    def select_data_source(self, data_source_id: str) -> None:
        self._require_data_source(data_source_id)
        self._selected_data_source_id = data_source_id
        self._changed(SELECTION)

    def data_source_name(self, data_source_id: str) -> str:
        """Get a data source's name, 'Unknown' if it was deleted."""
        data_source = self.get_data_source(data_source_id)
        return data_source.name if data_source else "Unknown"

    def polygon_count(self, data_source_id: str) -> int:
        return sum(1 for p in self._polygons if p.data_source_id == data_source_id)

    # Map and UI

    def set_map_center(self, center: Tuple[float, float]) -> None:
        self._map_center = (float(center[0]), float(center[1]))
        self._changed(MAP_VIEW)

    def set_map_zoom(self, zoom: int) -> None:
        self._map_zoom = int(zoom)
        self._changed(MAP_VIEW)

    def set_sidebar_open(self, is_open: bool) -> None:
        self._sidebar_open = bool(is_open)
        self._changed(SIDEBAR)

    def set_loading(self, loading: bool) -> None:
        self._loading = bool(loading)
        self._changed(LOADING)

    # Persistence

    def persisted_state(self) -> Dict[str, Any]:
        """Get the part of the state that survives a reload."""
        return {
            "polygons": [p.to_dict() for p in self._polygons],
            "data_sources": [ds.to_dict() for ds in self._data_sources],
            "map_center": list(self._map_center),
            "map_zoom": self._map_zoom,
            "sidebar_open": self._sidebar_open,
        }

    def save(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(self.storage_key, self.persisted_state())
        except OSError as e:
            self.logger.error(f"Failed to save dashboard state: {e}")

    def restore(self, payload: Dict[str, Any]) -> None:
        """
        Replace the persisted part of the state.

        A payload that cannot be read is logged and leaves the state unchanged.
        """
        if not isinstance(payload, dict):
            self.logger.warning(
                f"Ignoring unreadable stored state: expected an object, got {type(payload).__name__}"
            )
            return

        try:
            polygons = [Polygon.from_dict(p) for p in payload.get("polygons", [])]
            data_sources = [DataSource.from_dict(ds) for ds in payload.get("data_sources", [])]
            lat, lng = payload.get("map_center", constants.DEFAULT_MAP_CENTER)
            map_center = (float(lat), float(lng))
            map_zoom = int(payload.get("map_zoom", constants.DEFAULT_MAP_ZOOM))
            sidebar_open = bool(payload.get("sidebar_open", True))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable stored state: {e}")
            return

        self._polygons = polygons
        if data_sources:
            self._data_sources = data_sources
        self._map_center = map_center
        self._map_zoom = map_zoom
        self._sidebar_open = sidebar_open
        if self.get_data_source(self._selected_data_source_id) is None:
            self._selected_data_source_id = self._data_sources[0].id if self._data_sources else None

        self.logger.info(
            f"Restored {len(self._polygons)} polygons and {len(self._data_sources)} data sources"
        )
        self._changed(RESTORED)
