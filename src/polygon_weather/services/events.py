"""
UI event dispatch.

Map clicks, slider drags and form submissions arrive as typed events. The
dispatcher applies them to the store one at a time in arrival order.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Deque, Dict, Optional, Tuple, Type

from .store import DashboardStore
from ..models import ColorRule


@dataclass(frozen=True)
class MapClicked:
    longitude: float
    latitude: float


@dataclass(frozen=True)
class DrawingStarted:
    pass


@dataclass(frozen=True)
class DrawingFinished:
    pass


@dataclass(frozen=True)
class DrawingCancelled:
    pass


@dataclass(frozen=True)
class TimeSliderMoved:
    """Current time pointer set to window start plus an hour offset."""

    hours: float


@dataclass(frozen=True)
class RangeSelected:
    """Window narrowed to two hour offsets from its start; pointer moves to the middle."""

    start_hours: float
    end_hours: float


@dataclass(frozen=True)
class RangeModeToggled:
    enabled: bool


@dataclass(frozen=True)
class TimelineReset:
    pass


@dataclass(frozen=True)
class PolygonDeleted:
    polygon_id: str


@dataclass(frozen=True)
class DataSourceSelected:
    data_source_id: str


@dataclass(frozen=True)
class ColorRuleAdded:
    data_source_id: str
    rule: ColorRule


@dataclass(frozen=True)
class ColorRuleRemoved:
    data_source_id: str
    index: int


@dataclass(frozen=True)
class MapMoved:
    center: Tuple[float, float]
    zoom: int


@dataclass(frozen=True)
class SidebarToggled:
    is_open: bool


class EventDispatcher:
    """Apply UI events to the dashboard store."""

    def __init__(self, store: DashboardStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self._queue: Deque[Any] = deque()
        self._handlers: Dict[Type, Callable[[Any], Any]] = {
            MapClicked: lambda e: store.add_drawing_point((e.longitude, e.latitude)),
            DrawingStarted: lambda e: store.set_drawing_mode(True),
            DrawingFinished: lambda e: store.finish_polygon(),
            DrawingCancelled: lambda e: store.cancel_drawing(),
            TimeSliderMoved: self._move_slider,
            RangeSelected: self._select_range,
            RangeModeToggled: lambda e: store.set_range_mode(e.enabled),
            TimelineReset: lambda e: store.reset_time_window(),
            PolygonDeleted: lambda e: store.remove_polygon(e.polygon_id),
            DataSourceSelected: lambda e: store.select_data_source(e.data_source_id),
            ColorRuleAdded: lambda e: store.add_color_rule(e.data_source_id, e.rule),
            ColorRuleRemoved: lambda e: store.remove_color_rule(e.data_source_id, e.index),
            MapMoved: self._move_map,
            SidebarToggled: lambda e: store.set_sidebar_open(e.is_open),
        }

    def dispatch(self, event: Any) -> Any:
        """
        Apply one event immediately.

        Returns:
            Whatever the store command returns (e.g. the new polygon)

        Raises:
            TypeError: For an event type without a handler
            ValueError: When the store rejects the event
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"No handler for event {type(event).__name__}")
        self.logger.debug(f"Dispatching {event}")
        return handler(event)

    def post(self, event: Any) -> None:
        """Queue an event for the next process_pending() call."""
        self._queue.append(event)

    def process_pending(self) -> int:
        """
        Apply queued events in arrival order.

        An event the store rejects is logged and dropped; the rest still run.

        Returns:
            Number of events applied
        """
        applied = 0
        while self._queue:
            event = self._queue.popleft()
            try:
                self.dispatch(event)
            except (ValueError, IndexError) as e:
                self.logger.warning(f"Rejected {type(event).__name__}: {e}")
                continue
            applied += 1
        return applied

    def _move_slider(self, event: TimeSliderMoved) -> None:
        window = self.store.snapshot().time_window
        self.store.set_time_window(current=window.start + timedelta(hours=event.hours))

    def _select_range(self, event: RangeSelected) -> None:
        window_start = self.store.snapshot().time_window.start
        midpoint = event.start_hours + (event.end_hours - event.start_hours) / 2
        self.store.set_time_window(
            start=window_start + timedelta(hours=event.start_hours),
            end=window_start + timedelta(hours=event.end_hours),
            current=window_start + timedelta(hours=midpoint),
        )

    def _move_map(self, event: MapMoved) -> None:
        self.store.set_map_center(event.center)
        self.store.set_map_zoom(event.zoom)
