"""
Main entry point for the polygon weather dashboard.

Loads the stored dashboard, optionally draws new polygons, runs one refresh
batch against the weather archive and prints the resulting values.
"""

import asyncio
import sys
from datetime import datetime
from typing import List, Optional, Sequence

from .core import Config, setup_logger
from .api import ArchiveAPI
from .models import Vertex
from .processing import WeatherAggregator
from .services import (
    DashboardStore,
    EventDispatcher,
    PolygonRefresher,
    RefreshSummary,
    StateStorage,
)
from .services.events import DrawingFinished, DrawingStarted, MapClicked


def parse_polygon(text: str) -> List[Vertex]:
    """
    Parse a polygon given as 'lon,lat;lon,lat;...'.

    Raises:
        ValueError: If a point is not a pair of numbers
    """
    vertices = []
    for point in text.split(";"):
        point = point.strip()
        if not point:
            continue
        parts = point.split(",")
        if len(parts) != 2:
            raise ValueError(f"Expected 'lon,lat', got {point!r}")
        vertices.append((float(parts[0]), float(parts[1])))
    return vertices


class PolygonWeatherApp:
    """Command line front end of the dashboard."""

    def __init__(self, config_file: Optional[str] = None, state_file: Optional[str] = None):
        """
        Initialize application.

        Args:
            config_file: Path to configuration file
            state_file: Path to the dashboard state file (overrides configuration)
        """
        self.config = Config(config_file)
        self.state_file = state_file or self.config.storage_path

        self.logger = setup_logger(
            log_file=self.config.log_file,
            log_level=self.config.log_level
        )
        self.logger.info(f"Configuration: {self.config}")

        self.api_client: Optional[ArchiveAPI] = None
        self.store: Optional[DashboardStore] = None
        self.dispatcher: Optional[EventDispatcher] = None
        self.refresher: Optional[PolygonRefresher] = None

    def initialize_components(self) -> None:
        """Initialize all application components."""
        self.logger.info("Initializing components...")

        self.api_client = ArchiveAPI(
            base_url=self.config.api_base_url,
            timeout=self.config.api_timeout,
            max_retries=self.config.api_max_retries,
            verify_ssl=self.config.api_verify_ssl,
            logger=self.logger
        )

        self.store = DashboardStore(
            storage=StateStorage(self.state_file, logger=self.logger),
            storage_key=self.config.storage_key,
            logger=self.logger
        )
        self.dispatcher = EventDispatcher(self.store, logger=self.logger)

        self.refresher = PolygonRefresher(
            store=self.store,
            aggregator=WeatherAggregator(self.api_client, logger=self.logger),
            discard_stale_responses=self.config.discard_stale_responses,
            logger=self.logger
        )

    def draw_polygon(self, vertices: Sequence[Vertex]) -> None:
        """Draw a polygon for the selected data source the way a user would on the map."""
        self.dispatcher.dispatch(DrawingStarted())
        for longitude, latitude in vertices:
            self.dispatcher.dispatch(MapClicked(longitude=longitude, latitude=latitude))
        self.dispatcher.dispatch(DrawingFinished())

    def run(
        self,
        polygons: Sequence[Sequence[Vertex]] = (),
        at: Optional[datetime] = None,
        range_mode: bool = False
    ) -> RefreshSummary:
        """
        Refresh every polygon once.

        Args:
            polygons: New polygons to draw before refreshing
            at: Current time pointer (defaults to now)
            range_mode: Aggregate over the whole 30-day window

        Returns:
            Summary of the refresh batch
        """
        try:
            self.initialize_components()

            if at is not None:
                self.store.set_time_window(current=at)
            self.store.set_range_mode(range_mode)

            for vertices in polygons:
                self.draw_polygon(vertices)

            summary = asyncio.run(self.refresher.refresh_store())
            self.print_report()
            return summary

        except Exception as e:
            self.logger.error(f"Application error: {e}", exc_info=True)
            raise

        finally:
            if self.api_client:
                self.api_client.close()

    def print_report(self) -> None:
        snapshot = self.store.snapshot()
        if not snapshot.polygons:
            print("No polygons. Draw one with --polygon 'lon,lat;lon,lat;lon,lat'.")
            return

        for polygon in snapshot.polygons:
            value = "-" if polygon.current_value is None else f"{polygon.current_value}"
            print(
                f"{polygon.name:<14} {self.store.data_source_name(polygon.data_source_id):<20} "
                f"{value:>8} {polygon.color}"
            )


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Polygon weather dashboard"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--state",
        type=str,
        default=None,
        help="Path to dashboard state file"
    )
    parser.add_argument(
        "--at",
        type=str,
        default=None,
        help="Current time pointer (YYYY-MM-DDTHH, UTC). Default: now"
    )
    parser.add_argument(
        "--range",
        action="store_true",
        help="Average over the whole 30-day window instead of one hour"
    )
    parser.add_argument(
        "--polygon",
        action="append",
        default=[],
        help="Polygon to add as 'lon,lat;lon,lat;...' (repeatable)"
    )

    args = parser.parse_args()

    at = None
    if args.at:
        try:
            at = datetime.strptime(args.at, "%Y-%m-%dT%H")
        except ValueError:
            print(f"Invalid time format: {args.at}. Use YYYY-MM-DDTHH")
            sys.exit(1)

    try:
        polygons = [parse_polygon(text) for text in args.polygon]
    except ValueError as e:
        print(f"Invalid polygon: {e}")
        sys.exit(1)

    try:
        app = PolygonWeatherApp(config_file=args.config, state_file=args.state)
        app.run(polygons=polygons, at=at, range_mode=args.range)
    except Exception as e:
        print(f"Application failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
