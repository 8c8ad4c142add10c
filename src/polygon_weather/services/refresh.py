"""
Polygon refresh orchestration.

For every polygon: resolve its data source, aggregate archive data at its
centroid over the selected range, classify the value and write value and
colour back to the store. Polygons are refreshed concurrently; archive calls
run in worker threads while all store writes stay on the event loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .store import DashboardStore
from ..core import LoggerContext
from ..models import DataSource, Polygon, TimeWindow
from ..processing import WeatherAggregator, classify


@dataclass
class RefreshSummary:
    """Outcome of one refresh batch, by polygon id."""

    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    stale: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.updated) + len(self.skipped) + len(self.failed) + len(self.stale)


class PolygonRefresher:
    """Recompute polygon values and colours from the weather archive."""

    def __init__(
        self,
        store: DashboardStore,
        aggregator: WeatherAggregator,
        discard_stale_responses: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize polygon refresher.

        Args:
            store: Dashboard store receiving the results
            aggregator: Weather aggregator
            discard_stale_responses: Drop a result when a newer request for the
                same polygon was issued while it was in flight
            logger: Logger instance
        """
        self.store = store
        self.aggregator = aggregator
        self.discard_stale_responses = discard_stale_responses
        self.logger = logger or logging.getLogger(__name__)
        self._generations: Dict[str, int] = {}
        self._active_batches = 0

    async def refresh_store(self) -> RefreshSummary:
        """Refresh every polygon using the store's current state."""
        snapshot = self.store.snapshot()
        return await self.refresh_all(
            snapshot.polygons,
            snapshot.data_sources,
            snapshot.time_window,
            snapshot.is_range_mode
        )

    async def refresh_all(
        self,
        polygons: Sequence[Polygon],
        data_sources: Sequence[DataSource],
        window: TimeWindow,
        is_range_mode: bool
    ) -> RefreshSummary:
        """
        Refresh all polygons concurrently.

        A failed polygon keeps its previous value and colour; it never stops
        the others. The loading flag is raised for the duration of the batch.

        Args:
            polygons: Polygons to refresh
            data_sources: Known data sources
            window: Timeline window
            is_range_mode: Aggregate over the whole window instead of the current hour

        Returns:
            Summary of the batch
        """
        summary = RefreshSummary()
        if not polygons:
            return summary

        by_id = {data_source.id: data_source for data_source in data_sources}
        self._prune_generations(polygon.id for polygon in polygons)

        self._active_batches += 1
        self.store.set_loading(True)
        try:
            with LoggerContext(self.logger, f"refresh of {len(polygons)} polygons"):
                results = await asyncio.gather(*(
                    self._refresh_polygon(polygon, by_id, window, is_range_mode, summary)
                    for polygon in polygons
                ), return_exceptions=True)
            for polygon, result in zip(polygons, results):
                if isinstance(result, Exception):
                    self.logger.error(f"Refresh of polygon {polygon.id} aborted: {result}")
                    summary.failed.append(polygon.id)
        finally:
            self._active_batches -= 1
            # Overlapping batches share one flag
            if self._active_batches == 0:
                self.store.set_loading(False)

        self.logger.info(
            f"Refresh summary: {len(summary.updated)} updated, {len(summary.skipped)} skipped, "
            f"{len(summary.failed)} failed, {len(summary.stale)} stale"
        )
        return summary

    async def _refresh_polygon(
        self,
        polygon: Polygon,
        data_sources: Dict[str, DataSource],
        window: TimeWindow,
        is_range_mode: bool,
        summary: RefreshSummary
    ) -> None:
        data_source = data_sources.get(polygon.data_source_id)
        if data_source is None:
            self.logger.debug(
                f"Skipping polygon {polygon.id}: unknown data source {polygon.data_source_id}"
            )
            summary.skipped.append(polygon.id)
            return

        start, end = window.query_range(is_range_mode)
        generation = self._generations.get(polygon.id, 0) + 1
        self._generations[polygon.id] = generation

        try:
            value = await asyncio.to_thread(
                self.aggregator.aggregate,
                polygon.vertices,
                start,
                end,
                data_source.field
            )
        except Exception as e:
            self.logger.error(f"Error updating polygon {polygon.id}: {e}")
            summary.failed.append(polygon.id)
            return

        if self.discard_stale_responses and self._generations.get(polygon.id) != generation:
            self.logger.debug(f"Discarding superseded result for polygon {polygon.id}")
            summary.stale.append(polygon.id)
            return

        color = classify(value, data_source.rules)
        try:
            self.store.update_polygon_result(polygon.id, value, color)
        except Exception as e:
            self.logger.error(f"Error storing result for polygon {polygon.id}: {e}")
            summary.failed.append(polygon.id)
            return
        self.logger.debug(f"Polygon {polygon.id}: {value} -> {color}")
        summary.updated.append(polygon.id)

    def _prune_generations(self, polygon_ids: Iterable[str]) -> None:
        """Forget request counters of polygons that are no longer refreshed."""
        keep = set(polygon_ids)
        for polygon_id in list(self._generations):
            if polygon_id not in keep:
                del self._generations[polygon_id]
