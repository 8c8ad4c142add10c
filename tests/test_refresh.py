"""
Tests for polygon refresh orchestration.

Async code is driven with asyncio.run; the aggregator is a test double.
"""

import asyncio
import threading
from dataclasses import replace
from datetime import timedelta
from unittest.mock import Mock

import pytest
import requests  # type: ignore

from src.polygon_weather.models import ColorRule, DataSource, TimeWindow
from src.polygon_weather.processing import WeatherAggregator
from src.polygon_weather.services import DashboardStore, PolygonRefresher, StateStorage
from src.polygon_weather.services import store as state

RULES = (
    ColorRule("<", 10, "blue", "Cold"),
    ColorRule("<", 25, "green", "Mild"),
    ColorRule(">=", 25, "red", "Hot"),
)


@pytest.fixture
def store(reference_time):
    store = DashboardStore(reference_time=reference_time, logger=Mock())
    store.update_data_source("open-meteo-temperature", rules=RULES)
    return store


@pytest.fixture
def loading_changes(store):
    received = []
    store.subscribe(
        lambda change: received.append(change.snapshot.loading) if change.kind == state.LOADING else None
    )
    return received


@pytest.fixture
def aggregator():
    return Mock(spec=WeatherAggregator)


@pytest.fixture
def refresher(store, aggregator):
    return PolygonRefresher(store, aggregator, logger=Mock())


def add_two_polygons(store):
    first = store.add_polygon(
        [(13.0, 52.0), (14.0, 52.0), (14.0, 53.0)], "open-meteo-temperature", "#000001", name="North"
    )
    second = store.add_polygon(
        [(2.0, 48.0), (3.0, 48.0), (3.0, 49.0)], "open-meteo-temperature", "#000002", name="Paris"
    )
    return first, second


class TestRefreshAll:
    """Test one refresh batch."""

    def test_updates_value_and_color(self, store, aggregator, refresher):
        """Test that each polygon gets its value and matching colour."""
        first, second = add_two_polygons(store)
        values = {first.vertices: 27.0, second.vertices: 4.5}
        aggregator.aggregate.side_effect = lambda vertices, start, end, field: values[vertices]

        summary = asyncio.run(refresher.refresh_store())

        snapshot = store.snapshot()
        assert snapshot.get_polygon(first.id).current_value == 27.0
        assert snapshot.get_polygon(first.id).color == "red"
        assert snapshot.get_polygon(second.id).current_value == 4.5
        assert snapshot.get_polygon(second.id).color == "blue"
        assert sorted(summary.updated) == sorted([first.id, second.id])

    def test_single_hour_query(self, store, aggregator, refresher, reference_time):
        """Test that range mode off queries [current, current + 1h] for each polygon."""
        first, second = add_two_polygons(store)
        aggregator.aggregate.return_value = 12.0

        asyncio.run(refresher.refresh_store())

        assert aggregator.aggregate.call_count == 2
        for call in aggregator.aggregate.call_args_list:
            vertices, start, end, field = call.args
            assert start == reference_time
            assert end == reference_time + timedelta(hours=1)
            assert field == "temperature_2m"
        queried = {call.args[0] for call in aggregator.aggregate.call_args_list}
        assert queried == {first.vertices, second.vertices}

    def test_range_query(self, store, aggregator, refresher, reference_time):
        """Test that range mode queries the whole window."""
        add_two_polygons(store)
        store.set_range_mode(True)
        aggregator.aggregate.return_value = 12.0

        asyncio.run(refresher.refresh_store())

        vertices, start, end, field = aggregator.aggregate.call_args.args
        assert start == reference_time - timedelta(days=15)
        assert end == reference_time + timedelta(days=15)

    def test_partial_failure_keeps_previous_state(self, store, aggregator, refresher, loading_changes):
        """Test that a failed polygon keeps its old value and colour while the other updates."""
        first, second = add_two_polygons(store)
        store.update_polygon_value(first.id, 8.0)

        def aggregate(vertices, start, end, field):
            if vertices == first.vertices:
                raise requests.exceptions.ConnectionError("archive unreachable")
            return 30.0

        aggregator.aggregate.side_effect = aggregate

        summary = asyncio.run(refresher.refresh_store())

        snapshot = store.snapshot()
        assert snapshot.get_polygon(first.id).current_value == 8.0
        assert snapshot.get_polygon(first.id).color == "#000001"
        assert snapshot.get_polygon(second.id).current_value == 30.0
        assert snapshot.get_polygon(second.id).color == "red"
        assert summary.failed == [first.id]
        assert summary.updated == [second.id]
        assert loading_changes == [True, False]
        assert snapshot.loading is False

    def test_all_fail_still_clears_loading(self, store, aggregator, refresher, loading_changes):
        add_two_polygons(store)
        aggregator.aggregate.side_effect = ValueError("malformed")

        summary = asyncio.run(refresher.refresh_store())

        assert len(summary.failed) == 2
        assert loading_changes == [True, False]

    def test_missing_data_source_skipped(self, store, aggregator, refresher):
        """Test that a polygon of a deleted data source is left alone."""
        orphan = store.add_polygon([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)], "deleted", "#abcdef")
        aggregator.aggregate.return_value = 20.0

        summary = asyncio.run(refresher.refresh_store())

        assert summary.skipped == [orphan.id]
        aggregator.aggregate.assert_not_called()
        assert store.snapshot().get_polygon(orphan.id).current_value is None

    def test_no_polygons(self, store, aggregator, refresher, loading_changes):
        """Test that an empty dashboard does nothing."""
        summary = asyncio.run(refresher.refresh_store())

        assert summary.total == 0
        aggregator.aggregate.assert_not_called()
        assert loading_changes == []

    def test_explicit_arguments(self, store, aggregator, refresher, reference_time):
        """Test refresh_all with state passed in rather than read from the store."""
        first, _ = add_two_polygons(store)
        source = DataSource("custom", "Custom", "precipitation", (ColorRule(">", 0, "wet"),))
        polygon = store.snapshot().get_polygon(first.id)
        polygon = replace(polygon, data_source_id="custom")
        window = TimeWindow(reference_time, reference_time, reference_time)
        aggregator.aggregate.return_value = 1.2

        summary = asyncio.run(refresher.refresh_all([polygon], [source], window, False))

        assert summary.updated == [first.id]
        assert aggregator.aggregate.call_args.args[3] == "precipitation"
        assert store.snapshot().get_polygon(first.id).color == "wet"


class BlockingAggregator:
    """First call blocks until released and returns 10; later calls return 30."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self._lock = threading.Lock()
        self._calls = 0

    def aggregate(self, vertices, start, end, field):
        with self._lock:
            self._calls += 1
            call = self._calls
        if call == 1:
            self.started.set()
            self.release.wait(5)
            return 10.0
        return 30.0


def run_overlapping_batches(refresher):
    aggregator = refresher.aggregator

    async def scenario():
        slow = asyncio.create_task(refresher.refresh_store())
        while not aggregator.started.is_set():
            await asyncio.sleep(0.01)
        fast_summary = await refresher.refresh_store()
        aggregator.release.set()
        slow_summary = await slow
        return slow_summary, fast_summary

    return asyncio.run(scenario())


class TestOverlappingBatches:
    """Test a slow older batch finishing after a newer one."""

    def test_stale_result_discarded(self, store):
        polygon = store.add_polygon([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)], "open-meteo-temperature", "#000000")
        refresher = PolygonRefresher(store, BlockingAggregator(), logger=Mock())

        slow_summary, fast_summary = run_overlapping_batches(refresher)

        assert fast_summary.updated == [polygon.id]
        assert slow_summary.stale == [polygon.id]
        snapshot = store.snapshot()
        assert snapshot.get_polygon(polygon.id).current_value == 30.0
        assert snapshot.get_polygon(polygon.id).color == "red"
        assert snapshot.loading is False

    def test_last_write_wins_when_guard_disabled(self, store):
        polygon = store.add_polygon([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)], "open-meteo-temperature", "#000000")
        refresher = PolygonRefresher(
            store, BlockingAggregator(), discard_stale_responses=False, logger=Mock()
        )

        slow_summary, _ = run_overlapping_batches(refresher)

        assert slow_summary.updated == [polygon.id]
        assert store.snapshot().get_polygon(polygon.id).current_value == 10.0
        assert store.snapshot().get_polygon(polygon.id).color == "green"

    def test_loading_cleared_after_last_batch(self, store):
        store.add_polygon([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)], "open-meteo-temperature", "#000000")
        flags = []
        store.subscribe(lambda c: flags.append(c.snapshot.loading) if c.kind == state.LOADING else None)
        refresher = PolygonRefresher(store, BlockingAggregator(), logger=Mock())

        run_overlapping_batches(refresher)

        assert flags == [True, True, False]


class SlowFirstAggregator:
    """Blocks on the given vertices until released; every call returns 12."""

    def __init__(self, slow_vertices):
        self.slow_vertices = slow_vertices
        self.started = threading.Event()
        self.release = threading.Event()

    def aggregate(self, vertices, start, end, field):
        if vertices == self.slow_vertices:
            self.started.set()
            self.release.wait(5)
        return 12.0


class TestStorageFailures:
    """Test that write failures do not break a batch."""

    def test_failed_save_settles_batch(self, reference_time):
        """Test a disk error while a sibling polygon is still in flight."""
        storage = Mock(spec=StateStorage)
        storage.load.return_value = None
        storage.save.side_effect = OSError("disk full")
        store = DashboardStore(storage=storage, reference_time=reference_time, logger=Mock())
        store.update_data_source("open-meteo-temperature", rules=RULES)
        slow, fast = add_two_polygons(store)
        aggregator = SlowFirstAggregator(slow.vertices)
        refresher = PolygonRefresher(store, aggregator, logger=Mock())
        settled_when_cleared = []
        store.subscribe(
            lambda c: settled_when_cleared.append(c.snapshot.get_polygon(slow.id).current_value)
            if c.kind == state.LOADING and not c.snapshot.loading else None
        )

        async def scenario():
            batch = asyncio.create_task(refresher.refresh_store())
            while store.snapshot().get_polygon(fast.id).current_value is None:
                await asyncio.sleep(0.01)
            loading_while_in_flight = store.snapshot().loading
            aggregator.release.set()
            return loading_while_in_flight, await batch

        loading_while_in_flight, summary = asyncio.run(scenario())

        assert loading_while_in_flight is True
        assert settled_when_cleared == [12.0]
        assert sorted(summary.updated) == sorted([slow.id, fast.id])
        snapshot = store.snapshot()
        for polygon_id in (slow.id, fast.id):
            assert snapshot.get_polygon(polygon_id).current_value == 12.0
            assert snapshot.get_polygon(polygon_id).color == "green"
        assert snapshot.loading is False

    def test_failed_store_write_marks_polygon_failed(self, store, aggregator, refresher, loading_changes):
        """Test that an error writing one result leaves that polygon untouched."""
        first, second = add_two_polygons(store)
        aggregator.aggregate.return_value = 12.0
        write = store.update_polygon_result

        def update_polygon_result(polygon_id, value, color):
            if polygon_id == first.id:
                raise RuntimeError("subscriber failed")
            return write(polygon_id, value, color)

        store.update_polygon_result = update_polygon_result

        summary = asyncio.run(refresher.refresh_store())

        assert summary.failed == [first.id]
        assert summary.updated == [second.id]
        snapshot = store.snapshot()
        assert snapshot.get_polygon(first.id).current_value is None
        assert snapshot.get_polygon(first.id).color == "#000001"
        assert snapshot.get_polygon(second.id).color == "green"
        assert loading_changes == [True, False]


class TestRequestCounters:
    """Test bookkeeping of per-polygon request counters."""

    def test_deleted_polygons_forgotten(self, store, aggregator, refresher):
        first, second = add_two_polygons(store)
        aggregator.aggregate.return_value = 12.0
        asyncio.run(refresher.refresh_store())

        store.remove_polygon(first.id)
        asyncio.run(refresher.refresh_store())

        assert set(refresher._generations) == {second.id}
