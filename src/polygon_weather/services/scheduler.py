"""
Refresh scheduling.

Listens to store changes and starts polygon refreshes: immediately when the
polygons, data sources, time window or range mode change, and once more
after a debounce delay when the time pointer or range mode change, so that
dragging the timeline slider results in one refresh for the final position.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

from . import store as state
from .refresh import PolygonRefresher
from .store import DashboardStore, StateChange
from ..core import constants

IMMEDIATE_KINDS = frozenset({
    state.POLYGONS,
    state.DATA_SOURCES,
    state.TIME_WINDOW,
    state.RANGE_MODE,
    state.RESTORED,
})
DEBOUNCED_KINDS = frozenset({state.TIME_WINDOW, state.RANGE_MODE})


class RefreshScheduler:
    """Trigger polygon refreshes from store changes."""

    def __init__(
        self,
        store: DashboardStore,
        refresher: PolygonRefresher,
        debounce_seconds: float = constants.DEBOUNCE_SECONDS,
        immediate: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize refresh scheduler.

        Args:
            store: Dashboard store to watch
            refresher: Refresher run on each trigger
            debounce_seconds: Delay before the debounced refresh fires
            immediate: Also refresh right away on every relevant change
            logger: Logger instance
        """
        self.store = store
        self.refresher = refresher
        self.debounce_seconds = debounce_seconds
        self.immediate = immediate
        self.logger = logger or logging.getLogger(__name__)

        self.debounced_runs = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        """
        Start watching the store.

        Must be called from a running event loop.
        """
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.store.subscribe(self._on_change)

    def _on_change(self, change: StateChange) -> None:
        if self.immediate and change.kind in IMMEDIATE_KINDS:
            self.trigger()
        if change.kind in DEBOUNCED_KINDS:
            self.schedule()

    def trigger(self) -> asyncio.Task:
        """Start a refresh now."""
        if self._loop is None:
            raise RuntimeError("Scheduler not started. Call start() first.")
        task = self._loop.create_task(self.refresher.refresh_store())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def schedule(self) -> None:
        """Start a refresh after the debounce delay, superseding a pending one."""
        if self._loop is None:
            raise RuntimeError("Scheduler not started. Call start() first.")
        if self._pending is not None:
            self._pending.cancel()
            self.logger.debug("Debounced refresh superseded")
        self._pending = self._loop.call_later(self.debounce_seconds, self._fire)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def _fire(self) -> None:
        self._pending = None
        self.debounced_runs += 1
        self.trigger()

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(f"Refresh failed: {exc}", exc_info=exc)

    async def flush(self) -> None:
        """Wait for every refresh started so far, including ones they trigger."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel the pending debounced refresh and stop watching the store."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
