"""
Application services for the polygon weather dashboard.

Services own the dashboard state and orchestrate refreshes on top of the
API and processing layers.
"""

from .persistence import StateStorage
from .store import DashboardStore, DashboardSnapshot, StateChange
from .refresh import PolygonRefresher, RefreshSummary
from .scheduler import RefreshScheduler
from .events import EventDispatcher

__all__ = [
    "StateStorage",
    "DashboardStore",
    "DashboardSnapshot",
    "StateChange",
    "PolygonRefresher",
    "RefreshSummary",
    "RefreshScheduler",
    "EventDispatcher",
]
