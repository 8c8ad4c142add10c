"""
Application-wide constants for the polygon weather dashboard.

This module defines default values and constants used throughout the application.
"""

# Weather provider
DEFAULT_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
DEFAULT_FIELD = "temperature_2m"
DATE_FORMAT = "%Y-%m-%d"
HOUR_FORMAT = "%Y-%m-%dT%H:00"

# Aggregation
VALUE_PRECISION = 1  # decimal places of a polygon value

# Polygon geometry
MIN_POLYGON_VERTICES = 3
MAX_POLYGON_VERTICES = 12

# Colours
DEFAULT_COLOR = "#94a3b8"  # slate-400, no rule matched
DEFAULT_POLYGON_COLOR = "#3b82f6"  # data source without rules
DEFAULT_PALETTE = [
    "#ef4444",  # red-500
    "#3b82f6",  # blue-500
    "#22c55e",  # green-500
    "#eab308",  # yellow-500
    "#a855f7",  # purple-500
    "#f97316",  # orange-500
    "#06b6d4",  # cyan-500
    "#84cc16",  # lime-500
    "#ec4899",  # pink-500
    "#64748b",  # slate-500
]

# Timeline
WINDOW_HALF_WIDTH_DAYS = 15  # 30-day window centred on now
SINGLE_POINT_HOURS = 1

# Refresh scheduling
DEBOUNCE_SECONDS = 0.5

# Map defaults (Berlin)
DEFAULT_MAP_CENTER = (52.52, 13.41)
DEFAULT_MAP_ZOOM = 10

# Persistence
DEFAULT_STORAGE_KEY = "dashboard-store"
DEFAULT_STORAGE_PATH = "data/dashboard_state.json"
