"""
Date and timezone utilities.

Centralizes all date/time operations with proper timezone handling.
The weather archive works in UTC, so every datetime is normalized to UTC
before it is formatted for a request or compared with a sample timestamp.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple
import pytz

from . import constants


class DateUtils:
    """Utilities for date and timezone handling."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize date utilities.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def now() -> datetime:
        """Current time in UTC (timezone-aware)."""
        return datetime.now(pytz.UTC)

    @staticmethod
    def to_utc(dt: datetime) -> datetime:
        """
        Convert datetime to UTC.

        Args:
            dt: Datetime object (can be naive or aware)

        Returns:
            Datetime in UTC (timezone-aware)
        """
        if dt.tzinfo is None:
            # Assume UTC if no timezone
            return pytz.UTC.localize(dt)
        return dt.astimezone(pytz.UTC)

    @classmethod
    def format_request_date(cls, dt: datetime) -> str:
        """
        Format a datetime as the day the archive expects (YYYY-MM-DD).

        Sub-day precision is dropped.
        """
        return cls.to_utc(dt).strftime(constants.DATE_FORMAT)

    @classmethod
    def hour_key(cls, dt: datetime) -> str:
        """Format a datetime as an archive hourly timestamp (YYYY-MM-DDTHH:00)."""
        return cls.to_utc(dt).strftime(constants.HOUR_FORMAT)

    @staticmethod
    def parse_timestamp(value: str) -> datetime:
        """
        Parse an archive timestamp into an aware UTC datetime.

        Args:
            value: ISO timestamp, e.g. '2024-01-15T13:00'

        Returns:
            Timezone-aware datetime

        Raises:
            ValueError: If the timestamp cannot be parsed
        """
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            return pytz.UTC.localize(parsed)
        return parsed.astimezone(pytz.UTC)

    def default_window(
        self,
        reference_time: Optional[datetime] = None
    ) -> Tuple[datetime, datetime, datetime]:
        """
        Get the default timeline window centred on the reference time.

        Args:
            reference_time: Reference time (defaults to now in UTC)

        Returns:
            Tuple of (start, end, current), all timezone-aware
        """
        current = self.to_utc(reference_time) if reference_time else self.now()
        half_width = timedelta(days=constants.WINDOW_HALF_WIDTH_DAYS)

        start = current - half_width
        end = current + half_width
        self.logger.debug(
            f"Default window: {start.isoformat()} to {end.isoformat()}"
        )
        return start, end, current

    @staticmethod
    def single_point_range(current: datetime) -> Tuple[datetime, datetime]:
        """Get the one-hour query range starting at the current time pointer."""
        return current, current + timedelta(hours=constants.SINGLE_POINT_HOURS)
