"""
Polygon weather aggregation.

Reduces the archive time series at a polygon's centroid to one value.
"""

import logging
import math
import statistics
from datetime import datetime
from typing import List, Optional, Sequence, TYPE_CHECKING

from .geometry import centroid
from ..core import constants, DateUtils
from ..models import Vertex, WeatherSample

if TYPE_CHECKING:
    from ..api import ArchiveAPI


def round_half_away(value: float, digits: int = constants.VALUE_PRECISION) -> float:
    """Round to `digits` decimals with halves away from zero (2.25 -> 2.3, -2.25 -> -2.3)."""
    factor = 10 ** digits
    # + 0.0 turns -0.0 into 0.0
    return math.copysign(math.floor(abs(value) * factor + 0.5), value) / factor + 0.0


class WeatherAggregator:
    """Compute one representative value per polygon and time range."""

    def __init__(
        self,
        api_client: "ArchiveAPI",
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize weather aggregator.

        Args:
            api_client: Archive API client
            logger: Logger instance
        """
        self.api_client = api_client
        self.logger = logger or logging.getLogger(__name__)

    def aggregate(
        self,
        vertices: Sequence[Vertex],
        start_date: datetime,
        end_date: datetime,
        field: str = constants.DEFAULT_FIELD
    ) -> float:
        """
        Get the mean archive value at the polygon centroid.

        Args:
            vertices: Polygon ring as (longitude, latitude) pairs
            start_date: Range start (sent at day granularity)
            end_date: Range end (sent at day granularity)
            field: Archive field

        Returns:
            Mean of all returned samples rounded to one decimal, 0 when the
            archive returns no samples

        Raises:
            requests.exceptions.RequestException: On fetch failure
            ValueError: On a malformed response or empty vertex list
        """
        longitude, latitude = centroid(vertices)
        samples = self.api_client.fetch_weather_data(
            latitude=latitude,
            longitude=longitude,
            start_date=start_date,
            end_date=end_date,
            field=field
        )
        return self.mean_value(samples)

    def mean_value(self, samples: Sequence[WeatherSample]) -> float:
        """Average sample values, rounded; 0 for no samples."""
        if not samples:
            self.logger.debug("No samples returned, using 0")
            return 0
        average = statistics.mean(sample.value for sample in samples)
        return round_half_away(average)

    def current_hour_value(
        self,
        samples: Sequence[WeatherSample],
        target: datetime
    ) -> float:
        """
        Get the sample at the hour containing the target time.

        Returns:
            Sample value, or 0 when the hour is not in the series
        """
        key = DateUtils.hour_key(target)
        for sample in samples:
            if sample.timestamp == key:
                return sample.value
        return 0

    def average_in_range(
        self,
        samples: Sequence[WeatherSample],
        start_date: datetime,
        end_date: datetime
    ) -> float:
        """
        Average the samples whose timestamp lies within [start_date, end_date].

        Returns:
            Rounded mean, or 0 when no sample lies in the range
        """
        start_utc = DateUtils.to_utc(start_date)
        end_utc = DateUtils.to_utc(end_date)
        in_range: List[WeatherSample] = [
            sample for sample in samples
            if start_utc <= DateUtils.parse_timestamp(sample.timestamp) <= end_utc
        ]
        return self.mean_value(in_range)
