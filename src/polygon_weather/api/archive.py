"""
Historical weather archive operations.

Retrieves hourly time series for a coordinate from the Open-Meteo archive.
Response shape:

    {
        "latitude": 52.52,
        "longitude": 13.41,
        "hourly_units": {"time": "iso8601", "temperature_2m": "°C"},
        "hourly": {
            "time": ["2024-01-01T00:00", ...],
            "temperature_2m": [1.2, ...]
        }
    }
"""

import logging
from datetime import datetime
from typing import List, Dict, Any, Optional

from .client import APIClient
from ..core import constants, DateUtils
from ..models import WeatherSample


class ArchiveAPI(APIClient):
    """Hourly archive queries."""

    def __init__(
        self,
        base_url: str = constants.DEFAULT_ARCHIVE_URL,
        timeout: int = 30,
        max_retries: int = 0,
        verify_ssl: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            verify_ssl=verify_ssl,
            logger=logger
        )

    def get_hourly(
        self,
        latitude: float,
        longitude: float,
        start_date: datetime,
        end_date: datetime,
        field: str = constants.DEFAULT_FIELD
    ) -> Dict[str, Any]:
        """
        Get raw hourly archive data for a coordinate.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees
            start_date: Start of the range (only the UTC day is sent)
            end_date: End of the range (only the UTC day is sent)
            field: Archive field, e.g. 'temperature_2m'

        Returns:
            Decoded response body
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "start_date": DateUtils.format_request_date(start_date),
            "end_date": DateUtils.format_request_date(end_date),
            "hourly": field,
        }
        self.logger.debug(
            f"Fetching {field} at ({latitude:.4f}, {longitude:.4f}) "
            f"from {params['start_date']} to {params['end_date']}"
        )
        return self.get(params=params)

    def fetch_weather_data(
        self,
        latitude: float,
        longitude: float,
        start_date: datetime,
        end_date: datetime,
        field: str = constants.DEFAULT_FIELD
    ) -> List[WeatherSample]:
        """
        Fetch hourly samples for a coordinate.

        Returns:
            List of samples in archive order

        Raises:
            requests.exceptions.RequestException: On network failure or non-2xx status
            ValueError: If the response body is malformed
        """
        data = self.get_hourly(latitude, longitude, start_date, end_date, field)
        samples = self.transform_response(data, field)
        self.logger.debug(f"Retrieved {len(samples)} samples")
        return samples

    @staticmethod
    def transform_response(data: Any, field: str) -> List[WeatherSample]:
        """
        Convert an archive body into samples.

        Missing values (null) are read as 0.

        Raises:
            ValueError: If the body lacks the hourly arrays or they differ in length
        """
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected archive response type: {type(data).__name__}")

        hourly = data.get("hourly")
        if not isinstance(hourly, dict):
            raise ValueError("Archive response has no 'hourly' section")

        times = hourly.get("time")
        values = hourly.get(field)
        if not isinstance(times, list) or not isinstance(values, list):
            raise ValueError(f"Archive response has no hourly 'time' or '{field}' array")
        if len(times) != len(values):
            raise ValueError(
                f"Archive arrays differ in length: {len(times)} times, {len(values)} values"
            )

        latitude = data.get("latitude")
        longitude = data.get("longitude")
        return [
            WeatherSample(
                timestamp=timestamp,
                value=value if value is not None else 0,
                latitude=latitude,
                longitude=longitude,
            )
            for timestamp, value in zip(times, values)
        ]
