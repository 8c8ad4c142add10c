"""
API layer for the historical weather archive.

Provides the low-level HTTP client and archive time series queries.
"""

from .client import APIClient
from .archive import ArchiveAPI

__all__ = [
    "APIClient",
    "ArchiveAPI",
]
