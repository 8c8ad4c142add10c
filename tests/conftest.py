"""
Pytest configuration and shared fixtures for all tests.
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest
import json
import pytz

# Add the project root to sys.path so we can import from src
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture(scope="session")
def fixtures_dir():
    """Get the fixtures directory path."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def archive_response(fixtures_dir):
    """Load a sample archive response from fixtures."""
    with open(fixtures_dir / "archive_response.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def reference_time():
    """Fixed 'now' for timeline tests."""
    return pytz.UTC.localize(datetime(2024, 6, 15, 12, 0, 0))


@pytest.fixture
def square():
    """Square polygon around Berlin."""
    return [(13.0, 52.0), (14.0, 52.0), (14.0, 53.0), (13.0, 53.0)]


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring API access"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
