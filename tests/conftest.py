"""
Shared fixtures for UI Watch tests.
"""

import pytest

from uiwatch.change_monitor.models import MetricsVector

BASE_METRICS = {
    "elements": 100,
    "visible_elements": 40,
    "dialogs": 0,
    "overlays": 0,
    "forms": 1,
    "inputs": 3,
    "buttons": 5,
    "links": 20,
    "max_z_index": 10,
    "fixed_elements": 1,
    "absolute_elements": 2,
    "viewport_height": 1000.0,
    "url": "https://example.com/",
}


def build_metrics(**overrides) -> MetricsVector:
    return MetricsVector(**{**BASE_METRICS, **overrides})


@pytest.fixture
def make_metrics():
    """Factory for metrics vectors that differ from a fixed page in a few fields."""
    return build_metrics


@pytest.fixture
def fixed_clock():
    """Clock frozen at 2025-01-15T10:30:00Z."""
    return lambda: 1736937000.0
