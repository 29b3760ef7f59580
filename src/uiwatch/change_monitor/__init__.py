"""
Change monitoring module for detecting structural page changes.

Tracks what changed on a monitored page between observations (dialogs,
overlays, forms, element counts, stacking, viewport) and recommends
follow-up captures.
"""

from .analyzer import ChangeDetector
from .collector import MetricsCaptureError, PageMetricsCollector, StaticMetricsSource
from .models import (
    ChangeLevel,
    ClassificationResult,
    InvalidMetricsVector,
    MetricsVector,
    PartialThresholdConfig,
    ThresholdConfig,
)
from .service import ChangeMonitorService, DetectorNotInitialized

__all__ = [
    "ChangeDetector",
    "ChangeLevel",
    "ChangeMonitorService",
    "ClassificationResult",
    "DetectorNotInitialized",
    "InvalidMetricsVector",
    "MetricsCaptureError",
    "MetricsVector",
    "PageMetricsCollector",
    "PartialThresholdConfig",
    "StaticMetricsSource",
    "ThresholdConfig",
]
