"""
Change monitoring service.

Owns one change detector per monitored surface (browser tab, page, etc.)
and drives metrics capture for each of them.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .analyzer import ChangeDetector, MetricsInput, ThresholdInput
from .collector import MetricsCaptureError, MetricsSource
from .models import ClassificationResult, InvalidMetricsVector, MetricsVector, ThresholdConfig

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, ClassificationResult], Awaitable[None]]


class DetectorNotInitialized(KeyError):
    """Raised when a surface has no change detector yet."""

    def __init__(self, surface_id: str):
        super().__init__(surface_id)
        self.surface_id = surface_id

    def __str__(self) -> str:
        return f"Change detector not initialized for surface '{self.surface_id}'"


class ChangeMonitorService:
    """
    Service for change detection across monitored surfaces.

    Each surface gets its own ChangeDetector so that baselines never leak
    between pages. Calls for one surface must not overlap.
    """

    def __init__(
        self,
        default_thresholds: Optional[ThresholdInput] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize change monitor service.

        Args:
            default_thresholds: Thresholds applied to every new detector
                before any per-surface overrides
            clock: Clock handed to each detector
        """
        self.default_thresholds = default_thresholds
        self.clock = clock
        self._watching: Set[str] = set()
        self._detectors: Dict[str, ChangeDetector] = {}

    def init_detector(
        self, surface_id: str, thresholds: Optional[ThresholdInput] = None
    ) -> ChangeDetector:
        """
        Create the change detector for a surface.

        An existing detector for the surface is replaced, dropping its
        baseline.

        Args:
            surface_id: Identifier of the monitored surface
            thresholds: Per-surface threshold overrides

        Returns:
            The new detector
        """
        if surface_id in self._detectors:
            logger.info(f"Change detector for {surface_id} already initialized, reinitializing")

        detector = ChangeDetector(thresholds=self.default_thresholds, clock=self.clock)
        if thresholds is not None:
            detector.update_thresholds(thresholds)

        self._detectors[surface_id] = detector
        logger.info(f"Change detector initialized for {surface_id}")
        return detector

    def get_detector(self, surface_id: str) -> ChangeDetector:
        detector = self._detectors.get(surface_id)
        if detector is None:
            raise DetectorNotInitialized(surface_id)
        return detector

    def has_detector(self, surface_id: str) -> bool:
        return surface_id in self._detectors

    def remove_detector(self, surface_id: str) -> bool:
        """Drop a surface's detector. Returns True if one existed."""
        removed = self._detectors.pop(surface_id, None) is not None
        if removed:
            logger.info(f"Change detector removed for {surface_id}")
        return removed

    def surfaces(self) -> List[str]:
        return sorted(self._detectors)

    def classify(self, surface_id: str, metrics: MetricsInput) -> ClassificationResult:
        """
        Classify metrics already captured by the caller.

        Raises:
            DetectorNotInitialized: if the surface has no detector
            InvalidMetricsVector: if the metrics are malformed
        """
        return self.get_detector(surface_id).classify(metrics)

    async def detect_changes(
        self, surface_id: str, source: MetricsSource
    ) -> ClassificationResult:
        """
        Capture metrics from a source and classify them.

        The detector is looked up before capturing, so an uninitialized
        surface never triggers a capture.

        Args:
            surface_id: Identifier of the monitored surface
            source: Metrics source for the surface

        Returns:
            Classification result

        Raises:
            DetectorNotInitialized: if the surface has no detector
            MetricsCaptureError: if the source fails
        """
        detector = self.get_detector(surface_id)
        metrics = await source.capture_metrics()
        return detector.classify(metrics)

    def reset_baseline(self, surface_id: str) -> Optional[MetricsVector]:
        return self.get_detector(surface_id).reset_baseline()

    def update_thresholds(self, surface_id: str, partial: ThresholdInput) -> ThresholdConfig:
        return self.get_detector(surface_id).update_thresholds(partial)

    @property
    def running(self) -> bool:
        """True while any surface is being watched."""
        return bool(self._watching)

    def is_watching(self, surface_id: str) -> bool:
        return surface_id in self._watching

    async def watch(
        self,
        surface_id: str,
        source: MetricsSource,
        interval_seconds: float = 5.0,
        max_iterations: Optional[int] = None,
        on_change: Optional[ChangeCallback] = None,
    ) -> List[ClassificationResult]:
        """
        Poll a surface until stopped.

        Capture failures and malformed payloads are logged and the loop
        carries on with the next iteration.

        Args:
            surface_id: Identifier of the monitored surface
            source: Metrics source for the surface
            interval_seconds: Delay between captures
            max_iterations: Stop after this many iterations (None: run until stop())
            on_change: Awaited for every result that reports a change

        Returns:
            Results that reported a change
        """
        detector = self.get_detector(surface_id)
        changes: List[ClassificationResult] = []

        self._watching.add(surface_id)
        logger.info(f"Starting change watch for {surface_id} (interval: {interval_seconds}s)")

        iteration = 0
        try:
            while surface_id in self._watching:
                iteration += 1
                logger.debug(f"Change watch iteration {iteration} for {surface_id}")

                try:
                    metrics = await source.capture_metrics()
                except (MetricsCaptureError, InvalidMetricsVector) as e:
                    logger.error(f"Error capturing metrics for {surface_id}: {e}", exc_info=True)
                else:
                    result = detector.classify(metrics)
                    if result.changed:
                        changes.append(result)
                        if on_change is not None:
                            await on_change(surface_id, result)

                if max_iterations is not None and iteration >= max_iterations:
                    break

                await asyncio.sleep(interval_seconds)
        finally:
            self._watching.discard(surface_id)

        logger.info(f"Change watch for {surface_id} finished: {len(changes)} change(s) detected")
        return changes

    def stop(self, surface_id: Optional[str] = None) -> None:
        """
        Stop watch loops.

        Args:
            surface_id: Surface whose watch should end (None: stop every watch)
        """
        if surface_id is None:
            logger.info("Stopping all change watches")
            self._watching.clear()
        else:
            logger.info(f"Stopping change watch for {surface_id}")
            self._watching.discard(surface_id)
