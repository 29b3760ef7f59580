"""
Change analysis and detection.
"""

import logging
import re
import time
from collections.abc import Mapping
from typing import Any, Callable, List, Optional, Union

from .models import (
    ChangeDeltas,
    ChangeLevel,
    ClassificationMetrics,
    ClassificationResult,
    MetricsVector,
    PartialThresholdConfig,
    PercentChange,
    ThresholdConfig,
)

logger = logging.getLogger(__name__)

BASELINE_FILENAME = "baseline_set.png"
NO_CHANGE_FILENAME = "no_change.png"

# Major reason fragments that also warrant a structural snapshot
SNAPSHOT_MARKERS = ("dialog", "overlay", "URL changed", "Form count changed")

MetricsInput = Union[MetricsVector, Mapping[str, Any]]
ThresholdInput = Union[ThresholdConfig, PartialThresholdConfig, Mapping[str, Any]]


def _percent(delta: float, base: float) -> float:
    return (delta / (base or 1)) * 100


class ChangeDetector:
    """
    Classifies structural page changes against a sliding baseline.

    The detector keeps the last classified metrics vector as its baseline.
    Every call after the first compares against that baseline and then
    replaces it, whatever the outcome.

    One detector per monitored surface. A single instance must not be
    shared by overlapping callers, since each call replaces the baseline
    the next one compares against.
    """

    def __init__(
        self,
        thresholds: Optional[ThresholdInput] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the detector.

        Args:
            thresholds: Full or partial threshold configuration. Partial
                configurations are merged onto the defaults.
            clock: Returns seconds since the epoch; used for filenames
        """
        self._thresholds = ThresholdConfig()
        self._baseline: Optional[MetricsVector] = None
        self._clock = clock

        if thresholds is not None:
            self.update_thresholds(thresholds)

        logger.info("Change detector initialized")

    @property
    def baseline(self) -> Optional[MetricsVector]:
        return self._baseline

    @property
    def has_baseline(self) -> bool:
        return self._baseline is not None

    @property
    def thresholds(self) -> ThresholdConfig:
        return self._thresholds.model_copy(deep=True)

    def classify(self, current: MetricsInput) -> ClassificationResult:
        """
        Compare a metrics vector with the baseline and classify the change.

        Args:
            current: Metrics vector, or a raw payload to validate

        Returns:
            Classification result with recommendations

        Raises:
            InvalidMetricsVector: if a raw payload is malformed
        """
        if not isinstance(current, MetricsVector):
            current = MetricsVector.from_raw(current)

        logger.info("Starting change detection")

        if self._baseline is None:
            self._baseline = current
            logger.info("Baseline set for first time")
            return ClassificationResult(
                changed=False,
                level=ChangeLevel.NONE,
                reason="Baseline initialized",
                suggested_filename=BASELINE_FILENAME,
                metrics=ClassificationMetrics(current=current, baseline=current),
            )

        baseline = self._baseline
        delta = self._compute_deltas(baseline, current)
        percent = PercentChange(
            elements=_percent(delta.elements, baseline.elements),
            viewport=_percent(delta.viewport_height, baseline.viewport_height),
            visible=_percent(delta.visible_elements, baseline.visible_elements),
        )
        logger.debug(f"Change deltas calculated: {delta.model_dump()}")

        major_reasons = self._major_reasons(delta, percent)
        minor_reasons: List[str] = []
        if not major_reasons:
            minor_reasons = self._minor_reasons(delta, percent)

        if major_reasons:
            level = ChangeLevel.MAJOR
        elif minor_reasons:
            level = ChangeLevel.MINOR
        else:
            level = ChangeLevel.NONE

        should_take_snapshot = any(
            marker in reason for reason in major_reasons for marker in SNAPSHOT_MARKERS
        )
        reasons = major_reasons + minor_reasons

        result = ClassificationResult(
            changed=level != ChangeLevel.NONE,
            level=level,
            reason=", ".join(reasons) if reasons else "No significant changes",
            reasons=reasons,
            major_reasons=major_reasons,
            minor_reasons=minor_reasons,
            should_take_screenshot=level != ChangeLevel.NONE,
            should_take_snapshot=should_take_snapshot,
            suggested_filename=self._suggest_filename(level, major_reasons),
            metrics=ClassificationMetrics(
                current=current,
                delta=delta,
                baseline=baseline,
                percent_change=percent,
            ),
        )

        logger.info(
            f"Change detection complete: {level.value} level "
            f"(reasons: {reasons}, screenshot: {result.should_take_screenshot}, "
            f"snapshot: {should_take_snapshot}, filename: {result.suggested_filename})"
        )

        self._baseline = current
        return result

    detect_changes = classify

    def update_thresholds(self, partial: ThresholdInput) -> ThresholdConfig:
        """
        Merge new threshold values into the configuration.

        Only the fields present in ``partial`` are overwritten; everything
        else keeps its current value.

        Args:
            partial: Full or partial configuration, or a mapping of either

        Returns:
            The resulting configuration
        """
        if isinstance(partial, ThresholdConfig):
            partial = PartialThresholdConfig.model_validate(partial.model_dump())
        elif not isinstance(partial, PartialThresholdConfig):
            partial = PartialThresholdConfig.model_validate(dict(partial))

        logger.info(f"Updating thresholds: {partial.model_dump(exclude_none=True)}")

        if partial.major is not None:
            updates = partial.major.model_dump(exclude_none=True)
            self._warn_negative("major", updates)
            self._thresholds.major = self._thresholds.major.model_copy(update=updates)
        if partial.minor is not None:
            updates = partial.minor.model_dump(exclude_none=True)
            self._warn_negative("minor", updates)
            self._thresholds.minor = self._thresholds.minor.model_copy(update=updates)

        logger.info(f"Thresholds updated: {self._thresholds.model_dump()}")
        return self.thresholds

    def reset_baseline(self) -> Optional[MetricsVector]:
        """
        Clear the baseline.

        Returns:
            The baseline that was cleared, or None if there was none
        """
        logger.info("Resetting baseline")
        previous = self._baseline
        self._baseline = None
        return previous

    def _compute_deltas(self, baseline: MetricsVector, current: MetricsVector) -> ChangeDeltas:
        return ChangeDeltas(
            elements=abs(current.elements - baseline.elements),
            dialogs=current.dialogs - baseline.dialogs,
            overlays=current.overlays - baseline.overlays,
            forms=abs(current.forms - baseline.forms),
            inputs=abs(current.inputs - baseline.inputs),
            buttons=abs(current.buttons - baseline.buttons),
            links=abs(current.links - baseline.links),
            viewport_height=abs(current.viewport_height - baseline.viewport_height),
            visible_elements=abs(current.visible_elements - baseline.visible_elements),
            z_index=current.max_z_index - baseline.max_z_index,
            url_changed=current.url != baseline.url,
            fixed_elements=abs(current.fixed_elements - baseline.fixed_elements),
            absolute_elements=abs(current.absolute_elements - baseline.absolute_elements),
        )

    def _major_reasons(self, delta: ChangeDeltas, percent: PercentChange) -> List[str]:
        major = self._thresholds.major
        reasons = []

        # Order matters: the first reason names the screenshot file
        if delta.url_changed:
            reasons.append("URL changed")
        if delta.dialogs > 0:
            reasons.append(f"{delta.dialogs} dialog(s) appeared")
        if delta.overlays > 0:
            reasons.append(f"{delta.overlays} overlay(s) appeared")
        if delta.forms >= major.form_delta:
            reasons.append(f"Form count changed by {delta.forms}")
        if delta.elements >= major.element_delta:
            reasons.append(f"{delta.elements} elements changed")
        if delta.z_index >= major.z_index_delta:
            reasons.append(f"Z-index increased by {delta.z_index}")
        if delta.fixed_elements > 0:
            reasons.append(f"{delta.fixed_elements} fixed elements changed")
        if delta.absolute_elements > 0:
            reasons.append(f"{delta.absolute_elements} absolute elements changed")
        if percent.viewport >= major.viewport_delta:
            reasons.append(f"Viewport height changed {percent.viewport:.1f}%")

        return reasons

    def _minor_reasons(self, delta: ChangeDeltas, percent: PercentChange) -> List[str]:
        minor = self._thresholds.minor
        reasons = []

        if delta.elements >= minor.element_delta:
            reasons.append(f"{delta.elements} elements changed")
        if percent.visible >= minor.viewport_delta:
            reasons.append(f"{percent.visible:.1f}% visibility changes")
        if delta.buttons > 0:
            reasons.append(f"{delta.buttons} button(s) changed")
        if delta.inputs > 0:
            reasons.append(f"{delta.inputs} input(s) changed")

        return reasons

    def _suggest_filename(self, level: ChangeLevel, major_reasons: List[str]) -> str:
        timestamp = int(self._clock() * 1000)
        if level == ChangeLevel.MAJOR:
            slug = re.sub(r"[^a-z0-9]", "_", major_reasons[0].lower())
            return f"major_change_{slug}_{timestamp}.png"
        if level == ChangeLevel.MINOR:
            return f"minor_change_{timestamp}.png"
        return NO_CHANGE_FILENAME

    def _warn_negative(self, tier: str, updates: dict) -> None:
        for name, value in updates.items():
            if value < 0:
                logger.warning(
                    f"Negative {tier}.{name} threshold ({value}) accepted; "
                    f"it is crossed on every comparison"
                )
