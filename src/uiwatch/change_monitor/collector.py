"""
Page metrics collection.

Runs a measuring script inside a browser page and turns its output into
MetricsVector snapshots for the change detector.
"""

import logging
from typing import Any, Iterable, List, Mapping, Protocol, Union

from .models import MetricsVector

logger = logging.getLogger(__name__)


class MetricsCaptureError(Exception):
    """Raised when metrics cannot be captured from the monitored page."""
    pass


# Evaluated as a function expression, so it returns the payload directly
COLLECT_METRICS_SCRIPT = """
() => {
  const all = Array.from(document.querySelectorAll('*'));
  const bodyRect = document.body.getBoundingClientRect();
  return {
    elements: all.length,
    url: location.href,
    dialogs: document.querySelectorAll('[role="dialog"],.modal,.popup,[class*="modal"]').length,
    overlays: document.querySelectorAll('.overlay,[class*="overlay"],.backdrop').length,
    forms: document.querySelectorAll('form').length,
    inputs: document.querySelectorAll('input,textarea,select').length,
    buttons: document.querySelectorAll('button,input[type="submit"]').length,
    links: document.querySelectorAll('a[href]').length,
    viewportHeight: bodyRect.height,
    visibleElements: all.filter(el => {
      const rect = el.getBoundingClientRect();
      return rect.width > 0 && rect.height > 0 && rect.top < window.innerHeight && rect.bottom > 0;
    }).length,
    maxZIndex: Math.max(0, ...all.map(el => parseInt(getComputedStyle(el).zIndex) || 0)),
    fixedElements: document.querySelectorAll('[style*="position: fixed"],[style*="position:fixed"]').length,
    absoluteElements: document.querySelectorAll('[style*="position: absolute"],[style*="position:absolute"]').length
  };
}
"""


class MetricsSource(Protocol):
    """Anything that can hand back a metrics snapshot on demand."""

    async def capture_metrics(self) -> MetricsVector:
        ...


class EvaluatingPage(Protocol):
    """Page-like object that can run a script (e.g. playwright.async_api.Page)."""

    async def evaluate(self, expression: str) -> Any:
        ...


class PageMetricsCollector:
    """
    Collects metrics from a live page.

    Works with any object exposing ``async evaluate(expression)``, which
    includes Playwright's async ``Page``.
    """

    def __init__(self, page: EvaluatingPage, script: str = COLLECT_METRICS_SCRIPT):
        self.page = page
        self.script = script

    async def capture_metrics(self) -> MetricsVector:
        """
        Run the measuring script and validate its payload.

        Returns:
            Captured metrics vector

        Raises:
            MetricsCaptureError: if the page cannot be evaluated
            InvalidMetricsVector: if the payload is malformed
        """
        logger.debug("Collecting page metrics")
        try:
            raw = await self.page.evaluate(self.script)
        except Exception as e:
            logger.error(f"Metrics capture failed: {e}")
            raise MetricsCaptureError(f"Failed to capture page metrics: {e}") from e

        metrics = MetricsVector.from_raw(raw)
        logger.debug(f"Metrics collected: {metrics.model_dump(by_alias=True)}")
        return metrics


class StaticMetricsSource:
    """
    Replays a fixed sequence of metrics vectors, one per capture.
    """

    def __init__(self, vectors: Iterable[Union[MetricsVector, Mapping[str, Any]]]):
        self._pending: List[MetricsVector] = [
            v if isinstance(v, MetricsVector) else MetricsVector.from_raw(v)
            for v in vectors
        ]
        self.captured = 0

    @property
    def remaining(self) -> int:
        return len(self._pending)

    async def capture_metrics(self) -> MetricsVector:
        if not self._pending:
            raise MetricsCaptureError(
                f"No metrics left to replay after {self.captured} capture(s)"
            )
        self.captured += 1
        return self._pending.pop(0)
