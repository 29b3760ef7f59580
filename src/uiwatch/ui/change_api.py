"""
Change detector API endpoints.

Each monitored surface (browser tab, page) owns one detector. Callers push
metrics vectors they captured themselves; the API classifies them.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from uiwatch.change_monitor.formatters import NOT_INITIALIZED_MESSAGE
from uiwatch.change_monitor.models import (
    ClassificationResult,
    MetricsVector,
    PartialThresholdConfig,
    ThresholdConfig,
)
from uiwatch.change_monitor.service import ChangeMonitorService, DetectorNotInitialized
from uiwatch.core.config import get_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/surfaces", tags=["change-detection"])

_service: Optional[ChangeMonitorService] = None


def get_service() -> ChangeMonitorService:
    """Shared service holding every surface's detector."""
    global _service
    if _service is None:
        _service = ChangeMonitorService(default_thresholds=get_config().thresholds())
    return _service


class InitDetectorRequest(BaseModel):
    """Optional threshold overrides for a new detector."""

    thresholds: Optional[PartialThresholdConfig] = None


class DetectorStatus(BaseModel):
    """Current state of a surface's detector."""

    surface_id: str = Field(..., alias="surfaceId")
    has_baseline: bool = Field(False, alias="hasBaseline")
    thresholds: ThresholdConfig

    class Config:
        populate_by_name = True


class ResetResponse(BaseModel):
    success: bool = True
    message: str = "Baseline reset"
    previous_baseline: Optional[MetricsVector] = Field(None, alias="previousBaseline")

    class Config:
        populate_by_name = True


class RemoveResponse(BaseModel):
    removed: bool


def _status(surface_id: str, service: ChangeMonitorService) -> DetectorStatus:
    detector = service.get_detector(surface_id)
    return DetectorStatus(
        surface_id=surface_id,
        has_baseline=detector.has_baseline,
        thresholds=detector.thresholds,
    )


def _not_initialized(surface_id: str) -> HTTPException:
    logger.warning(f"Request for uninitialized surface: {surface_id}")
    return HTTPException(status_code=404, detail=NOT_INITIALIZED_MESSAGE)


@router.post("/{surface_id}/detector", response_model=DetectorStatus)
async def init_detector(
    surface_id: str,
    body: Optional[InitDetectorRequest] = None,
    service: ChangeMonitorService = Depends(get_service),
) -> DetectorStatus:
    """
    Initialize (or reinitialize) the change detector for a surface.

    Args:
        surface_id: Identifier of the monitored surface
        body: Optional threshold overrides

    Returns:
        Detector status
    """
    thresholds = body.thresholds if body else None
    service.init_detector(surface_id, thresholds)
    return _status(surface_id, service)


@router.get("/{surface_id}/detector", response_model=DetectorStatus)
async def get_detector_status(
    surface_id: str,
    service: ChangeMonitorService = Depends(get_service),
) -> DetectorStatus:
    """Get the detector status for a surface."""
    try:
        return _status(surface_id, service)
    except DetectorNotInitialized:
        raise _not_initialized(surface_id)


@router.delete("/{surface_id}/detector", response_model=RemoveResponse)
async def remove_detector(
    surface_id: str,
    service: ChangeMonitorService = Depends(get_service),
) -> RemoveResponse:
    """Drop the detector for a surface (e.g. when its tab closes)."""
    return RemoveResponse(removed=service.remove_detector(surface_id))


@router.post("/{surface_id}/detect", response_model=ClassificationResult)
async def detect_changes(
    surface_id: str,
    metrics: MetricsVector,
    service: ChangeMonitorService = Depends(get_service),
) -> ClassificationResult:
    """
    Classify a metrics vector against the surface's baseline.

    Args:
        surface_id: Identifier of the monitored surface
        metrics: Freshly captured metrics vector

    Returns:
        Classification result with capture recommendations
    """
    try:
        result = service.classify(surface_id, metrics)
    except DetectorNotInitialized:
        raise _not_initialized(surface_id)

    logger.info(f"Change detection for {surface_id}: {result.level.value}")
    return result


@router.post("/{surface_id}/reset", response_model=ResetResponse)
async def reset_baseline(
    surface_id: str,
    service: ChangeMonitorService = Depends(get_service),
) -> ResetResponse:
    """Reset the change detection baseline for a surface."""
    try:
        previous = service.reset_baseline(surface_id)
    except DetectorNotInitialized:
        raise _not_initialized(surface_id)

    return ResetResponse(previous_baseline=previous)


@router.patch("/{surface_id}/thresholds", response_model=ThresholdConfig)
async def update_thresholds(
    surface_id: str,
    thresholds: PartialThresholdConfig,
    service: ChangeMonitorService = Depends(get_service),
) -> ThresholdConfig:
    """
    Update change detection thresholds for a surface.

    Only the fields present in the body change.
    """
    try:
        return service.update_thresholds(surface_id, thresholds)
    except DetectorNotInitialized:
        raise _not_initialized(surface_id)
