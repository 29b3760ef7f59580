"""
Change monitoring data models.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError


class InvalidMetricsVector(ValueError):
    """Raised when a metrics payload is missing fields or carries bad values."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class ChangeLevel(str, Enum):
    """Severity assigned to a classification."""

    NONE = "none"
    MINOR = "minor"
    MAJOR = "major"


class MetricsVector(BaseModel):
    """
    Structural snapshot of a page at one instant.

    Produced by a metrics source; never mutated after construction.
    """

    elements: int = Field(..., ge=0, strict=True)
    visible_elements: int = Field(..., ge=0, strict=True, alias="visibleElements")
    dialogs: int = Field(..., ge=0, strict=True)
    overlays: int = Field(..., ge=0, strict=True)
    forms: int = Field(..., ge=0, strict=True)
    inputs: int = Field(..., ge=0, strict=True)
    buttons: int = Field(..., ge=0, strict=True)
    links: int = Field(..., ge=0, strict=True)
    max_z_index: int = Field(..., ge=0, strict=True, alias="maxZIndex")
    fixed_elements: int = Field(..., ge=0, strict=True, alias="fixedElements")
    absolute_elements: int = Field(..., ge=0, strict=True, alias="absoluteElements")
    viewport_height: float = Field(..., ge=0, strict=True, allow_inf_nan=False, alias="viewportHeight")
    url: str

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "elements": 812,
                "visibleElements": 240,
                "dialogs": 0,
                "overlays": 0,
                "forms": 1,
                "inputs": 4,
                "buttons": 7,
                "links": 53,
                "maxZIndex": 10,
                "fixedElements": 1,
                "absoluteElements": 3,
                "viewportHeight": 2140.5,
                "url": "https://example.com/login",
            }
        }

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> "MetricsVector":
        """
        Validate a raw payload (as returned by the collector script).

        Raises:
            InvalidMetricsVector: if any field is missing or malformed
        """
        if not isinstance(data, Mapping):
            raise InvalidMetricsVector(
                f"Metrics payload must be a mapping, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise InvalidMetricsVector(
                f"Invalid metrics vector (fields: {', '.join(fields) or 'unknown'})",
                fields=fields,
            ) from e


class MajorThresholds(BaseModel):
    """Thresholds at or above which a change counts as major."""

    element_delta: float = Field(100, alias="elementDelta")
    dialog_delta: float = Field(1, alias="dialogDelta")
    overlay_delta: float = Field(1, alias="overlayDelta")
    form_delta: float = Field(1, alias="formDelta")
    z_index_delta: float = Field(500, alias="zIndexDelta")
    viewport_delta: float = Field(30, alias="viewportDelta")

    class Config:
        populate_by_name = True


class MinorThresholds(BaseModel):
    """Thresholds at or above which a change counts as minor."""

    element_delta: float = Field(20, alias="elementDelta")
    viewport_delta: float = Field(5, alias="viewportDelta")

    class Config:
        populate_by_name = True


class ThresholdConfig(BaseModel):
    """Two-tier threshold configuration."""

    major: MajorThresholds = Field(default_factory=MajorThresholds)
    minor: MinorThresholds = Field(default_factory=MinorThresholds)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "major": {
                    "elementDelta": 100,
                    "dialogDelta": 1,
                    "overlayDelta": 1,
                    "formDelta": 1,
                    "zIndexDelta": 500,
                    "viewportDelta": 30,
                },
                "minor": {"elementDelta": 20, "viewportDelta": 5},
            }
        }


class PartialMajorThresholds(BaseModel):
    element_delta: Optional[float] = Field(None, alias="elementDelta")
    dialog_delta: Optional[float] = Field(None, alias="dialogDelta")
    overlay_delta: Optional[float] = Field(None, alias="overlayDelta")
    form_delta: Optional[float] = Field(None, alias="formDelta")
    z_index_delta: Optional[float] = Field(None, alias="zIndexDelta")
    viewport_delta: Optional[float] = Field(None, alias="viewportDelta")

    class Config:
        populate_by_name = True


class PartialMinorThresholds(BaseModel):
    element_delta: Optional[float] = Field(None, alias="elementDelta")
    viewport_delta: Optional[float] = Field(None, alias="viewportDelta")

    class Config:
        populate_by_name = True


class PartialThresholdConfig(BaseModel):
    """
    Threshold update where every tier and field is optional.

    Fields left unset keep their current value when merged.
    """

    major: Optional[PartialMajorThresholds] = None
    minor: Optional[PartialMinorThresholds] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"major": {"elementDelta": 50}}}


class ChangeDeltas(BaseModel):
    """Per-metric differences between the current vector and the baseline."""

    elements: int = 0
    dialogs: int = 0  # signed
    overlays: int = 0  # signed
    forms: int = 0
    inputs: int = 0
    buttons: int = 0
    links: int = 0
    viewport_height: float = Field(0.0, alias="viewportHeight")
    visible_elements: int = Field(0, alias="visibleElements")
    z_index: int = Field(0, alias="zIndex")  # signed
    url_changed: bool = Field(False, alias="urlChanged")
    fixed_elements: int = Field(0, alias="fixedElements")
    absolute_elements: int = Field(0, alias="absoluteElements")

    class Config:
        populate_by_name = True


class PercentChange(BaseModel):
    """Changes relative to the baseline, in percent."""

    elements: float = 0.0
    viewport: float = 0.0
    visible: float = 0.0


class ClassificationMetrics(BaseModel):
    """Diagnostic bundle attached to every classification."""

    current: MetricsVector
    delta: Optional[ChangeDeltas] = None
    baseline: Optional[MetricsVector] = None
    percent_change: Optional[PercentChange] = Field(None, alias="percentChange")

    class Config:
        populate_by_name = True


class ClassificationResult(BaseModel):
    """
    Outcome of comparing one metrics vector against the baseline.
    """

    changed: bool = False
    level: ChangeLevel = ChangeLevel.NONE
    reason: str = ""
    reasons: List[str] = Field(default_factory=list)
    major_reasons: List[str] = Field(default_factory=list, alias="majorReasons")
    minor_reasons: List[str] = Field(default_factory=list, alias="minorReasons")
    should_take_screenshot: bool = Field(False, alias="shouldTakeScreenshot")
    should_take_snapshot: bool = Field(False, alias="shouldTakeSnapshot")
    suggested_filename: str = Field("no_change.png", alias="suggestedFilename")
    metrics: ClassificationMetrics

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "changed": True,
                "level": "major",
                "reason": "1 dialog(s) appeared",
                "reasons": ["1 dialog(s) appeared"],
                "majorReasons": ["1 dialog(s) appeared"],
                "minorReasons": [],
                "shouldTakeScreenshot": True,
                "shouldTakeSnapshot": True,
                "suggestedFilename": "major_change_1_dialog_s__appeared_1736937000000.png",
                "metrics": {},
            }
        }
