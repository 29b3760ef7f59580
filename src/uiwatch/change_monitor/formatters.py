"""
Text rendering of change detection results for tool responses.
"""

import json
from typing import List, Optional

from .models import ClassificationResult, MetricsVector, ThresholdConfig

NOT_INITIALIZED_MESSAGE = (
    "Change detector not initialized. Please initialize a change detector "
    "for this surface first."
)


def format_detection(result: ClassificationResult, include_details: bool = True) -> List[str]:
    """
    Render a classification as response lines.

    Args:
        result: Classification to render
        include_details: Append the full result as JSON

    Returns:
        Lines in display order
    """
    lines = [f"Change detection completed: {result.level.value} level changes detected"]

    if result.changed:
        screenshot = "Take screenshot" if result.should_take_screenshot else "No screenshot needed"
        snapshot = "Take DOM snapshot" if result.should_take_snapshot else "No DOM snapshot needed"
        lines.append(f"Reasons: {', '.join(result.reasons)}")
        lines.append(f"Recommendations: {screenshot}, {snapshot}")
        lines.append(f"Suggested filename: {result.suggested_filename}")
    else:
        lines.append("No significant changes detected")

    if include_details:
        lines.append(
            "Change detection result:\n"
            + result.model_dump_json(by_alias=True, indent=2)
        )

    return lines


def format_reset(previous: Optional[MetricsVector]) -> List[str]:
    payload = {
        "success": True,
        "message": "Baseline reset",
        "previousBaseline": previous.model_dump(by_alias=True) if previous else None,
    }
    return [
        "Change detection baseline reset successfully",
        "Reset result:\n" + json.dumps(payload, indent=2),
    ]


def format_thresholds(thresholds: ThresholdConfig) -> List[str]:
    return [
        "Change detection thresholds updated successfully",
        "Updated thresholds:\n" + json.dumps(thresholds.model_dump(by_alias=True), indent=2),
    ]
