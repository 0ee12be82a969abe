"""
Measurement Output Models
=========================

This module defines the output contract served to the presentation layer.

Output Contract:
    {
        "status": "RUNNING",
        "version": 812,
        "prompt": null,
        "error": null,
        "measurement": {
            "status": "AVAILABLE",
            "mode": "known_reference",
            "distance_cm": 160.67,
            "size_cm": 180.0,
            "scale_cm_per_px": 0.17578,
            "reason": null,
            "segments": [
                {"role": "reference", "start": [512.0, 360.0], "end": [768.0, 360.0], "length_px": 256.0},
                {"role": "target", "start": [128.0, 360.0], "end": [1152.0, 360.0], "length_px": 1024.0}
            ]
        }
    }

Design Rules:
    - `measurement` is read-only for consumers
    - Absence of a subject is shown as a neutral `prompt`, not an error
    - `error` is only set when the pipeline is in the terminal FAILED state
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from bodyspan.models.measurement import Measurement
from bodyspan.models.reason_codes import UnavailableReason
from bodyspan.models.state import PipelineStatus


# Neutral prompts shown while no measurable subject is in view
_PROMPTS = {
    "known_reference": "Step back so your shoulders and wrists are visible",
    "fixed_distance": "Show both hands to measure distance",
}
_LOADING_PROMPT = "Loading camera and landmark model..."


class SegmentOutput(BaseModel):
    """Pixel segment the measurement was derived from."""

    role: str = Field(..., description="reference or target")
    start: List[float] = Field(..., min_length=2, max_length=2)
    end: List[float] = Field(..., min_length=2, max_length=2)
    length_px: float = Field(..., ge=0.0)


class MeasurementPayload(BaseModel):
    """
    Serialized Measurement.

    Attributes:
        status: AVAILABLE or UNAVAILABLE
        mode: Calibration mode in use
        distance_cm: Subject distance from the camera (Known-Reference only)
        size_cm: Measured length
        scale_cm_per_px: Centimeters per pixel at the subject
        reason: Reason code when unavailable
        segments: Pixel geometry behind the values
    """

    status: str
    mode: Optional[str] = None
    distance_cm: Optional[float] = None
    size_cm: Optional[float] = None
    scale_cm_per_px: Optional[float] = None
    reason: Optional[UnavailableReason] = None
    segments: List[SegmentOutput] = Field(default_factory=list)
    timestamp: Optional[float] = None
    frame_width: int = Field(default=0, ge=0)
    frame_height: int = Field(default=0, ge=0)


class MeasurementOutput(BaseModel):
    """
    Complete payload for the presentation layer.

    Attributes:
        status: Pipeline lifecycle state
        version: Number of measurements published so far
        prompt: Neutral user guidance when nothing is measurable
        error: Terminal error message (FAILED only)
        measurement: Latest measurement
    """

    status: PipelineStatus
    version: int = Field(default=0, ge=0)
    prompt: Optional[str] = None
    error: Optional[str] = None
    measurement: MeasurementPayload

    @classmethod
    def build(
        cls,
        status: PipelineStatus,
        version: int,
        measurement: Measurement,
        mode: str,
        error: Optional[str] = None,
    ) -> "MeasurementOutput":
        """
        Assemble the payload from the pipeline's current state.

        Args:
            status: Pipeline lifecycle state
            version: Measurement version counter
            measurement: Latest measurement
            mode: Active calibration mode (selects the prompt text)
            error: Terminal error message, if any
        """
        prompt: Optional[str] = None
        if status == PipelineStatus.LOADING:
            prompt = _LOADING_PROMPT
        elif status != PipelineStatus.FAILED and not measurement.is_available:
            prompt = _PROMPTS.get(mode)

        return cls(
            status=status,
            version=version,
            prompt=prompt,
            error=error if status == PipelineStatus.FAILED else None,
            measurement=MeasurementPayload.model_validate(measurement.to_dict()),
        )
