"""
Data Models
===========

Typed models for the BodySpan measurement pipeline.

This module re-exports all data models for convenient access.

Models:
    Landmarks:
        - Landmark, Subject, LandmarkFrame: Detector output
        - PoseLandmark, HandLandmark, LandmarkSchema: Anatomical schemas

    Calibration:
        - KnownReferenceCalibration, FixedDistanceCalibration: Tagged variants
        - CalibrationMode: Variant tag

    Measurement:
        - Measurement, PixelSegment, MeasurementStatus
        - UnavailableReason: Why a frame produced no measurement

    Output:
        - PipelineStatus: Pipeline lifecycle
        - MeasurementOutput: Presentation contract
"""

from bodyspan.models.landmarks import (
    HandLandmark,
    Landmark,
    LandmarkFrame,
    LandmarkSchema,
    LandmarkSchemaError,
    PoseLandmark,
    Subject,
)
from bodyspan.models.calibration import (
    CalibrationMode,
    CalibrationModel,
    FixedDistanceCalibration,
    KnownReferenceCalibration,
    parse_calibration,
)
from bodyspan.models.reason_codes import UnavailableReason
from bodyspan.models.measurement import Measurement, MeasurementStatus, PixelSegment
from bodyspan.models.state import PipelineStatus
from bodyspan.models.output import MeasurementOutput

__all__ = [
    # Landmarks
    "Landmark",
    "Subject",
    "LandmarkFrame",
    "LandmarkSchema",
    "LandmarkSchemaError",
    "PoseLandmark",
    "HandLandmark",
    # Calibration
    "CalibrationMode",
    "CalibrationModel",
    "KnownReferenceCalibration",
    "FixedDistanceCalibration",
    "parse_calibration",
    # Measurement
    "Measurement",
    "MeasurementStatus",
    "PixelSegment",
    "UnavailableReason",
    # Output
    "PipelineStatus",
    "MeasurementOutput",
]
