"""
Calibration Models
==================

Camera calibration assumptions used to turn pixel distances into metric
distances.

Exactly one calibration mode is active per deployment:

    Known-Reference:
        A body segment of known real length (e.g. shoulder width) is used
        to infer the subject's distance from the camera, and that distance
        then sizes a second, unknown segment from the same frame.

    Fixed-Distance:
        The subject is assumed to stand at a fixed distance, which yields
        a direct pixel-to-centimeter ratio.

Accuracy:
    The field of view, the reference length and the assumed distance are
    NOT measured. They are the accuracy-limiting assumptions of the whole
    system: every reported length scales linearly with the reference
    length (or assumed distance), and non-linearly with the field of view.

Example:
    from bodyspan.models.calibration import KnownReferenceCalibration

    calibration = KnownReferenceCalibration(
        fov_degrees=70.0,
        reference_length_cm=45.0,
    )
"""

import math
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from bodyspan.models.landmarks import (
    HandLandmark,
    LandmarkSchema,
    PoseLandmark,
    schema_for_point,
)


class CalibrationMode(str, Enum):
    """Calibration strategy tag."""

    KNOWN_REFERENCE = "known_reference"
    FIXED_DISTANCE = "fixed_distance"


class _CalibrationBase(BaseModel):
    """Fields shared by both calibration modes."""

    model_config = ConfigDict(frozen=True)

    fov_degrees: float = Field(
        default=70.0,
        gt=0.0,
        lt=180.0,
        description="Assumed horizontal field of view of the camera (degrees)",
    )

    use_depth: bool = Field(
        default=False,
        description="Include landmark z (scaled by frame width) in separations",
    )

    @property
    def fov_radians(self) -> float:
        """Field of view in radians."""
        return math.radians(self.fov_degrees)


class KnownReferenceCalibration(_CalibrationBase):
    """
    Known-Reference calibration.

    Distance is derived from the reference segment, then the target
    segment is sized at that distance. Needs exactly one subject.

    Attributes:
        reference_length_cm: Assumed real length of the reference segment
        reference_start, reference_end: Reference segment endpoints
        target_start, target_end: Segment whose length is reported
    """

    mode: Literal["known_reference"] = "known_reference"

    reference_length_cm: float = Field(
        default=45.0,
        gt=0.0,
        description="Assumed real length of the reference segment (cm)",
    )

    reference_start: PoseLandmark = Field(default=PoseLandmark.LEFT_SHOULDER)
    reference_end: PoseLandmark = Field(default=PoseLandmark.RIGHT_SHOULDER)
    target_start: PoseLandmark = Field(default=PoseLandmark.LEFT_WRIST)
    target_end: PoseLandmark = Field(default=PoseLandmark.RIGHT_WRIST)

    @field_validator(
        "reference_start", "reference_end", "target_start", "target_end",
        mode="before",
    )
    @classmethod
    def _point_by_name(cls, v):
        """Accept landmark names (e.g. "left_shoulder") as well as indices."""
        if isinstance(v, str):
            try:
                return PoseLandmark[v.upper()]
            except KeyError:
                raise ValueError(f"Unknown pose landmark: {v!r}")
        return v

    @property
    def schema(self) -> LandmarkSchema:
        return LandmarkSchema.POSE

    @property
    def subject_count(self) -> int:
        return 1


class FixedDistanceCalibration(_CalibrationBase):
    """
    Fixed-Distance calibration.

    One point is taken from each of exactly two subjects (one per hand)
    and their separation is sized with a fixed pixel-to-centimeter ratio.

    Attributes:
        distance_cm: Assumed camera-to-subject distance
        point: Landmark measured on each subject
    """

    mode: Literal["fixed_distance"] = "fixed_distance"

    distance_cm: float = Field(
        default=150.0,
        gt=0.0,
        description="Assumed camera-to-subject distance (cm)",
    )

    point: HandLandmark = Field(default=HandLandmark.MIDDLE_FINGER_TIP)

    @field_validator("point", mode="before")
    @classmethod
    def _point_by_name(cls, v):
        if isinstance(v, str):
            try:
                return HandLandmark[v.upper()]
            except KeyError:
                raise ValueError(f"Unknown hand landmark: {v!r}")
        return v

    @property
    def schema(self) -> LandmarkSchema:
        return schema_for_point(self.point)

    @property
    def subject_count(self) -> int:
        return 2


CalibrationModel = Annotated[
    Union[KnownReferenceCalibration, FixedDistanceCalibration],
    Field(discriminator="mode"),
]

_calibration_adapter: TypeAdapter = TypeAdapter(CalibrationModel)


def parse_calibration(data: dict) -> Union[KnownReferenceCalibration, FixedDistanceCalibration]:
    """
    Validate a calibration mapping into its tagged variant.

    Args:
        data: Mapping with a `mode` key and the mode's fields

    Returns:
        KnownReferenceCalibration or FixedDistanceCalibration

    Raises:
        pydantic.ValidationError: On unknown mode or invalid fields
    """
    return _calibration_adapter.validate_python(data)
