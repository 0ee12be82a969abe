"""
Measurement Models
==================

Result of running the geometry engine on one processed frame.

A Measurement is either complete (every quantity the active calibration
mode derives is a finite number) or explicitly unavailable (every
quantity is None and a reason code says why). There is no partial state:
a frame never yields a new size next to a stale distance.

The pixel-space segments the values were derived from travel with the
measurement so overlays draw exactly what was measured.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from bodyspan.models.calibration import CalibrationMode
from bodyspan.models.reason_codes import UnavailableReason


class MeasurementStatus(str, Enum):
    """Availability of a measurement."""

    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True, slots=True)
class PixelSegment:
    """
    Segment between two landmarks in frame pixel coordinates.

    Attributes:
        role: "reference" or "target"
        start: (x, y) of the first landmark in pixels
        end: (x, y) of the second landmark in pixels
        length_px: Separation used in the computation (may include depth)
    """

    role: str
    start: Tuple[float, float]
    end: Tuple[float, float]
    length_px: float

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "start": [round(self.start[0], 1), round(self.start[1], 1)],
            "end": [round(self.end[0], 1), round(self.end[1], 1)],
            "length_px": round(self.length_px, 2),
        }


@dataclass(frozen=True, slots=True)
class Measurement:
    """
    Metric quantities derived from one frame.

    Attributes:
        status: AVAILABLE or UNAVAILABLE
        mode: Calibration mode that produced the values
        distance_cm: Subject distance from camera (Known-Reference only)
        size_cm: Measured length (wingspan or inter-point distance)
        scale_cm_per_px: Real length of one pixel at the subject's distance
        reason: Why the measurement is unavailable (None when available)
        segments: Pixel segments used for the computation
        timestamp: Video timestamp of the processed frame
        frame_width, frame_height: Pixel dimensions of the processed frame
    """

    status: MeasurementStatus
    mode: Optional[CalibrationMode] = None
    distance_cm: Optional[float] = None
    size_cm: Optional[float] = None
    scale_cm_per_px: Optional[float] = None
    reason: Optional[UnavailableReason] = None
    segments: Tuple[PixelSegment, ...] = field(default_factory=tuple)
    timestamp: Optional[float] = None
    frame_width: int = 0
    frame_height: int = 0

    def __post_init__(self) -> None:
        """Validate invariants."""
        values = (self.distance_cm, self.size_cm, self.scale_cm_per_px)
        if self.status == MeasurementStatus.UNAVAILABLE:
            if any(v is not None for v in values):
                raise ValueError("unavailable measurement must not carry values")
            if self.reason is None:
                raise ValueError("unavailable measurement needs a reason")
        else:
            if self.size_cm is None:
                raise ValueError("available measurement needs size_cm")
            if any(v is not None and not math.isfinite(v) for v in values):
                raise ValueError("measurement values must be finite")

    @classmethod
    def available(
        cls,
        mode: CalibrationMode,
        size_cm: float,
        scale_cm_per_px: float,
        distance_cm: Optional[float] = None,
        segments: Tuple[PixelSegment, ...] = (),
        timestamp: Optional[float] = None,
        frame_width: int = 0,
        frame_height: int = 0,
    ) -> "Measurement":
        return cls(
            status=MeasurementStatus.AVAILABLE,
            mode=mode,
            distance_cm=distance_cm,
            size_cm=size_cm,
            scale_cm_per_px=scale_cm_per_px,
            segments=tuple(segments),
            timestamp=timestamp,
            frame_width=frame_width,
            frame_height=frame_height,
        )

    @classmethod
    def unavailable(
        cls,
        reason: UnavailableReason,
        mode: Optional[CalibrationMode] = None,
        timestamp: Optional[float] = None,
        frame_width: int = 0,
        frame_height: int = 0,
    ) -> "Measurement":
        return cls(
            status=MeasurementStatus.UNAVAILABLE,
            mode=mode,
            reason=reason,
            timestamp=timestamp,
            frame_width=frame_width,
            frame_height=frame_height,
        )

    @property
    def is_available(self) -> bool:
        return self.status == MeasurementStatus.AVAILABLE

    def __repr__(self) -> str:
        if not self.is_available:
            return f"Measurement(UNAVAILABLE, reason={self.reason.value})"
        distance = f"{self.distance_cm:.1f}cm" if self.distance_cm is not None else "n/a"
        return (
            f"Measurement(size={self.size_cm:.1f}cm, "
            f"distance={distance}, "
            f"scale={self.scale_cm_per_px:.4f}cm/px)"
        )

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "status": self.status.value,
            "mode": self.mode.value if self.mode is not None else None,
            "distance_cm": round(self.distance_cm, 2) if self.distance_cm is not None else None,
            "size_cm": round(self.size_cm, 2) if self.size_cm is not None else None,
            "scale_cm_per_px": (
                round(self.scale_cm_per_px, 5) if self.scale_cm_per_px is not None else None
            ),
            "reason": self.reason.value if self.reason is not None else None,
            "segments": [s.to_dict() for s in self.segments],
            "timestamp": self.timestamp,
            "frame_width": self.frame_width,
            "frame_height": self.frame_height,
        }
