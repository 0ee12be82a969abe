"""
Geometry Engine
===============

Turns a LandmarkFrame into a Measurement using the active calibration.

This engine:
    - Scales normalized landmarks to frame pixels
    - Derives the focal length from the assumed field of view
    - Dispatches on the calibration tag (Known-Reference / Fixed-Distance)
    - Converts every degenerate case into an unavailable Measurement

Degenerate Inputs:
    No subject, the wrong number of subjects, a schema that does not match
    the calibration points, coinciding reference landmarks and any NaN or
    infinite intermediate all produce Measurement.unavailable(reason).
    None of them raise: they are expected, frequent states of a live feed.

The engine keeps no per-frame state besides a focal length cached per
frame width and observability counters; the same inputs always produce
the same Measurement.
"""

import logging
import math
from collections import Counter
from typing import Callable, Dict, Optional, Union

from bodyspan.geometry.projection import (
    distance_from_reference,
    focal_length_px,
    length_at_distance,
    pixel_separation,
    pixel_to_cm_ratio,
    to_pixels,
)
from bodyspan.models.calibration import (
    CalibrationMode,
    FixedDistanceCalibration,
    KnownReferenceCalibration,
)
from bodyspan.models.landmarks import Landmark, LandmarkFrame
from bodyspan.models.measurement import Measurement, PixelSegment
from bodyspan.models.reason_codes import UnavailableReason


logger = logging.getLogger(__name__)

Calibration = Union[KnownReferenceCalibration, FixedDistanceCalibration]


class GeometryEngine:
    """
    Pixel-to-metric conversion for one calibration mode.

    Attributes:
        calibration: Active calibration (fixed at construction)
        mode: Calibration tag the engine dispatches on

    Example:
        engine = GeometryEngine(KnownReferenceCalibration())

        measurement = engine.measure(landmark_frame, width=1280, height=720)
        if measurement.is_available:
            print(f"Wingspan: {measurement.size_cm:.1f} cm")
    """

    def __init__(
        self,
        calibration: Calibration,
        log_every_n_frames: int = 30,
    ) -> None:
        """
        Initialize geometry engine.

        Args:
            calibration: Known-Reference or Fixed-Distance calibration
            log_every_n_frames: Log a measurement summary every N frames
        """
        self.calibration = calibration
        self.mode = CalibrationMode(calibration.mode)
        self.log_every_n_frames = log_every_n_frames

        self._strategies: Dict[
            CalibrationMode, Callable[[LandmarkFrame, int, int], Measurement]
        ] = {
            CalibrationMode.KNOWN_REFERENCE: self._measure_known_reference,
            CalibrationMode.FIXED_DISTANCE: self._measure_fixed_distance,
        }

        # Focal length cache, keyed by frame width
        self._focal_width: Optional[int] = None
        self._focal_px: float = 0.0

        self._frame_count: int = 0
        self._available_count: int = 0
        self._unavailable_reasons: Counter = Counter()

        logger.info(
            f"GeometryEngine initialized: mode={self.mode.value}, "
            f"fov={calibration.fov_degrees}°, use_depth={calibration.use_depth}"
        )

    def measure(self, frame: LandmarkFrame, width: int, height: int) -> Measurement:
        """
        Compute the measurement for one frame.

        Args:
            frame: Detector output for the frame
            width: Frame width in pixels
            height: Frame height in pixels

        Returns:
            Available Measurement, or unavailable with a reason code
        """
        self._frame_count += 1

        if width <= 0 or height <= 0:
            measurement = self._unavailable(
                UnavailableReason.INVALID_FRAME_SIZE, frame, width, height
            )
        else:
            measurement = self._strategies[self.mode](frame, width, height)

        if measurement.is_available:
            self._available_count += 1
        else:
            self._unavailable_reasons[measurement.reason.value] += 1

        if self._frame_count % self.log_every_n_frames == 0:
            logger.info(f"Measurement [frame {self._frame_count}]: {measurement!r}")

        return measurement

    def focal_length(self, width: int) -> float:
        """Focal length in pixels for a frame width (cached per width)."""
        if width != self._focal_width:
            self._focal_px = focal_length_px(width, self.calibration.fov_radians)
            self._focal_width = width
            logger.debug(f"Focal length for width={width}px: {self._focal_px:.1f}px")
        return self._focal_px

    # =========================================================================
    # Calibration strategies
    # =========================================================================

    def _measure_known_reference(
        self, frame: LandmarkFrame, width: int, height: int
    ) -> Measurement:
        calibration: KnownReferenceCalibration = self.calibration

        gate = self._check_subjects(frame, width, height)
        if gate is not None:
            return gate

        subject = frame.subjects[0]
        ref_a = subject[calibration.reference_start]
        ref_b = subject[calibration.reference_end]
        target_a = subject[calibration.target_start]
        target_b = subject[calibration.target_end]

        focal = self.focal_length(width)
        reference_px = pixel_separation(ref_a, ref_b, width, height, calibration.use_depth)
        if reference_px == 0.0:
            return self._unavailable(
                UnavailableReason.DEGENERATE_REFERENCE, frame, width, height
            )

        distance = distance_from_reference(
            calibration.reference_length_cm, focal, reference_px
        )
        target_px = pixel_separation(target_a, target_b, width, height, calibration.use_depth)
        size = length_at_distance(target_px, distance, focal)
        scale = distance / focal

        if not all(math.isfinite(v) for v in (distance, size, scale)):
            return self._unavailable(
                UnavailableReason.NON_FINITE_RESULT, frame, width, height
            )

        return Measurement.available(
            mode=self.mode,
            distance_cm=distance,
            size_cm=size,
            scale_cm_per_px=scale,
            segments=(
                self._segment("reference", ref_a, ref_b, reference_px, width, height),
                self._segment("target", target_a, target_b, target_px, width, height),
            ),
            timestamp=frame.timestamp,
            frame_width=width,
            frame_height=height,
        )

    def _measure_fixed_distance(
        self, frame: LandmarkFrame, width: int, height: int
    ) -> Measurement:
        calibration: FixedDistanceCalibration = self.calibration

        gate = self._check_subjects(frame, width, height)
        if gate is not None:
            return gate

        a = frame.subjects[0][calibration.point]
        b = frame.subjects[1][calibration.point]

        ratio = pixel_to_cm_ratio(calibration.distance_cm, width, calibration.fov_radians)
        separation_px = pixel_separation(a, b, width, height, calibration.use_depth)
        size = separation_px * ratio

        if not (math.isfinite(ratio) and math.isfinite(size)):
            return self._unavailable(
                UnavailableReason.NON_FINITE_RESULT, frame, width, height
            )

        return Measurement.available(
            mode=self.mode,
            size_cm=size,
            scale_cm_per_px=ratio,
            segments=(
                self._segment("target", a, b, separation_px, width, height),
            ),
            timestamp=frame.timestamp,
            frame_width=width,
            frame_height=height,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_subjects(
        self, frame: LandmarkFrame, width: int, height: int
    ) -> Optional[Measurement]:
        """Return an unavailable Measurement unless the frame is measurable."""
        if frame.subject_count == 0:
            return self._unavailable(UnavailableReason.NO_SUBJECT, frame, width, height)
        if frame.subject_count != self.calibration.subject_count:
            return self._unavailable(
                UnavailableReason.WRONG_SUBJECT_COUNT, frame, width, height
            )
        if frame.schema != self.calibration.schema:
            return self._unavailable(
                UnavailableReason.SCHEMA_MISMATCH, frame, width, height
            )
        return None

    def _unavailable(
        self,
        reason: UnavailableReason,
        frame: LandmarkFrame,
        width: int,
        height: int,
    ) -> Measurement:
        return Measurement.unavailable(
            reason,
            mode=self.mode,
            timestamp=frame.timestamp,
            frame_width=max(width, 0),
            frame_height=max(height, 0),
        )

    @staticmethod
    def _segment(
        role: str,
        a: Landmark,
        b: Landmark,
        length_px: float,
        width: int,
        height: int,
    ) -> PixelSegment:
        return PixelSegment(
            role=role,
            start=to_pixels(a, width, height),
            end=to_pixels(b, width, height),
            length_px=length_px,
        )

    # =========================================================================
    # Observability
    # =========================================================================

    def reset(self) -> None:
        """Reset counters and the focal length cache."""
        self._focal_width = None
        self._focal_px = 0.0
        self._frame_count = 0
        self._available_count = 0
        self._unavailable_reasons.clear()
        logger.info("GeometryEngine reset")

    @property
    def frame_count(self) -> int:
        """Number of frames measured."""
        return self._frame_count

    def get_metrics(self) -> dict:
        """Get engine metrics for observability."""
        return {
            "mode": self.mode.value,
            "frame_count": self._frame_count,
            "available_count": self._available_count,
            "unavailable_reasons": dict(self._unavailable_reasons),
            "focal_length_px": round(self._focal_px, 2) if self._focal_width else None,
            "fov_degrees": self.calibration.fov_degrees,
        }
