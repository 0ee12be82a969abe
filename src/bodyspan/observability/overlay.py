"""
Overlay Module
==============

Draw measurement geometry onto video frames for display.

This module renders PURELY DESCRIPTIVE artifacts. Overlays never feed
back into measurement: they draw the exact pixel segments carried by the
Measurement, so what is shown and what was computed cannot diverge.

GATED BY CONFIG FLAG. Zero cost when disabled.
"""

import base64
import logging
import time
from typing import Optional, Tuple

import cv2
import numpy as np

from bodyspan.models.measurement import Measurement


logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

# BGR
_ROLE_COLORS = {
    "reference": (255, 128, 0),
    "target": (0, 255, 255),
}
_POINT_COLOR: Color = (0, 0, 255)
_TEXT_COLOR: Color = (255, 255, 255)


class OverlayRenderer:
    """
    Renders measurement segments and values onto a frame copy.

    GATED: Does nothing when disabled.
    """

    def __init__(
        self,
        enabled: bool = False,
        line_width: int = 3,
        point_radius: int = 5,
        jpeg_quality: int = 80,
    ) -> None:
        """
        Initialize overlay renderer.

        Args:
            enabled: Whether overlays are rendered
            line_width: Segment line width in pixels
            point_radius: Endpoint marker radius in pixels
            jpeg_quality: Quality of encoded overlays (1-100)
        """
        self.enabled = enabled
        self.line_width = line_width
        self.point_radius = point_radius
        self.jpeg_quality = jpeg_quality

        if enabled:
            logger.info(
                f"OverlayRenderer enabled: line_width={line_width}px, "
                f"jpeg_quality={jpeg_quality}"
            )
        else:
            logger.info("OverlayRenderer disabled (zero cost)")

    def render(self, image: np.ndarray, measurement: Measurement) -> Optional[np.ndarray]:
        """
        Draw a measurement onto a copy of the image.

        Args:
            image: BGR frame the measurement was computed from
            measurement: Measurement to draw

        Returns:
            Annotated BGR copy, or None when disabled
        """
        if not self.enabled or image is None:
            return None

        start_time = time.time()
        canvas = image.copy()

        for segment in measurement.segments:
            color = _ROLE_COLORS.get(segment.role, _TEXT_COLOR)
            start = (int(round(segment.start[0])), int(round(segment.start[1])))
            end = (int(round(segment.end[0])), int(round(segment.end[1])))
            cv2.line(canvas, start, end, color, self.line_width, cv2.LINE_AA)
            cv2.circle(canvas, start, self.point_radius, _POINT_COLOR, -1)
            cv2.circle(canvas, end, self.point_radius, _POINT_COLOR, -1)

        cv2.putText(
            canvas,
            self.label(measurement),
            (20, 40),
            cv2.FONT_HERSHEY_SIMPLEX,
            1.0,
            _TEXT_COLOR,
            2,
            cv2.LINE_AA,
        )

        elapsed_ms = (time.time() - start_time) * 1000
        if elapsed_ms > 10:
            logger.warning(f"Overlay rendering took {elapsed_ms:.1f}ms (>10ms threshold)")

        return canvas

    def render_jpeg_b64(self, image: np.ndarray, measurement: Measurement) -> Optional[str]:
        """Render and encode as base64 JPEG (None when disabled)."""
        canvas = self.render(image, measurement)
        if canvas is None:
            return None
        ok, buffer = cv2.imencode(
            ".jpg", canvas, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        )
        if not ok:
            logger.error("Failed to encode overlay as JPEG")
            return None
        return base64.b64encode(buffer.tobytes()).decode()

    @staticmethod
    def label(measurement: Measurement) -> str:
        """Text shown on the overlay."""
        if not measurement.is_available:
            return "--"
        text = f"{measurement.size_cm:.1f} cm"
        if measurement.distance_cm is not None:
            text += f"  @ {measurement.distance_cm:.0f} cm"
        return text

    @property
    def is_enabled(self) -> bool:
        """Check if overlays are enabled."""
        return self.enabled
