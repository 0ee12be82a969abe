"""
Geometry Module
===============

Pinhole-camera geometry for turning landmark pairs into metric lengths.

Components:
    - projection: Pure focal length / separation / similar-triangle functions
    - GeometryEngine: Calibration-mode dispatch producing Measurements
"""

from bodyspan.geometry.engine import GeometryEngine
from bodyspan.geometry.projection import (
    distance_from_reference,
    focal_length_px,
    length_at_distance,
    pixel_separation,
    pixel_to_cm_ratio,
)

__all__ = [
    "GeometryEngine",
    "focal_length_px",
    "pixel_separation",
    "distance_from_reference",
    "length_at_distance",
    "pixel_to_cm_ratio",
]
