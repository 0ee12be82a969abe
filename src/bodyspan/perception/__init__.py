"""
Perception Module
=================

Landmark detection for the measurement pipeline.

This module provides a black-box abstraction for the landmark model.
The pipeline consumes ONLY LandmarkFrames, never model internals.

Components:
    - LandmarkDetector: Protocol for detection backends
    - MockLandmarkDetector: Deterministic scripted detector
    - MediaPipePoseDetector / MediaPipeHandDetector: MediaPipe backends
      (mediapipe itself is imported only when one is constructed)
"""

from bodyspan.perception.detector import (
    DetectorInitError,
    LandmarkDetector,
    MockLandmarkDetector,
    T_POSE,
    TWO_HANDS,
    hand_points,
    pose_points,
)
from bodyspan.perception.mediapipe_detector import (
    MediaPipeHandDetector,
    MediaPipePoseDetector,
)

__all__ = [
    "DetectorInitError",
    "LandmarkDetector",
    "MockLandmarkDetector",
    "MediaPipePoseDetector",
    "MediaPipeHandDetector",
    "T_POSE",
    "TWO_HANDS",
    "pose_points",
    "hand_points",
]
