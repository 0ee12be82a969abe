"""
Landmark Detector
=================

Detector abstraction consumed by the measurement pipeline.

This module provides the LandmarkDetector protocol and a deterministic
MockLandmarkDetector, so the pipeline can run without a model.

Design Rules:
    - detect() is synchronous and side-effect free w.r.t. pipeline state
    - Called at most once per distinct video timestamp
    - Initialization failures raise DetectorInitError (terminal)
    - Only the landmark schema contract is visible to the pipeline;
      thresholds and model options stay inside the detector
"""

import logging
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple

from bodyspan.models.landmarks import (
    HandLandmark,
    LandmarkFrame,
    LandmarkSchema,
    PoseLandmark,
)


logger = logging.getLogger(__name__)


class DetectorInitError(Exception):
    """Raised when a landmark detector cannot be initialized."""
    pass


class LandmarkDetector(Protocol):
    """
    Protocol for landmark detection backends.

    Implementations:
        - MediaPipePoseDetector / MediaPipeHandDetector (production)
        - MockLandmarkDetector (tests, development)
    """

    @property
    def schema(self) -> LandmarkSchema:
        """Anatomical schema of the returned landmarks."""
        ...

    def detect(self, image: Any, timestamp: float) -> LandmarkFrame:
        """
        Detect landmarks in one frame.

        Args:
            image: BGR image (numpy array)
            timestamp: Video timestamp of the frame (seconds)

        Returns:
            LandmarkFrame with zero or more subjects
        """
        ...

    def close(self) -> None:
        """Release model resources."""
        ...


Points = Sequence[Tuple[float, ...]]


def pose_points(
    overrides: Optional[dict] = None,
    default: Tuple[float, float, float] = (0.5, 0.5, 0.0),
) -> List[Tuple[float, float, float]]:
    """
    Full pose subject with every point at `default` except `overrides`.

    Args:
        overrides: Mapping of PoseLandmark → (x, y) or (x, y, z)
        default: Coordinates for points not overridden

    Returns:
        33 coordinate tuples in schema order
    """
    return _schema_points(PoseLandmark, overrides, default)


def hand_points(
    overrides: Optional[dict] = None,
    default: Tuple[float, float, float] = (0.5, 0.5, 0.0),
) -> List[Tuple[float, float, float]]:
    """Full hand subject; see pose_points."""
    return _schema_points(HandLandmark, overrides, default)


def _schema_points(enum_cls, overrides, default):
    points = [tuple(default) for _ in enum_cls]
    for point, coords in (overrides or {}).items():
        coords = tuple(coords)
        if len(coords) == 2:
            coords = coords + (default[2],)
        points[int(enum_cls(point))] = coords
    return points


# Scripted T-pose used by the "mock" backend:
# shoulders 256px apart and wrists 1024px apart on a 1280px frame.
T_POSE = pose_points({
    PoseLandmark.LEFT_SHOULDER: (0.40, 0.50),
    PoseLandmark.RIGHT_SHOULDER: (0.60, 0.50),
    PoseLandmark.LEFT_ELBOW: (0.25, 0.50),
    PoseLandmark.RIGHT_ELBOW: (0.75, 0.50),
    PoseLandmark.LEFT_WRIST: (0.10, 0.50),
    PoseLandmark.RIGHT_WRIST: (0.90, 0.50),
})

# Two hands whose middle fingertips are 512px apart on a 1280px frame.
TWO_HANDS = [
    hand_points({HandLandmark.MIDDLE_FINGER_TIP: (0.30, 0.50)}, default=(0.30, 0.60, 0.0)),
    hand_points({HandLandmark.MIDDLE_FINGER_TIP: (0.70, 0.50)}, default=(0.70, 0.60, 0.0)),
]

_DEFAULT_SCRIPTS = {
    LandmarkSchema.POSE: [[T_POSE]],
    LandmarkSchema.HAND: [TWO_HANDS],
}


class MockLandmarkDetector:
    """
    Deterministic detector replaying scripted subjects.

    Each detect() call returns the next scripted entry (a list of
    subjects, each a list of coordinate tuples); the last entry repeats
    once the script is exhausted. Every call is recorded so tests can
    assert how often detection ran.

    Attributes:
        calls: Timestamps detect() was called with, in order
    """

    def __init__(
        self,
        schema: LandmarkSchema = LandmarkSchema.POSE,
        script: Optional[Iterable[Sequence[Points]]] = None,
        fail_on: Optional[Iterable[int]] = None,
    ) -> None:
        """
        Initialize mock detector.

        Args:
            schema: Schema of the scripted subjects
            script: Per-call subject lists (defaults to a T-pose, or two
                hands for the hand schema)
            fail_on: Zero-based call numbers that raise RuntimeError
        """
        self._schema = schema
        if script is None:
            script = _DEFAULT_SCRIPTS[schema]
        self._script: List[Sequence[Points]] = list(script)
        if not self._script:
            raise ValueError("script must contain at least one entry")
        self._fail_on = set(fail_on or ())
        self.calls: List[float] = []
        self.closed = False

        logger.info(
            f"MockLandmarkDetector initialized: schema={schema.value}, "
            f"script_length={len(self._script)}"
        )

    @property
    def schema(self) -> LandmarkSchema:
        return self._schema

    def detect(self, image: Any, timestamp: float) -> LandmarkFrame:
        call_number = len(self.calls)
        self.calls.append(timestamp)
        if call_number in self._fail_on:
            raise RuntimeError(f"Scripted detector failure on call {call_number}")
        subjects = self._script[min(call_number, len(self._script) - 1)]
        return LandmarkFrame.from_points(self._schema, subjects, timestamp=timestamp)

    def close(self) -> None:
        self.closed = True
