"""
Landmark Models
===============

Typed landmark data produced by the detection layer.

A detector returns one LandmarkFrame per processed video frame. The frame
holds zero or more Subjects (a person for pose models, a hand for hand
models), each an ordered sequence of Landmarks laid out by a fixed
anatomical schema.

Coordinates:
    x, y are image fractions in [0, 1] with origin at the top-left.
    z is relative depth reported in the same normalized unit as x.

Design Rules:
    - Landmarks, Subjects and LandmarkFrames are immutable
    - Schema conformance is checked when a Subject is built, not when read
    - Points are looked up by schema enum member, never by bare integer
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Sequence, Tuple, Type


class LandmarkSchemaError(ValueError):
    """Raised when landmarks do not conform to their anatomical schema."""
    pass


class PoseLandmark(IntEnum):
    """MediaPipe pose landmark indices (33 points)."""

    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


class HandLandmark(IntEnum):
    """MediaPipe hand landmark indices (21 points)."""

    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class LandmarkSchema(str, Enum):
    """
    Anatomical schema a detector lays its landmarks out by.

    Attributes:
        POSE: Full-body pose, 33 points
        HAND: Single hand, 21 points
    """

    POSE = "pose"
    HAND = "hand"

    @property
    def points(self) -> Type[IntEnum]:
        """Enum of the anatomical points in this schema."""
        return _SCHEMA_POINTS[self]

    @property
    def size(self) -> int:
        """Number of landmarks a subject of this schema carries."""
        return len(self.points)


_SCHEMA_POINTS = {
    LandmarkSchema.POSE: PoseLandmark,
    LandmarkSchema.HAND: HandLandmark,
}


def schema_for_point(point: IntEnum) -> LandmarkSchema:
    """Return the schema an anatomical point enum member belongs to."""
    for schema, enum_cls in _SCHEMA_POINTS.items():
        if isinstance(point, enum_cls):
            return schema
    raise LandmarkSchemaError(f"{point!r} is not part of any landmark schema")


@dataclass(frozen=True, slots=True)
class Landmark:
    """
    Single detected keypoint.

    Attributes:
        x: Horizontal image fraction [0, 1]
        y: Vertical image fraction [0, 1]
        z: Relative depth (same scale as x), None for 2-D detectors
        visibility: Detector confidence that the point is visible
    """

    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Subject:
    """
    Landmarks of one detected person or hand.

    Attributes:
        schema: Anatomical schema the landmarks are laid out by
        landmarks: Ordered landmarks, one per schema point
        label: Optional detector label (e.g. handedness)
        score: Optional detector confidence for the whole subject
    """

    schema: LandmarkSchema
    landmarks: Tuple[Landmark, ...]
    label: Optional[str] = None
    score: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate schema conformance."""
        if not isinstance(self.landmarks, tuple):
            object.__setattr__(self, "landmarks", tuple(self.landmarks))
        if len(self.landmarks) != self.schema.size:
            raise LandmarkSchemaError(
                f"{self.schema} subject needs {self.schema.size} landmarks, "
                f"got {len(self.landmarks)}"
            )

    def __getitem__(self, point: IntEnum) -> Landmark:
        """Look up a landmark by its anatomical point."""
        if not isinstance(point, self.schema.points):
            raise LandmarkSchemaError(
                f"{point!r} is not a {self.schema} landmark"
            )
        return self.landmarks[int(point)]

    def __len__(self) -> int:
        return len(self.landmarks)


@dataclass(frozen=True, slots=True)
class LandmarkFrame:
    """
    Detection result for a single video frame.

    Owned by the detection call that produced it. Never mutated.

    Attributes:
        schema: Schema shared by every subject in the frame
        subjects: Detected subjects, in detector order
        timestamp: Video timestamp the detection ran on (seconds)
    """

    schema: LandmarkSchema
    subjects: Tuple[Subject, ...] = field(default_factory=tuple)
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        """Validate that every subject shares the frame schema."""
        if not isinstance(self.subjects, tuple):
            object.__setattr__(self, "subjects", tuple(self.subjects))
        for subject in self.subjects:
            if subject.schema != self.schema:
                raise LandmarkSchemaError(
                    f"Subject schema {subject.schema} does not match "
                    f"frame schema {self.schema}"
                )

    @property
    def subject_count(self) -> int:
        """Number of detected subjects."""
        return len(self.subjects)

    @classmethod
    def empty(cls, schema: LandmarkSchema, timestamp: float = 0.0) -> "LandmarkFrame":
        """Frame with no detected subjects."""
        return cls(schema=schema, subjects=(), timestamp=timestamp)

    @classmethod
    def from_points(
        cls,
        schema: LandmarkSchema,
        subjects: Sequence[Sequence[Tuple[float, ...]]],
        timestamp: float = 0.0,
    ) -> "LandmarkFrame":
        """
        Build a frame from raw (x, y[, z]) tuples.

        Args:
            schema: Schema every subject is laid out by
            subjects: One sequence of coordinate tuples per subject
            timestamp: Detection timestamp

        Returns:
            Validated LandmarkFrame

        Raises:
            LandmarkSchemaError: If a subject has the wrong landmark count
        """
        built = tuple(
            Subject(
                schema=schema,
                landmarks=tuple(Landmark(*point) for point in points),
            )
            for points in subjects
        )
        return cls(schema=schema, subjects=built, timestamp=timestamp)
