"""
MediaPipe Detectors
===================

Production landmark detectors backed by MediaPipe Solutions.

These detectors:
    - Convert BGR frames to RGB with OpenCV
    - Run MediaPipe Pose (one person) or Hands (up to N hands)
    - Map results into schema-validated LandmarkFrames

Design Rules:
    - Fail fast on initialization (DetectorInitError)
    - Thresholds and model options stay inside the detector
    - Never mutate detector output after returning it
"""

import logging
from typing import Any, List

import cv2

from bodyspan.models.landmarks import Landmark, LandmarkFrame, LandmarkSchema, Subject
from bodyspan.perception.detector import DetectorInitError


logger = logging.getLogger(__name__)


def _import_solutions():
    """Import mediapipe.solutions, converting failures to DetectorInitError."""
    try:
        import mediapipe as mp
    except ImportError:
        raise DetectorInitError(
            "mediapipe is required for the pose/hand backends. "
            "Install with: pip install 'bodyspan[mediapipe]'"
        )
    solutions = getattr(mp, "solutions", None)
    if solutions is None:
        raise DetectorInitError(
            "Installed mediapipe does not provide the Solutions API"
        )
    return solutions


class MediaPipePoseDetector:
    """
    Full-body pose detector (33 landmarks, one subject).

    Attributes:
        min_detection_confidence: Person detection threshold
        min_tracking_confidence: Landmark tracking threshold
        model_complexity: 0, 1 or 2 (accuracy vs latency)
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 1,
    ) -> None:
        """
        Initialize MediaPipe Pose.

        Raises:
            DetectorInitError: If mediapipe is missing or the model fails to load
        """
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.model_complexity = model_complexity

        solutions = _import_solutions()
        try:
            self._pose = solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=model_complexity,
                smooth_landmarks=False,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except Exception as e:
            raise DetectorInitError(f"Failed to initialize MediaPipe Pose: {e}")

        logger.info(
            f"MediaPipePoseDetector initialized: complexity={model_complexity}, "
            f"detection={min_detection_confidence}, tracking={min_tracking_confidence}"
        )

    @property
    def schema(self) -> LandmarkSchema:
        return LandmarkSchema.POSE

    def detect(self, image: Any, timestamp: float) -> LandmarkFrame:
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        results = self._pose.process(rgb)

        if results.pose_landmarks is None:
            return LandmarkFrame.empty(self.schema, timestamp=timestamp)

        subject = Subject(
            schema=self.schema,
            landmarks=tuple(
                Landmark(lm.x, lm.y, lm.z, lm.visibility)
                for lm in results.pose_landmarks.landmark
            ),
        )
        return LandmarkFrame(schema=self.schema, subjects=(subject,), timestamp=timestamp)

    def close(self) -> None:
        self._pose.close()
        logger.info("MediaPipePoseDetector closed")


class MediaPipeHandDetector:
    """
    Hand detector (21 landmarks per hand, up to max_hands subjects).

    Attributes:
        max_hands: Maximum number of hands reported
        min_detection_confidence: Palm detection threshold
        min_tracking_confidence: Landmark tracking threshold
    """

    def __init__(
        self,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 1,
    ) -> None:
        """
        Initialize MediaPipe Hands.

        Raises:
            DetectorInitError: If mediapipe is missing or the model fails to load
        """
        self.max_hands = max_hands
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence

        solutions = _import_solutions()
        try:
            self._hands = solutions.hands.Hands(
                static_image_mode=False,
                max_num_hands=max_hands,
                model_complexity=min(model_complexity, 1),
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except Exception as e:
            raise DetectorInitError(f"Failed to initialize MediaPipe Hands: {e}")

        logger.info(
            f"MediaPipeHandDetector initialized: max_hands={max_hands}, "
            f"detection={min_detection_confidence}, tracking={min_tracking_confidence}"
        )

    @property
    def schema(self) -> LandmarkSchema:
        return LandmarkSchema.HAND

    def detect(self, image: Any, timestamp: float) -> LandmarkFrame:
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        results = self._hands.process(rgb)

        hands = results.multi_hand_landmarks or []
        handedness = results.multi_handedness or []

        subjects: List[Subject] = []
        for i, hand in enumerate(hands):
            label = None
            score = None
            if i < len(handedness) and handedness[i].classification:
                label = handedness[i].classification[0].label
                score = handedness[i].classification[0].score
            subjects.append(Subject(
                schema=self.schema,
                landmarks=tuple(Landmark(lm.x, lm.y, lm.z) for lm in hand.landmark),
                label=label,
                score=score,
            ))

        return LandmarkFrame(schema=self.schema, subjects=tuple(subjects), timestamp=timestamp)

    def close(self) -> None:
        self._hands.close()
        logger.info("MediaPipeHandDetector closed")
