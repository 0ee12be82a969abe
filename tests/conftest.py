"""
Test Configuration
==================

Pytest fixtures and test configuration for BodySpan.
"""

import asyncio
from typing import Optional

import pytest

from bodyspan.models.calibration import FixedDistanceCalibration, KnownReferenceCalibration
from bodyspan.models.landmarks import HandLandmark, LandmarkFrame, LandmarkSchema, PoseLandmark
from bodyspan.perception.detector import T_POSE, hand_points, pose_points


FRAME_WIDTH = 1280
FRAME_HEIGHT = 720


class StepScheduler:
    """
    Display scheduler that delivers a fixed number of ticks.

    Once the ticks are used up, next_tick() parks until the loop task is
    cancelled and `exhausted` is set, so a test can wait for exactly N
    completed ticks.
    """

    def __init__(self, ticks: int) -> None:
        self.remaining = ticks
        self.ticks = 0
        self.exhausted = asyncio.Event()

    async def next_tick(self) -> float:
        if self.remaining <= 0:
            self.exhausted.set()
            await asyncio.Event().wait()
        self.remaining -= 1
        self.ticks += 1
        await asyncio.sleep(0)
        return float(self.ticks)

    async def wait_exhausted(self, timeout: Optional[float] = 5.0) -> None:
        await asyncio.wait_for(self.exhausted.wait(), timeout=timeout)


def pose_frame(subjects, timestamp: float = 0.0) -> LandmarkFrame:
    """Pose LandmarkFrame from coordinate lists."""
    return LandmarkFrame.from_points(LandmarkSchema.POSE, subjects, timestamp=timestamp)


def hand_frame(subjects, timestamp: float = 0.0) -> LandmarkFrame:
    """Hand LandmarkFrame from coordinate lists."""
    return LandmarkFrame.from_points(LandmarkSchema.HAND, subjects, timestamp=timestamp)


def fingertip_hand(x: float, y: float = 0.5):
    """Hand with its middle fingertip at (x, y)."""
    return hand_points({HandLandmark.MIDDLE_FINGER_TIP: (x, y)}, default=(x, y + 0.1, 0.0))


@pytest.fixture
def known_reference() -> KnownReferenceCalibration:
    """Shoulder-width reference, wrist-to-wrist target, 70° FOV."""
    return KnownReferenceCalibration(fov_degrees=70.0, reference_length_cm=45.0)


@pytest.fixture
def fixed_distance() -> FixedDistanceCalibration:
    """Middle fingertips at an assumed 150 cm, 70° FOV."""
    return FixedDistanceCalibration(fov_degrees=70.0, distance_cm=150.0)


@pytest.fixture
def t_pose_frame() -> LandmarkFrame:
    """
    One person in a T-pose on a 1280px frame.

    Shoulders are 256px apart and wrists 1024px apart.
    """
    return pose_frame([T_POSE], timestamp=1.0)


@pytest.fixture
def two_hands_frame() -> LandmarkFrame:
    """Two hands whose middle fingertips are 640px apart on a 1280px frame."""
    return hand_frame([fingertip_hand(0.25), fingertip_hand(0.75)], timestamp=1.0)


@pytest.fixture
def collapsed_shoulders_frame() -> LandmarkFrame:
    """Pose whose reference landmarks coincide."""
    return pose_frame([
        pose_points({
            PoseLandmark.LEFT_SHOULDER: (0.5, 0.5),
            PoseLandmark.RIGHT_SHOULDER: (0.5, 0.5),
            PoseLandmark.LEFT_WRIST: (0.1, 0.5),
            PoseLandmark.RIGHT_WRIST: (0.9, 0.5),
        })
    ])
