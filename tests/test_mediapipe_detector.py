"""
MediaPipe Detector Tests
========================

Result mapping of the MediaPipe backends, run against stand-in
Solutions objects so no model is loaded.
"""

import sys
from types import SimpleNamespace

import numpy as np
import pytest

from bodyspan.models.landmarks import HandLandmark, LandmarkSchema, PoseLandmark
from bodyspan.perception import DetectorInitError, MediaPipeHandDetector, MediaPipePoseDetector
from bodyspan.perception import mediapipe_detector


def _points(count, x=0.5):
    return [SimpleNamespace(x=x, y=0.5, z=-0.1, visibility=0.9) for _ in range(count)]


class FakeSolution:
    """Stands in for mp.solutions.pose.Pose / mp.solutions.hands.Hands."""

    def __init__(self, results, **options):
        self.results = results
        self.options = options
        self.closed = False
        self.frames = []

    def process(self, rgb):
        self.frames.append(rgb)
        return self.results

    def close(self):
        self.closed = True


@pytest.fixture
def image():
    return np.zeros((48, 64, 3), dtype=np.uint8)


def patch_solutions(monkeypatch, pose_results=None, hand_results=None):
    created = {}

    def pose(**options):
        created["pose"] = FakeSolution(pose_results, **options)
        return created["pose"]

    def hands(**options):
        created["hands"] = FakeSolution(hand_results, **options)
        return created["hands"]

    solutions = SimpleNamespace(
        pose=SimpleNamespace(Pose=pose),
        hands=SimpleNamespace(Hands=hands),
    )
    monkeypatch.setattr(mediapipe_detector, "_import_solutions", lambda: solutions)
    return created


class TestMediaPipePoseDetector:
    """Tests for MediaPipePoseDetector."""

    def test_maps_landmarks(self, monkeypatch, image):
        results = SimpleNamespace(pose_landmarks=SimpleNamespace(landmark=_points(33)))
        created = patch_solutions(monkeypatch, pose_results=results)

        detector = MediaPipePoseDetector(model_complexity=2)
        frame = detector.detect(image, 4.0)

        assert frame.schema == LandmarkSchema.POSE
        assert frame.subject_count == 1
        assert frame.timestamp == 4.0
        nose = frame.subjects[0][PoseLandmark.NOSE]
        assert (nose.x, nose.z, nose.visibility) == (0.5, -0.1, 0.9)
        assert created["pose"].options["model_complexity"] == 2

    def test_no_person(self, monkeypatch, image):
        patch_solutions(monkeypatch, pose_results=SimpleNamespace(pose_landmarks=None))
        frame = MediaPipePoseDetector().detect(image, 0.0)
        assert frame.subject_count == 0

    def test_close(self, monkeypatch):
        created = patch_solutions(monkeypatch)
        MediaPipePoseDetector().close()
        assert created["pose"].closed

    def test_model_failure(self, monkeypatch):
        def broken(**options):
            raise RuntimeError("graph failed")

        solutions = SimpleNamespace(pose=SimpleNamespace(Pose=broken))
        monkeypatch.setattr(mediapipe_detector, "_import_solutions", lambda: solutions)
        with pytest.raises(DetectorInitError):
            MediaPipePoseDetector()


class TestMediaPipeHandDetector:
    """Tests for MediaPipeHandDetector."""

    def test_maps_hands_with_handedness(self, monkeypatch, image):
        results = SimpleNamespace(
            multi_hand_landmarks=[
                SimpleNamespace(landmark=_points(21, x=0.2)),
                SimpleNamespace(landmark=_points(21, x=0.8)),
            ],
            multi_handedness=[
                SimpleNamespace(classification=[SimpleNamespace(label="Left", score=0.97)]),
                SimpleNamespace(classification=[SimpleNamespace(label="Right", score=0.95)]),
            ],
        )
        created = patch_solutions(monkeypatch, hand_results=results)

        frame = MediaPipeHandDetector(max_hands=2).detect(image, 1.5)

        assert frame.schema == LandmarkSchema.HAND
        assert frame.subject_count == 2
        assert [s.label for s in frame.subjects] == ["Left", "Right"]
        assert frame.subjects[1][HandLandmark.MIDDLE_FINGER_TIP].x == 0.8
        assert created["hands"].options["max_num_hands"] == 2

    def test_no_hands(self, monkeypatch, image):
        results = SimpleNamespace(multi_hand_landmarks=None, multi_handedness=None)
        patch_solutions(monkeypatch, hand_results=results)
        assert MediaPipeHandDetector().detect(image, 0.0).subject_count == 0


def test_missing_mediapipe(monkeypatch):
    """A missing mediapipe install is an initialization failure."""
    monkeypatch.setitem(sys.modules, "mediapipe", None)
    with pytest.raises(DetectorInitError):
        MediaPipeHandDetector()
