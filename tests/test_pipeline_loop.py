"""
Measurement Loop Tests
======================

End-to-end runs of the display-paced loop with scripted video frames and
a scripted landmark detector.
"""

import asyncio
import threading
import time

import pytest

from bodyspan.geometry import GeometryEngine
from bodyspan.models.calibration import KnownReferenceCalibration
from bodyspan.models.landmarks import LandmarkFrame, LandmarkSchema
from bodyspan.models.reason_codes import UnavailableReason
from bodyspan.models.state import PipelineStatus
from bodyspan.perception import T_POSE, DetectorInitError, MockLandmarkDetector
from bodyspan.pipeline import MeasurementLoop
from bodyspan.stream import StaticVideoSource, VideoFrame

from conftest import StepScheduler


class SlowDetector:
    """Detector whose detect() blocks long enough to overlap a stop()."""

    schema = LandmarkSchema.POSE

    def __init__(self, delay: float = 0.3) -> None:
        self.delay = delay
        self.started = threading.Event()
        self.busy = False
        self.closed = False
        self.closed_while_busy = False

    def detect(self, image, timestamp):
        self.busy = True
        self.started.set()
        time.sleep(self.delay)
        self.busy = False
        return LandmarkFrame.from_points(self.schema, [T_POSE], timestamp=timestamp)

    def close(self):
        self.closed_while_busy = self.busy
        self.closed = True


class BrokenSource:
    """Video source whose start() fails with an arbitrary error."""

    def __init__(self) -> None:
        self.stopped = False

    def start(self):
        raise OSError("device busy")

    def current_frame(self):
        raise AssertionError("never sampled")

    def stop(self):
        self.stopped = True


def frames(*timestamps, **kwargs):
    return [VideoFrame(timestamp=t, width=1280, height=720, **kwargs) for t in timestamps]


def make_loop(source, detector, ticks, calibration=None):
    scheduler = StepScheduler(ticks)
    loop = MeasurementLoop(
        source=source,
        detector_factory=lambda: detector,
        engine=GeometryEngine(calibration or KnownReferenceCalibration()),
        scheduler=scheduler,
    )
    return loop, scheduler


async def run_ticks(loop, scheduler):
    """Start, let the scheduler's ticks complete, stop."""
    started = await loop.start()
    if started:
        await scheduler.wait_exhausted()
        await loop.stop()
    return started


class TestMeasurementLoop:
    """Tests for MeasurementLoop."""

    def test_each_frame_detected_once(self):
        """Ticks outpacing the video only detect distinct frames."""
        source = StaticVideoSource(frames(0.0, 0.0, 0.0, 0.033, 0.033))
        detector = MockLandmarkDetector()
        loop, scheduler = make_loop(source, detector, ticks=10)

        assert asyncio.run(run_ticks(loop, scheduler))

        assert detector.calls == [0.0, 0.033]
        assert loop.state.version == 2
        assert loop.metrics.ticks == 10
        assert loop.metrics.detections == 2
        assert loop.gate.metrics.duplicates == 8

    def test_measurement_published(self):
        source = StaticVideoSource(frames(0.0))
        loop, scheduler = make_loop(source, MockLandmarkDetector(), ticks=1)

        asyncio.run(run_ticks(loop, scheduler))

        measurement = loop.state.current
        assert measurement.is_available
        assert measurement.size_cm == pytest.approx(180.0)
        assert measurement.distance_cm == pytest.approx(160.67, abs=0.1)

    def test_paused_and_unready_frames_not_detected(self):
        source = StaticVideoSource(
            [VideoFrame(timestamp=0.0, width=0, height=0)]
            + frames(1.0, paused=True)
            + frames(2.0, ended=True)
        )
        detector = MockLandmarkDetector()
        loop, scheduler = make_loop(source, detector, ticks=5)

        asyncio.run(run_ticks(loop, scheduler))

        assert detector.calls == []
        assert loop.state.version == 0
        assert loop.gate.metrics.not_ready == 1
        assert loop.gate.metrics.inactive == 4

    def test_no_subject_publishes_unavailable(self):
        source = StaticVideoSource(frames(0.0))
        detector = MockLandmarkDetector(script=[[]])
        loop, scheduler = make_loop(source, detector, ticks=1)

        asyncio.run(run_ticks(loop, scheduler))

        assert loop.state.version == 1
        assert loop.state.current.reason == UnavailableReason.NO_SUBJECT

    def test_detector_error_skips_tick(self):
        """A failing detection is counted and leaves the state untouched."""
        source = StaticVideoSource(frames(0.0, 1.0, 2.0))
        detector = MockLandmarkDetector(fail_on=[1])
        loop, scheduler = make_loop(source, detector, ticks=3)

        asyncio.run(run_ticks(loop, scheduler))

        assert detector.calls == [0.0, 1.0, 2.0]
        assert loop.metrics.tick_errors == 1
        assert loop.metrics.detections == 2
        assert loop.state.version == 2
        assert loop.state.status == PipelineStatus.STOPPED

    def test_detector_init_failure_is_terminal(self):
        def broken():
            raise DetectorInitError("model file missing")

        source = StaticVideoSource(frames(0.0))
        loop = MeasurementLoop(
            source=source,
            detector_factory=broken,
            engine=GeometryEngine(KnownReferenceCalibration()),
            scheduler=StepScheduler(1),
        )

        async def run():
            first = await loop.start()
            second = await loop.start()
            return first, second

        assert asyncio.run(run()) == (False, False)
        assert loop.state.status == PipelineStatus.FAILED
        assert "landmark detector" in loop.state.error
        assert "model file missing" in loop.state.error
        assert source.stopped
        assert not loop.running

    def test_camera_failure_is_terminal(self):
        source = StaticVideoSource(frames(0.0), fail_on_start=True)
        detector = MockLandmarkDetector()
        loop, scheduler = make_loop(source, detector, ticks=1)

        assert not asyncio.run(loop.start())
        assert loop.state.status == PipelineStatus.FAILED
        assert "camera" in loop.state.error
        assert detector.calls == []

    def test_stop_keeps_last_measurement(self):
        source = StaticVideoSource(frames(0.0))
        detector = MockLandmarkDetector()
        loop, scheduler = make_loop(source, detector, ticks=2)

        async def run():
            await run_ticks(loop, scheduler)
            calls = len(detector.calls)
            await asyncio.sleep(0.01)
            return calls

        calls_at_stop = asyncio.run(run())

        assert len(detector.calls) == calls_at_stop == 1
        assert loop.state.status == PipelineStatus.STOPPED
        assert loop.state.current.size_cm == pytest.approx(180.0)
        assert detector.closed
        assert source.stopped
        assert loop.context is None

    def test_restart_resets_gate(self):
        source = StaticVideoSource(frames(0.0))
        detector = MockLandmarkDetector()
        scheduler = StepScheduler(1)
        loop = MeasurementLoop(
            source=source,
            detector_factory=lambda: detector,
            engine=GeometryEngine(KnownReferenceCalibration()),
            scheduler=scheduler,
        )

        async def run():
            await run_ticks(loop, scheduler)
            scheduler.remaining = 1
            scheduler.exhausted.clear()
            await run_ticks(loop, scheduler)

        asyncio.run(run())

        # Same timestamp is detected again after the restart
        assert detector.calls == [0.0, 0.0]
        assert loop.metrics.restarts == 1
        assert loop.state.version == 2

    def test_unexpected_detector_error_is_terminal(self):
        """Any exception from the detector factory fails the pipeline."""
        def broken():
            raise RuntimeError("GPU delegate unavailable")

        source = StaticVideoSource(frames(0.0))
        loop = MeasurementLoop(
            source=source,
            detector_factory=broken,
            engine=GeometryEngine(KnownReferenceCalibration()),
            scheduler=StepScheduler(1),
        )

        assert asyncio.run(loop.start()) is False
        assert loop.state.status == PipelineStatus.FAILED
        assert "GPU delegate unavailable" in loop.state.error
        assert source.started
        assert source.stopped

    def test_unexpected_source_error_is_terminal(self):
        source = BrokenSource()
        detector = MockLandmarkDetector()
        loop, scheduler = make_loop(source, detector, ticks=1)

        assert asyncio.run(loop.start()) is False
        assert loop.state.status == PipelineStatus.FAILED
        assert "device busy" in loop.state.error
        assert source.stopped
        assert detector.calls == []

    def test_stop_waits_for_running_detection(self):
        """The detector is not closed while a detection is in progress."""
        source = StaticVideoSource(frames(0.0))
        detector = SlowDetector(delay=0.3)
        loop, scheduler = make_loop(source, detector, ticks=1)

        async def run():
            await loop.start()
            assert await asyncio.to_thread(detector.started.wait, 5.0)
            await loop.stop()

        asyncio.run(run())

        assert detector.closed
        assert not detector.closed_while_busy
        assert loop.state.status == PipelineStatus.STOPPED
        # The cancelled tick's result is never published
        assert loop.state.version == 0
