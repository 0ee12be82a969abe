"""
Measurement Loop
================

Cooperative task driving the pipeline once per display frame.

This loop:
    - Starts the video source and builds the detector (init transition)
    - Waits for the next display tick, runs one tick, re-enqueues itself
    - Checks its stop event before every re-enqueue
    - Stops the source and closes the detector on stop (teardown)

Failure Policy:
    - Detector/video initialization failure (of any exception type) →
      MeasurementState FAILED, reported once, never retried here
    - Exception inside one tick → logged and counted, tick skipped,
      measurement state untouched, loop continues
    - Cancellation → no further detection calls, last measurement kept
"""

import asyncio
import logging
from typing import Callable, Optional

from bodyspan.geometry.engine import GeometryEngine
from bodyspan.perception.detector import DetectorInitError, LandmarkDetector
from bodyspan.pipeline.context import PipelineContext
from bodyspan.pipeline.scheduler import DisplayScheduler
from bodyspan.pipeline.state import MeasurementState
from bodyspan.stream.frame import VideoSource, VideoSourceError
from bodyspan.stream.gate import FrameGate, GateDecision


logger = logging.getLogger(__name__)


class LoopMetrics:
    """Metrics for MeasurementLoop observability."""

    __slots__ = (
        "ticks",
        "detections",
        "tick_errors",
        "restarts",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.detections: int = 0
        self.tick_errors: int = 0
        self.restarts: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks": self.ticks,
            "detections": self.detections,
            "tick_errors": self.tick_errors,
            "restarts": self.restarts,
        }


class MeasurementLoop:
    """
    Display-synchronized measurement loop.

    Attributes:
        state: Measurement slot written by the loop
        metrics: Operational counters

    Example:
        loop = MeasurementLoop(
            source=OpenCVVideoSource(),
            detector_factory=MediaPipePoseDetector,
            engine=GeometryEngine(KnownReferenceCalibration()),
            scheduler=IntervalDisplayScheduler(refresh_hz=60),
        )

        if await loop.start():
            ...
        await loop.stop()
    """

    def __init__(
        self,
        source: VideoSource,
        detector_factory: Callable[[], LandmarkDetector],
        engine: GeometryEngine,
        scheduler: DisplayScheduler,
        state: Optional[MeasurementState] = None,
    ) -> None:
        """
        Initialize measurement loop (nothing is started).

        Args:
            source: Video source to sample
            detector_factory: Builds the landmark detector; may be slow
            engine: Geometry engine for the active calibration
            scheduler: Display tick source
            state: Measurement slot (a new one by default)
        """
        self.source = source
        self.detector_factory = detector_factory
        self.engine = engine
        self.scheduler = scheduler
        self.state = state if state is not None else MeasurementState()
        self.metrics = LoopMetrics()

        self._gate = FrameGate()
        self._context: Optional[PipelineContext] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._started_once = False

    @property
    def context(self) -> Optional[PipelineContext]:
        """Active pipeline context (None while not running)."""
        return self._context

    @property
    def gate(self) -> FrameGate:
        return self._gate

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        """
        Initialize collaborators and start ticking.

        Returns:
            True if the loop is running, False if initialization failed
            (the state is then FAILED with the error message)
        """
        if self.running:
            return True
        if self.state.status.is_terminal:
            logger.error("Refusing to start: pipeline is in FAILED state")
            return False

        try:
            self.source.start()
        except VideoSourceError as e:
            self.state.fail(f"Failed to access camera: {e}")
            return False
        except Exception as e:
            logger.exception("Unexpected error starting video source")
            self.source.stop()
            self.state.fail(f"Failed to access camera: {e}")
            return False

        try:
            detector = await asyncio.to_thread(self.detector_factory)
        except DetectorInitError as e:
            self.source.stop()
            self.state.fail(f"Failed to initialize landmark detector: {e}")
            return False
        except Exception as e:
            logger.exception("Unexpected error initializing landmark detector")
            self.source.stop()
            self.state.fail(f"Failed to initialize landmark detector: {e}")
            return False

        if self._started_once:
            self.metrics.restarts += 1
            self._gate.reset()
        self._started_once = True

        self._context = PipelineContext(
            source=self.source,
            detector=detector,
            engine=self.engine,
            state=self.state,
            gate=self._gate,
        )
        self._stop_event = asyncio.Event()
        self.state.mark_running()
        self._task = asyncio.create_task(self.run(), name="measurement_loop")
        logger.info("MeasurementLoop started")
        return True

    async def run(self) -> None:
        """
        Tick until stopped.

        Each iteration waits for the next display frame and runs exactly
        one tick; the next iteration is only scheduled once the tick has
        finished, so detections never overlap.
        """
        context = self._context
        if context is None:
            logger.error("MeasurementLoop.run called before start")
            return

        while not self._stop_event.is_set():
            await self.scheduler.next_tick()
            if self._stop_event.is_set():
                break

            self.metrics.ticks += 1
            try:
                decision = await context.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.metrics.tick_errors += 1
                logger.error(f"Tick failed (tick={self.metrics.ticks}): {e}")
                continue

            if decision is GateDecision.PROCESS:
                self.metrics.detections += 1

        logger.info("MeasurementLoop exited")

    async def stop(self) -> None:
        """
        Stop ticking and tear down collaborators.

        The pending tick is cancelled; no detection call starts after this
        returns. A detection already running in its worker thread is waited
        for before the detector is closed. The last measurement stays
        published.
        """
        self._stop_event.set()

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._context is not None:
            await asyncio.to_thread(self._context.close)
            self.source.stop()
            self._context = None
            self.state.mark_stopped()
            logger.info("MeasurementLoop stopped")
