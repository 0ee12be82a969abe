"""
Pipeline Context
================

Everything one measurement tick needs, owned by the caller.

A PipelineContext is built once the detector is ready and discarded when
the stream stops. It replaces process-wide globals: every tick reads and
writes only through the context it was given.

One tick:
    1. Sample the video source
    2. Ask the FrameGate whether the frame is new and playable
    3. On PROCESS only: detect landmarks, measure, publish
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from bodyspan.geometry.engine import GeometryEngine
from bodyspan.models.landmarks import LandmarkFrame
from bodyspan.perception.detector import LandmarkDetector
from bodyspan.pipeline.state import MeasurementState
from bodyspan.stream.frame import VideoFrame, VideoSource
from bodyspan.stream.gate import FrameGate, GateDecision


logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """
    Collaborators of the measurement pipeline.

    Attributes:
        source: Video source sampled once per tick
        detector: Landmark detector (called once per distinct frame)
        engine: Geometry engine for the active calibration
        state: Measurement slot the tick publishes into
        gate: Duplicate-suppression gate
        last_frame: Last frame that was measured (for overlays)
    """

    source: VideoSource
    detector: LandmarkDetector
    engine: GeometryEngine
    state: MeasurementState
    gate: FrameGate = field(default_factory=FrameGate)
    last_frame: Optional[VideoFrame] = None
    _detect_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    async def tick(self) -> GateDecision:
        """
        Run one tick.

        Detection runs in a worker thread and is awaited, so ticks stay
        serialized while the calling task remains cancellable.

        Returns:
            The gate decision for this tick

        Raises:
            Exception: Whatever the detector raised (state left untouched)
        """
        frame = self.source.current_frame()
        decision = self.gate.evaluate(frame)
        if decision is not GateDecision.PROCESS:
            return decision

        landmarks = await asyncio.to_thread(self._detect, frame.image, frame.timestamp)
        measurement = self.engine.measure(landmarks, frame.width, frame.height)
        self.state.publish(measurement)
        self.last_frame = frame
        return decision

    def _detect(self, image, timestamp: float) -> LandmarkFrame:
        with self._detect_lock:
            return self.detector.detect(image, timestamp)

    def close(self) -> None:
        """
        Release the detector.

        Blocks until a detection still running in its worker thread has
        returned; a cancelled tick does not interrupt that thread.
        """
        with self._detect_lock:
            self.detector.close()
