"""
Frame Gate
==========

Decides, once per display tick, whether the current video frame should be
sent to the landmark detector.

Rules (checked in order):
    1. Zero-sized surface (source not ready)  → NOT_READY, no-op
    2. Paused or ended playback                → INACTIVE, skip
    3. Timestamp equal to the last processed   → DUPLICATE, skip
    4. Otherwise                               → PROCESS, clock advances

Whatever the decision, the caller reschedules the next tick. Only PROCESS
may lead to a detection call, so each distinct frame is detected at most
once and measurement state is never touched by a skipped tick.
"""

import logging
from enum import Enum
from typing import Optional

from bodyspan.stream.clock import FrameClock
from bodyspan.stream.frame import VideoFrame


logger = logging.getLogger(__name__)


class GateDecision(str, Enum):
    """Outcome of evaluating one tick."""

    NOT_READY = "NOT_READY"
    INACTIVE = "INACTIVE"
    DUPLICATE = "DUPLICATE"
    PROCESS = "PROCESS"


class FrameGateMetrics:
    """Metrics for FrameGate observability."""

    __slots__ = (
        "ticks",
        "processed",
        "duplicates",
        "inactive",
        "not_ready",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.processed: int = 0
        self.duplicates: int = 0
        self.inactive: int = 0
        self.not_ready: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks": self.ticks,
            "processed": self.processed,
            "duplicates": self.duplicates,
            "inactive": self.inactive,
            "not_ready": self.not_ready,
        }


class FrameGate:
    """
    Duplicate-suppression gate in front of the landmark detector.

    Attributes:
        clock: FrameClock holding the last processed timestamp
        metrics: Per-decision counters

    Example:
        gate = FrameGate()

        frame = source.current_frame()
        if gate.evaluate(frame) is GateDecision.PROCESS:
            landmarks = detector.detect(frame.image, frame.timestamp)
    """

    def __init__(self, clock: Optional[FrameClock] = None) -> None:
        self.clock = clock if clock is not None else FrameClock()
        self.metrics = FrameGateMetrics()

    def evaluate(self, frame: VideoFrame) -> GateDecision:
        """
        Classify the current frame.

        Advances the clock only on PROCESS.

        Args:
            frame: Frame currently presented by the video source

        Returns:
            GateDecision for this tick
        """
        self.metrics.ticks += 1

        if not frame.has_dimensions:
            self.metrics.not_ready += 1
            return GateDecision.NOT_READY

        if not frame.is_active:
            self.metrics.inactive += 1
            return GateDecision.INACTIVE

        if not self.clock.is_new(frame.timestamp):
            self.metrics.duplicates += 1
            logger.debug(f"Duplicate frame skipped: t={frame.timestamp:.3f}")
            return GateDecision.DUPLICATE

        self.clock.advance(frame.timestamp)
        self.metrics.processed += 1
        return GateDecision.PROCESS

    def reset(self) -> None:
        """Reset the clock and counters (stream restart)."""
        self.clock.reset()
        self.metrics = FrameGateMetrics()
        logger.info("FrameGate reset")
