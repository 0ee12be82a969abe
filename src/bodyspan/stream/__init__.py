"""
Stream Module
=============

Video frame access and per-frame gating.

This module provides the ingestion layer for BodySpan:
    - VideoFrame / VideoSource: Narrow view of the video surface
    - FrameClock: Last processed timestamp
    - FrameGate: One detection per distinct frame
    - OpenCVVideoSource / StaticVideoSource: Concrete sources

Example:
    from bodyspan.stream import FrameGate, GateDecision, OpenCVVideoSource

    source = OpenCVVideoSource(camera_index=0)
    source.start()
    gate = FrameGate()

    frame = source.current_frame()
    if gate.evaluate(frame) is GateDecision.PROCESS:
        ...
"""

from bodyspan.stream.frame import VideoFrame, VideoSource, VideoSourceError
from bodyspan.stream.clock import FrameClock
from bodyspan.stream.gate import FrameGate, FrameGateMetrics, GateDecision
from bodyspan.stream.camera import OpenCVVideoSource, StaticVideoSource


__all__ = [
    "VideoFrame",
    "VideoSource",
    "VideoSourceError",
    "FrameClock",
    "FrameGate",
    "FrameGateMetrics",
    "GateDecision",
    "OpenCVVideoSource",
    "StaticVideoSource",
]
