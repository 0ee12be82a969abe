"""
Pipeline Module
===============

The frame-synchronized measurement loop.

Components:
    - MeasurementState: Latest Measurement + lifecycle (single slot)
    - PipelineContext: Collaborators of one running session
    - MeasurementLoop: Cooperative display-paced task
    - IntervalDisplayScheduler: Refresh-rate tick source
"""

from bodyspan.pipeline.state import MeasurementState, MeasurementStateReader, StateSnapshot
from bodyspan.pipeline.scheduler import DisplayScheduler, IntervalDisplayScheduler
from bodyspan.pipeline.context import PipelineContext
from bodyspan.pipeline.loop import LoopMetrics, MeasurementLoop

__all__ = [
    "MeasurementState",
    "MeasurementStateReader",
    "StateSnapshot",
    "DisplayScheduler",
    "IntervalDisplayScheduler",
    "PipelineContext",
    "LoopMetrics",
    "MeasurementLoop",
]
