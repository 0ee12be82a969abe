"""
Pipeline State Models
=====================

Lifecycle of the measurement pipeline as seen by consumers.

Transitions:
    LOADING  → RUNNING: detector and video source initialized
    LOADING  → FAILED:  detector or video source failed to start
    RUNNING  → STOPPED: loop cancelled (stream stop, shutdown)
    STOPPED  → RUNNING: loop restarted

FAILED is terminal. The pipeline never retries initialization itself;
whoever built the detector decides whether to try again.
"""

from enum import Enum


class PipelineStatus(str, Enum):
    """
    Discrete pipeline lifecycle states.

    Attributes:
        LOADING: Waiting for camera and landmark model
        RUNNING: Measurement loop is ticking
        STOPPED: Loop cancelled; last measurement kept
        FAILED: Upstream initialization failed (terminal)
    """

    LOADING = "LOADING"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is PipelineStatus.FAILED
