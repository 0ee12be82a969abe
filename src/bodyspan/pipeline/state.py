"""
Measurement State
=================

Single slot holding the latest Measurement and the pipeline lifecycle.

Design Rules:
    - Written ONLY by the pipeline tick and the loop's lifecycle methods
    - Read by the presentation layer through MeasurementStateReader
    - A publish replaces the whole Measurement; readers never observe a
      new distance next to an old size
    - Stopping keeps the last Measurement (no flicker on transient pauses)

Writer and readers share one asyncio event loop, so no lock is needed:
a publish is a single reference swap that never interleaves with a read.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bodyspan.models.measurement import Measurement
from bodyspan.models.reason_codes import UnavailableReason
from bodyspan.models.state import PipelineStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Consistent view of the state slot at one instant."""

    status: PipelineStatus
    version: int
    measurement: Measurement
    error: Optional[str] = None


class MeasurementState:
    """
    Latest measurement plus pipeline lifecycle.

    Example:
        state = MeasurementState()
        reader = state.reader()

        state.publish(measurement)      # pipeline side
        snapshot = reader.snapshot()    # presentation side
    """

    def __init__(self) -> None:
        self._snapshot = StateSnapshot(
            status=PipelineStatus.LOADING,
            version=0,
            measurement=Measurement.unavailable(UnavailableReason.NOT_MEASURED),
        )

    # =========================================================================
    # Pipeline side
    # =========================================================================

    def publish(self, measurement: Measurement) -> None:
        """Replace the current measurement."""
        current = self._snapshot
        self._snapshot = StateSnapshot(
            status=current.status,
            version=current.version + 1,
            measurement=measurement,
            error=current.error,
        )

    def mark_running(self) -> None:
        """Enter RUNNING (ignored once FAILED)."""
        self._transition(PipelineStatus.RUNNING)

    def mark_stopped(self) -> None:
        """Enter STOPPED, keeping the last measurement."""
        self._transition(PipelineStatus.STOPPED)

    def fail(self, error: str) -> None:
        """Enter the terminal FAILED state with an error message."""
        if self._snapshot.status.is_terminal:
            return
        current = self._snapshot
        self._snapshot = StateSnapshot(
            status=PipelineStatus.FAILED,
            version=current.version,
            measurement=current.measurement,
            error=error,
        )
        logger.error(f"Pipeline failed: {error}")

    def _transition(self, status: PipelineStatus) -> None:
        current = self._snapshot
        if current.status.is_terminal:
            logger.warning(
                f"Ignoring transition to {status.value}: pipeline already FAILED"
            )
            return
        if current.status == status:
            return
        self._snapshot = StateSnapshot(
            status=status,
            version=current.version,
            measurement=current.measurement,
            error=current.error,
        )
        logger.info(f"Pipeline status: {current.status.value} -> {status.value}")

    # =========================================================================
    # Reader side
    # =========================================================================

    def snapshot(self) -> StateSnapshot:
        return self._snapshot

    @property
    def current(self) -> Measurement:
        return self._snapshot.measurement

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def status(self) -> PipelineStatus:
        return self._snapshot.status

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    def reader(self) -> "MeasurementStateReader":
        """Read-only handle for the presentation layer."""
        return MeasurementStateReader(self)


class MeasurementStateReader:
    """Read-only view over a MeasurementState."""

    __slots__ = ("_state",)

    def __init__(self, state: MeasurementState) -> None:
        self._state = state

    def snapshot(self) -> StateSnapshot:
        return self._state.snapshot()

    @property
    def current(self) -> Measurement:
        return self._state.current

    @property
    def version(self) -> int:
        return self._state.version

    @property
    def status(self) -> PipelineStatus:
        return self._state.status

    @property
    def error(self) -> Optional[str]:
        return self._state.error
