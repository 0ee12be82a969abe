"""
Measurement State Tests
=======================

Single-slot measurement state and pipeline lifecycle.
"""

import pytest

from bodyspan.models.calibration import CalibrationMode
from bodyspan.models.measurement import Measurement, MeasurementStatus
from bodyspan.models.output import MeasurementOutput
from bodyspan.models.reason_codes import UnavailableReason
from bodyspan.models.state import PipelineStatus
from bodyspan.pipeline import MeasurementState


def wingspan(size: float = 180.0) -> Measurement:
    return Measurement.available(
        mode=CalibrationMode.KNOWN_REFERENCE,
        size_cm=size,
        scale_cm_per_px=0.1758,
        distance_cm=160.67,
    )


class TestMeasurement:
    """Tests for Measurement invariants."""

    def test_unavailable_carries_no_values(self):
        measurement = Measurement.unavailable(UnavailableReason.NO_SUBJECT)
        assert measurement.status == MeasurementStatus.UNAVAILABLE
        assert measurement.size_cm is None
        assert measurement.distance_cm is None
        assert measurement.scale_cm_per_px is None

    def test_unavailable_needs_reason(self):
        with pytest.raises(ValueError):
            Measurement(status=MeasurementStatus.UNAVAILABLE)

    def test_unavailable_rejects_values(self):
        with pytest.raises(ValueError):
            Measurement(
                status=MeasurementStatus.UNAVAILABLE,
                reason=UnavailableReason.NO_SUBJECT,
                size_cm=10.0,
            )

    def test_available_rejects_non_finite(self):
        with pytest.raises(ValueError):
            wingspan(float("inf"))

    def test_to_dict_rounds(self):
        data = wingspan(180.123456).to_dict()
        assert data["status"] == "AVAILABLE"
        assert data["mode"] == "known_reference"
        assert data["size_cm"] == 180.12
        assert data["reason"] is None


class TestMeasurementState:
    """Tests for MeasurementState."""

    def test_initial_state(self):
        state = MeasurementState()
        assert state.status == PipelineStatus.LOADING
        assert state.version == 0
        assert state.current.reason == UnavailableReason.NOT_MEASURED

    def test_publish_replaces_whole_measurement(self):
        state = MeasurementState()
        before = state.snapshot()
        state.publish(wingspan(180.0))

        after = state.snapshot()
        assert after.version == 1
        assert after.measurement.size_cm == 180.0
        assert after.measurement.distance_cm == 160.67
        # Snapshots taken earlier are not affected
        assert before.version == 0
        assert not before.measurement.is_available

    def test_unavailable_publish_replaces_available(self):
        state = MeasurementState()
        state.publish(wingspan())
        state.publish(Measurement.unavailable(UnavailableReason.NO_SUBJECT))
        assert state.current.size_cm is None
        assert state.version == 2

    def test_stop_keeps_last_measurement(self):
        state = MeasurementState()
        state.mark_running()
        state.publish(wingspan(175.0))
        state.mark_stopped()
        assert state.status == PipelineStatus.STOPPED
        assert state.current.size_cm == 175.0

    def test_failed_is_terminal(self):
        state = MeasurementState()
        state.fail("Failed to initialize landmark detector: no model")
        state.mark_running()
        state.fail("second error")

        assert state.status == PipelineStatus.FAILED
        assert state.error == "Failed to initialize landmark detector: no model"

    def test_reader_is_read_only(self):
        state = MeasurementState()
        reader = state.reader()
        state.publish(wingspan())

        assert reader.version == 1
        assert reader.current.size_cm == 180.0
        assert not hasattr(reader, "publish")
        with pytest.raises(AttributeError):
            reader.extra = 1


class TestMeasurementOutput:
    """Tests for the presentation payload."""

    def test_loading_prompt(self):
        output = MeasurementOutput.build(
            status=PipelineStatus.LOADING,
            version=0,
            measurement=Measurement.unavailable(UnavailableReason.NOT_MEASURED),
            mode="known_reference",
        )
        assert output.prompt.startswith("Loading")
        assert output.error is None

    def test_neutral_prompt_without_subject(self):
        output = MeasurementOutput.build(
            status=PipelineStatus.RUNNING,
            version=3,
            measurement=Measurement.unavailable(UnavailableReason.NO_SUBJECT),
            mode="fixed_distance",
        )
        assert output.prompt == "Show both hands to measure distance"
        assert output.error is None
        assert output.measurement.reason == UnavailableReason.NO_SUBJECT

    def test_no_prompt_when_available(self):
        output = MeasurementOutput.build(
            status=PipelineStatus.RUNNING,
            version=1,
            measurement=wingspan(),
            mode="known_reference",
        )
        assert output.prompt is None
        assert output.measurement.size_cm == 180.0

    def test_error_only_when_failed(self):
        measurement = Measurement.unavailable(UnavailableReason.NOT_MEASURED)
        running = MeasurementOutput.build(
            PipelineStatus.RUNNING, 0, measurement, "known_reference", error="stale"
        )
        failed = MeasurementOutput.build(
            PipelineStatus.FAILED, 0, measurement, "known_reference", error="camera busy"
        )
        assert running.error is None
        assert failed.error == "camera busy"
        assert failed.prompt is None
