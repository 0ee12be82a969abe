"""
Configuration Tests
===================

YAML loading, environment overrides and cross-section validation.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from bodyspan.config import Settings, load_config
from bodyspan.models.calibration import FixedDistanceCalibration, KnownReferenceCalibration


REPO_CONFIG = Path(__file__).resolve().parent.parent / "config.yaml"


ENV_VARS = [
    "PORT",
    "BODYSPAN_CAMERA_INDEX",
    "BODYSPAN_DETECTOR_BACKEND",
    "BODYSPAN_CALIBRATION_MODE",
    "BODYSPAN_FOV_DEGREES",
    "BODYSPAN_REFERENCE_LENGTH_CM",
    "BODYSPAN_DISTANCE_CM",
    "BODYSPAN_REFRESH_HZ",
    "BODYSPAN_OVERLAY_ENABLED",
    "BODYSPAN_PORT",
    "BODYSPAN_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from the caller's environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "detector:\n"
        "  backend: hand\n"
        "calibration:\n"
        "  mode: fixed_distance\n"
        "  distance_cm: 120\n"
        "  point: index_finger_tip\n"
        "server:\n"
        "  port: 9000\n"
    )
    return str(path)


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self):
        settings = Settings()
        assert isinstance(settings.calibration, KnownReferenceCalibration)
        assert settings.detector.backend == "pose"
        assert settings.scheduler.refresh_hz == 60.0
        assert settings.overlay.enabled is False

    def test_backend_must_serve_calibration(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({
                "detector": {"backend": "hand"},
                "calibration": {"mode": "known_reference"},
            })

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"detector": {"backend": "kinect"}})

    def test_mock_serves_any_calibration(self):
        settings = Settings.model_validate({
            "detector": {"backend": "mock"},
            "calibration": {"mode": "fixed_distance"},
        })
        assert isinstance(settings.calibration, FixedDistanceCalibration)


class TestLoadConfig:
    """Tests for load_config."""

    def test_yaml_file(self, config_file):
        settings = load_config(config_file)
        assert isinstance(settings.calibration, FixedDistanceCalibration)
        assert settings.calibration.distance_cm == 120.0
        assert settings.server.port == 9000

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("BODYSPAN_DISTANCE_CM", "90")
        monkeypatch.setenv("BODYSPAN_PORT", "8100")
        monkeypatch.setenv("BODYSPAN_OVERLAY_ENABLED", "true")

        settings = load_config(config_file)
        assert settings.calibration.distance_cm == 90.0
        assert settings.server.port == 8100
        assert settings.overlay.enabled is True

    def test_cloud_run_port_wins(self, config_file, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("BODYSPAN_PORT", "8100")
        assert load_config(config_file).server.port == 8080

    def test_env_only_calibration_defaults_mode(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BODYSPAN_FOV_DEGREES", "60")
        settings = load_config(str(tmp_path / "missing.yaml"))
        assert isinstance(settings.calibration, KnownReferenceCalibration)
        assert settings.calibration.fov_degrees == 60.0

    def test_env_switches_mode(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BODYSPAN_CALIBRATION_MODE", "fixed_distance")
        monkeypatch.setenv("BODYSPAN_DETECTOR_BACKEND", "mock")
        settings = load_config(str(tmp_path / "missing.yaml"))
        assert isinstance(settings.calibration, FixedDistanceCalibration)
        assert settings.detector.backend == "mock"

    def test_yaml_calibration_without_mode(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("calibration:\n  reference_length_cm: 40\n")
        settings = load_config(str(path))
        assert isinstance(settings.calibration, KnownReferenceCalibration)
        assert settings.calibration.reference_length_cm == 40.0

    def test_shipped_fixed_distance_example_uses_depth(self, tmp_path):
        lines = REPO_CONFIG.read_text().splitlines()
        start = lines.index("# calibration:")
        block = ["calibration:"]
        for line in lines[start + 1:]:
            if not line.startswith("#   "):
                break
            block.append(line[2:])

        path = tmp_path / "config.yaml"
        path.write_text("detector:\n  backend: hand\n" + "\n".join(block) + "\n")
        settings = load_config(str(path))

        assert isinstance(settings.calibration, FixedDistanceCalibration)
        assert settings.calibration.use_depth is True
        assert settings.calibration.distance_cm == 150.0
