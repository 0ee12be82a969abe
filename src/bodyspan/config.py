"""
BodySpan Configuration
======================

This module handles configuration loading for the measurement service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    BODYSPAN_CAMERA_INDEX        -> camera.index
    BODYSPAN_DETECTOR_BACKEND    -> detector.backend
    BODYSPAN_CALIBRATION_MODE    -> calibration.mode
    BODYSPAN_FOV_DEGREES         -> calibration.fov_degrees
    BODYSPAN_REFERENCE_LENGTH_CM -> calibration.reference_length_cm
    BODYSPAN_DISTANCE_CM         -> calibration.distance_cm
    BODYSPAN_REFRESH_HZ          -> scheduler.refresh_hz
    BODYSPAN_OVERLAY_ENABLED     -> overlay.enabled
    BODYSPAN_PORT                -> server.port
    BODYSPAN_LOG_LEVEL           -> logging.level
    PORT                         -> server.port (Cloud Run)

Accuracy-Limiting Assumptions:
    calibration.fov_degrees, calibration.reference_length_cm and
    calibration.distance_cm are assumed, not measured. Every length the
    service reports is only as good as these three numbers.

Example:
    from bodyspan.config import settings

    print(settings.calibration.mode)
    print(settings.detector.backend)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from bodyspan.models.calibration import CalibrationModel, KnownReferenceCalibration
from bodyspan.models.landmarks import LandmarkSchema


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="bodyspan", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class CameraConfig(BaseModel):
    """Webcam configuration."""

    index: int = Field(default=0, ge=0, description="OpenCV device index")
    width: int = Field(default=1280, gt=0, description="Requested frame width")
    height: int = Field(default=720, gt=0, description="Requested frame height")
    target_fps: int = Field(default=30, gt=0, description="Requested capture FPS")


class DetectorConfig(BaseModel):
    """Landmark detector configuration (opaque to the pipeline)."""

    backend: str = Field(
        default="pose",
        description="Detector backend: 'pose', 'hand' or 'mock'",
    )
    max_subjects: int = Field(
        default=2,
        ge=1,
        description="Maximum hands reported by the hand backend",
    )
    min_detection_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    min_tracking_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    model_complexity: int = Field(default=1, ge=0, le=2)


class SchedulerConfig(BaseModel):
    """Display pacing configuration."""

    refresh_hz: float = Field(
        default=60.0,
        gt=0,
        description="Loop rate while the output is visible",
    )
    hidden_refresh_hz: float = Field(
        default=1.0,
        gt=0,
        description="Loop rate while the output is not visible",
    )


class OverlayConfig(BaseModel):
    """Overlay rendering configuration."""

    enabled: bool = Field(default=False, description="Render annotated frames")
    line_width: int = Field(default=3, ge=1, le=20)
    point_radius: int = Field(default=5, ge=1, le=30)
    jpeg_quality: int = Field(default=80, ge=1, le=100)


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")
    push_interval_sec: float = Field(
        default=0.05,
        gt=0,
        description="Polling interval of the measurement WebSocket",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")
    measurement_every_n_frames: int = Field(
        default=30,
        ge=1,
        description="Log a measurement summary every N processed frames",
    )


_BACKEND_SCHEMAS = {
    "pose": LandmarkSchema.POSE,
    "hand": LandmarkSchema.HAND,
}


class Settings(BaseModel):
    """
    Main settings class for BodySpan.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    calibration: CalibrationModel = Field(default_factory=KnownReferenceCalibration)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("calibration", mode="before")
    @classmethod
    def _default_calibration_mode(cls, v):
        """A calibration mapping without `mode` is Known-Reference."""
        if isinstance(v, dict) and "mode" not in v:
            return {**v, "mode": "known_reference"}
        return v

    @model_validator(mode="after")
    def _check_backend_matches_calibration(self) -> "Settings":
        """Fail fast when the detector cannot produce the calibration points."""
        backend = self.detector.backend
        if backend == "mock":
            return self
        if backend not in _BACKEND_SCHEMAS:
            raise ValueError(f"Unknown detector backend: {backend}")
        if _BACKEND_SCHEMAS[backend] != self.calibration.schema:
            raise ValueError(
                f"Detector backend '{backend}' cannot serve "
                f"{self.calibration.mode} calibration "
                f"(needs {self.calibration.schema.value} landmarks)"
            )
        return self


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    # Build settings object
    settings = Settings.model_validate(config_data)

    return settings


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Camera settings
    if env_camera := os.environ.get("BODYSPAN_CAMERA_INDEX"):
        config_data.setdefault("camera", {})["index"] = int(env_camera)

    # Detector settings
    if env_backend := os.environ.get("BODYSPAN_DETECTOR_BACKEND"):
        config_data.setdefault("detector", {})["backend"] = env_backend

    # Calibration settings
    if env_mode := os.environ.get("BODYSPAN_CALIBRATION_MODE"):
        config_data.setdefault("calibration", {})["mode"] = env_mode
    if env_fov := os.environ.get("BODYSPAN_FOV_DEGREES"):
        config_data.setdefault("calibration", {})["fov_degrees"] = float(env_fov)
    if env_ref := os.environ.get("BODYSPAN_REFERENCE_LENGTH_CM"):
        config_data.setdefault("calibration", {})["reference_length_cm"] = float(env_ref)
    if env_dist := os.environ.get("BODYSPAN_DISTANCE_CM"):
        config_data.setdefault("calibration", {})["distance_cm"] = float(env_dist)

    # Scheduler settings
    if env_hz := os.environ.get("BODYSPAN_REFRESH_HZ"):
        config_data.setdefault("scheduler", {})["refresh_hz"] = float(env_hz)

    # Overlay settings
    if env_overlay := os.environ.get("BODYSPAN_OVERLAY_ENABLED"):
        config_data.setdefault("overlay", {})["enabled"] = env_overlay.lower() in ("1", "true", "yes")

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("BODYSPAN_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("BODYSPAN_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
