"""
BodySpan Main Application
=========================

FastAPI entry point for the live body measurement service.

The service owns one MeasurementLoop: webcam frames are gated once per
display tick, landmarks are detected once per distinct frame, and the
geometry engine publishes each Measurement into a single state slot that
the endpoints below only read.

Endpoints:
    GET  /             - Service information
    GET  /health       - Liveness probe (is process alive?)
    GET  /ready        - Readiness probe (loop running?)
    GET  /measurement  - Latest measurement payload
    GET  /metrics      - Gate, loop and engine counters
    GET  /overlay      - Latest annotated frame (base64 JPEG)
    POST /visibility   - Display visibility (throttles the loop)
    WS   /ws/measurement - Pushes every new measurement
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from bodyspan.config import Settings, settings as default_settings
from bodyspan.geometry import GeometryEngine
from bodyspan.models.output import MeasurementOutput
from bodyspan.models.state import PipelineStatus
from bodyspan.observability import OverlayRenderer
from bodyspan.perception import (
    LandmarkDetector,
    MediaPipeHandDetector,
    MediaPipePoseDetector,
    MockLandmarkDetector,
)
from bodyspan.pipeline import IntervalDisplayScheduler, MeasurementLoop, MeasurementState
from bodyspan.pipeline.scheduler import DisplayScheduler
from bodyspan.stream import OpenCVVideoSource, VideoSource


logger = logging.getLogger(__name__)


# =============================================================================
# Factories
# =============================================================================

def create_detector_factory(settings: Settings) -> Callable[[], LandmarkDetector]:
    """
    Build the detector factory selected by config.

    Fails fast on unknown backends; model loading itself is deferred to
    the loop's start so it can be reported as a pipeline failure.
    """
    backend = settings.detector.backend
    options = settings.detector

    if backend == "mock":
        logger.info("Using MockLandmarkDetector")
        return lambda: MockLandmarkDetector(schema=settings.calibration.schema)

    elif backend == "pose":
        logger.info("Using MediaPipePoseDetector")
        return lambda: MediaPipePoseDetector(
            min_detection_confidence=options.min_detection_confidence,
            min_tracking_confidence=options.min_tracking_confidence,
            model_complexity=options.model_complexity,
        )

    elif backend == "hand":
        logger.info(f"Using MediaPipeHandDetector: max_hands={options.max_subjects}")
        return lambda: MediaPipeHandDetector(
            max_hands=options.max_subjects,
            min_detection_confidence=options.min_detection_confidence,
            min_tracking_confidence=options.min_tracking_confidence,
            model_complexity=options.model_complexity,
        )

    else:
        raise ValueError(f"Unknown detector backend: {backend}")


def create_video_source(settings: Settings) -> VideoSource:
    """Webcam source from config."""
    return OpenCVVideoSource(
        camera_index=settings.camera.index,
        width=settings.camera.width,
        height=settings.camera.height,
        target_fps=settings.camera.target_fps,
    )


@dataclass
class Runtime:
    """Per-application pipeline objects (created in the lifespan)."""

    settings: Settings
    loop: MeasurementLoop
    overlay: OverlayRenderer
    scheduler: DisplayScheduler
    started_at: float

    @property
    def state(self) -> MeasurementState:
        return self.loop.state


def create_runtime(
    settings: Settings,
    video_source: Optional[VideoSource] = None,
    detector_factory: Optional[Callable[[], LandmarkDetector]] = None,
    scheduler: Optional[DisplayScheduler] = None,
) -> Runtime:
    """Wire the measurement loop from settings (collaborators overridable)."""
    if scheduler is None:
        scheduler = IntervalDisplayScheduler(
            refresh_hz=settings.scheduler.refresh_hz,
            hidden_refresh_hz=settings.scheduler.hidden_refresh_hz,
        )

    engine = GeometryEngine(
        settings.calibration,
        log_every_n_frames=settings.logging.measurement_every_n_frames,
    )
    loop = MeasurementLoop(
        source=video_source if video_source is not None else create_video_source(settings),
        detector_factory=(
            detector_factory if detector_factory is not None
            else create_detector_factory(settings)
        ),
        engine=engine,
        scheduler=scheduler,
    )
    overlay = OverlayRenderer(
        enabled=settings.overlay.enabled,
        line_width=settings.overlay.line_width,
        point_radius=settings.overlay.point_radius,
        jpeg_quality=settings.overlay.jpeg_quality,
    )
    return Runtime(
        settings=settings,
        loop=loop,
        overlay=overlay,
        scheduler=scheduler,
        started_at=time.time(),
    )


def _output(runtime: Runtime) -> MeasurementOutput:
    snapshot = runtime.state.snapshot()
    return MeasurementOutput.build(
        status=snapshot.status,
        version=snapshot.version,
        measurement=snapshot.measurement,
        mode=runtime.settings.calibration.mode,
        error=snapshot.error,
    )


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    settings: Settings = default_settings,
    video_source: Optional[VideoSource] = None,
    detector_factory: Optional[Callable[[], LandmarkDetector]] = None,
    scheduler: Optional[DisplayScheduler] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Loaded configuration
        video_source: Override for the webcam source
        detector_factory: Override for the configured detector backend
        scheduler: Override for the display scheduler
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan manager: start the loop, stop it on exit."""
        logger.info(f"Starting {settings.app.name} {settings.app.version}")
        logger.info(
            f"Calibration: mode={settings.calibration.mode}, "
            f"fov={settings.calibration.fov_degrees}° (assumed)"
        )

        runtime = create_runtime(settings, video_source, detector_factory, scheduler)
        app.state.runtime = runtime

        if await runtime.loop.start():
            logger.info("Measurement loop running")
        else:
            logger.error(f"Measurement loop failed to start: {runtime.state.error}")

        yield

        logger.info("Shutting down gracefully...")
        await runtime.loop.stop()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="BodySpan",
        description="Live body measurement from pose landmarks",
        version=settings.app.version,
        lifespan=lifespan,
    )

    def get_runtime(request: Request) -> Runtime:
        return request.app.state.runtime

    # =========================================================================
    # HTTP Endpoints
    # =========================================================================

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": "BodySpan",
            "version": settings.app.version,
            "name": settings.app.name,
            "detector_backend": settings.detector.backend,
            "calibration": settings.calibration.model_dump(mode="json"),
        })

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """
        Liveness probe - is the process alive?

        Always returns 200 if the service is running.
        """
        runtime = get_runtime(request)
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - runtime.started_at, 1),
        })

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """
        Readiness probe - is the measurement loop running?

        Returns 200 while RUNNING, 503 otherwise (with the terminal error
        when the pipeline FAILED).
        """
        runtime = get_runtime(request)
        status = runtime.state.status
        body = {
            "status": "ready" if status == PipelineStatus.RUNNING else "not_ready",
            "pipeline_status": status.value,
            "measurements_published": runtime.state.version,
        }
        if status == PipelineStatus.FAILED:
            body["error"] = runtime.state.error
        return JSONResponse(body, status_code=200 if status == PipelineStatus.RUNNING else 503)

    @app.get("/measurement")
    async def measurement(request: Request) -> JSONResponse:
        """Latest measurement with pipeline status and prompt."""
        return JSONResponse(_output(get_runtime(request)).model_dump(mode="json"))

    @app.get("/metrics")
    async def metrics(request: Request) -> JSONResponse:
        """Detailed metrics for observability."""
        runtime = get_runtime(request)
        loop = runtime.loop
        scheduler_metrics = {}
        if hasattr(runtime.scheduler, "metrics"):
            scheduler_metrics = runtime.scheduler.metrics()
        source_metrics = {}
        if hasattr(loop.source, "metrics"):
            source_metrics = loop.source.metrics()

        return JSONResponse({
            "uptime_seconds": round(time.time() - runtime.started_at, 1),
            "pipeline_status": runtime.state.status.value,
            "version": runtime.state.version,
            "gate": loop.gate.metrics.to_dict(),
            "loop": loop.metrics.to_dict(),
            "engine": loop.engine.get_metrics(),
            "scheduler": scheduler_metrics,
            "source": source_metrics,
        })

    @app.get("/overlay")
    async def overlay(request: Request) -> JSONResponse:
        """Latest processed frame with the measurement drawn on it."""
        runtime = get_runtime(request)
        if not runtime.overlay.is_enabled:
            return JSONResponse({"error": "Overlay disabled"}, status_code=404)

        context = runtime.loop.context
        frame = context.last_frame if context is not None else None
        if frame is None or frame.image is None:
            return JSONResponse({"error": "No frame processed yet"}, status_code=503)

        image_b64 = runtime.overlay.render_jpeg_b64(frame.image, runtime.state.current)
        return JSONResponse({
            "timestamp": frame.timestamp,
            "version": runtime.state.version,
            "image": image_b64,
        })

    @app.post("/visibility")
    async def visibility(request: Request, visible: bool = True) -> JSONResponse:
        """Report display visibility; hidden displays tick at the low rate."""
        runtime = get_runtime(request)
        if not hasattr(runtime.scheduler, "set_visible"):
            return JSONResponse({"error": "Scheduler has no visibility control"}, status_code=409)
        runtime.scheduler.set_visible(visible)
        return JSONResponse({"visible": visible})

    # =========================================================================
    # WebSocket Endpoints
    # =========================================================================

    @app.websocket("/ws/measurement")
    async def measurement_stream(websocket: WebSocket) -> None:
        """WebSocket endpoint pushing each new measurement version."""
        await websocket.accept()
        runtime: Runtime = websocket.app.state.runtime
        logger.info("Client connected to /ws/measurement")

        last_version = -1
        last_status: Optional[PipelineStatus] = None
        try:
            while True:
                snapshot = runtime.state.snapshot()
                if snapshot.version != last_version or snapshot.status != last_status:
                    last_version = snapshot.version
                    last_status = snapshot.status
                    await websocket.send_json(_output(runtime).model_dump(mode="json"))
                # Client messages are ignored; receiving surfaces disconnects
                try:
                    await asyncio.wait_for(
                        websocket.receive_text(),
                        timeout=settings.server.push_interval_sec,
                    )
                except asyncio.TimeoutError:
                    pass
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.warning(f"WebSocket error: {e}")
        finally:
            logger.info("Client disconnected from /ws/measurement")

    return app


app = create_app()


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", default_settings.server.port))

    uvicorn.run(
        "bodyspan.main:app",
        host=default_settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
