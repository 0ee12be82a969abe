#!/usr/bin/env python3
"""
Measurement Session Script
==========================

Standalone script to run the measurement pipeline without the web server.

This script:
    1. Opens the configured camera and landmark detector
    2. Runs the MeasurementLoop for a configurable duration
    3. Logs the latest measurement and loop stats every few seconds
    4. Reports final summary

Prerequisites:
    - A webcam (or --mock for scripted frames and landmarks)
    - Install dependencies: pip install -e '.[mediapipe]'

Usage:
    python scripts/run_session.py --duration 30
    python scripts/run_session.py --mock --duration 5
"""

import argparse
import asyncio
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from bodyspan.config import settings
from bodyspan.geometry import GeometryEngine
from bodyspan.main import create_detector_factory, create_video_source
from bodyspan.perception import MockLandmarkDetector
from bodyspan.pipeline import IntervalDisplayScheduler, MeasurementLoop
from bodyspan.stream import StaticVideoSource, VideoFrame


logger = logging.getLogger(__name__)


def _mock_source(fps: float, duration: int) -> StaticVideoSource:
    """Scripted 1280x720 frames with a new timestamp every 1/fps seconds."""
    return StaticVideoSource(
        VideoFrame(timestamp=i / fps, width=1280, height=720)
        for i in range(int(fps * (duration + 1)))
    )


async def run_session(duration: int, report_interval: int, mock: bool) -> dict:
    """
    Run one measurement session.

    Args:
        duration: Session duration in seconds
        report_interval: Seconds between progress reports
        mock: Use scripted frames and landmarks instead of camera and model

    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("Measurement Session")
    logger.info("=" * 60)
    logger.info(f"Calibration mode: {settings.calibration.mode}")
    logger.info(f"Detector backend: {'mock' if mock else settings.detector.backend}")
    logger.info(f"Duration: {duration} seconds")
    logger.info("=" * 60)

    if mock:
        source = _mock_source(fps=30.0, duration=duration)
        detector_factory = lambda: MockLandmarkDetector(schema=settings.calibration.schema)
    else:
        source = create_video_source(settings)
        detector_factory = create_detector_factory(settings)

    loop = MeasurementLoop(
        source=source,
        detector_factory=detector_factory,
        engine=GeometryEngine(settings.calibration),
        scheduler=IntervalDisplayScheduler(refresh_hz=settings.scheduler.refresh_hz),
    )

    start_time = time.time()
    if not await loop.start():
        logger.error(f"❌ SESSION FAILED - {loop.state.error}")
        return {"duration": 0.0, "detections": 0, "error": loop.state.error}

    last_report_time = start_time
    try:
        while time.time() - start_time < duration:
            await asyncio.sleep(0.5)

            if time.time() - last_report_time >= report_interval:
                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {time.time() - start_time:.0f}s)")
                logger.info(f"  Latest: {loop.state.current!r}")
                logger.info(f"  Loop: {loop.metrics.to_dict()}")
                logger.info(f"  Gate: {loop.gate.metrics.to_dict()}")
                last_report_time = time.time()

    except KeyboardInterrupt:
        logger.info("Session interrupted by user")
    finally:
        await loop.stop()

    total_time = time.time() - start_time
    engine_metrics = loop.engine.get_metrics()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Ticks: {loop.metrics.ticks}")
    logger.info(f"Detections: {loop.metrics.detections}")
    logger.info(f"Duplicate frames skipped: {loop.gate.metrics.duplicates}")
    logger.info(f"Tick errors: {loop.metrics.tick_errors}")
    logger.info(f"Available measurements: {engine_metrics['available_count']}")
    logger.info(f"Unavailable reasons: {engine_metrics['unavailable_reasons']}")
    logger.info(f"Last measurement: {loop.state.current!r}")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "detections": loop.metrics.detections,
        "available": engine_metrics["available_count"],
        "tick_errors": loop.metrics.tick_errors,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Run the BodySpan measurement loop without the web server"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=30,
        help="Session duration in seconds (default: 30)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=5,
        help="Seconds between progress reports (default: 5)",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use scripted frames and landmarks (no camera or model needed)",
    )

    args = parser.parse_args()

    result = asyncio.run(run_session(
        duration=args.duration,
        report_interval=args.report_interval,
        mock=args.mock,
    ))

    # Exit with appropriate code
    sys.exit(0 if result["detections"] > 0 else 1)


if __name__ == "__main__":
    main()
