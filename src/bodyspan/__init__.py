"""
BodySpan
========

Live body measurement from camera landmarks.

This package turns webcam frames into metric body measurements: a pose or
hand model locates anatomical landmarks, and a pinhole camera model with
an assumed field of view converts their pixel separations to centimeters.

Components:
    - stream: Video sources and the per-frame FrameGate
    - perception: Landmark detector protocol and backends
    - geometry: Pinhole projection and the GeometryEngine
    - pipeline: Display-paced MeasurementLoop and MeasurementState
    - observability: Measurement overlays

Example:
    from bodyspan.config import settings
    from bodyspan.geometry import GeometryEngine

    engine = GeometryEngine(settings.calibration)

    # The live service is started via FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "BodySpan Project"

__all__ = [
    "__version__",
]
