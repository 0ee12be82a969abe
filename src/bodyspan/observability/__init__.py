"""
Observability Module
====================

Presentation helpers for measurement output.

Components:
    - OverlayRenderer: Draws measured segments and values onto frames

Overlays are observability-only and never influence measurement.
"""

from bodyspan.observability.overlay import OverlayRenderer

__all__ = [
    "OverlayRenderer",
]
