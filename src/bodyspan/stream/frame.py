"""
Video Frame Model
=================

Narrow view of the video source that the measurement pipeline depends on.

The pipeline only needs a presentation timestamp, the pixel dimensions,
playback flags and the image to hand to the detector. How frames are
acquired (webcam, file, network) stays behind the VideoSource protocol.

Design Rules:
    - VideoFrame is immutable
    - Frame readiness is decided here, not by callers
    - Does NOT decode or manipulate image data
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol


class VideoSourceError(Exception):
    """Raised when a video source cannot be started."""
    pass


@dataclass(frozen=True, slots=True)
class VideoFrame:
    """
    Snapshot of the video surface at one display tick.

    Attributes:
        timestamp: Presentation timestamp in seconds (unchanged while paused)
        width: Frame width in pixels (0 until the source is ready)
        height: Frame height in pixels (0 until the source is ready)
        paused: Playback is paused
        ended: Playback has ended
        image: BGR image (numpy array) or None
    """

    timestamp: float
    width: int
    height: int
    paused: bool = False
    ended: bool = False
    image: Optional[Any] = None

    @property
    def has_dimensions(self) -> bool:
        """Whether the surface has non-zero pixel dimensions."""
        return self.width > 0 and self.height > 0

    @property
    def is_active(self) -> bool:
        """Whether playback is running (neither paused nor ended)."""
        return not (self.paused or self.ended)

    @property
    def is_ready(self) -> bool:
        """Non-zero dimensions and actively playing."""
        return self.has_dimensions and self.is_active

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image."""
        return (
            f"VideoFrame(timestamp={self.timestamp:.3f}, "
            f"size={self.width}x{self.height}, "
            f"paused={self.paused}, ended={self.ended})"
        )


class VideoSource(Protocol):
    """
    Protocol for video sources.

    Implementations:
        - OpenCVVideoSource: webcam capture via OpenCV
        - StaticVideoSource: scripted frames for tests
    """

    def start(self) -> None:
        """Start acquisition. Raises VideoSourceError on failure."""
        ...

    def current_frame(self) -> VideoFrame:
        """Return the frame currently presented."""
        ...

    def stop(self) -> None:
        """Release the source."""
        ...
