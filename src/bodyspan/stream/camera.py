"""
Camera Sources
==============

Video sources feeding the measurement pipeline.

OpenCVVideoSource:
    A daemon thread reads the webcam as fast as it delivers frames and
    publishes the newest one, stamped with its capture time, under a lock.
    The display-synchronized loop then samples `current_frame()` at its
    own rate; when the display outpaces the camera, consecutive samples
    carry the same timestamp and the FrameGate drops them.

StaticVideoSource:
    Replays a scripted list of frames, one per `current_frame()` call,
    repeating the last one. Used by tests and local runs without a camera.
"""

import logging
import threading
import time
from typing import Iterable, List, Optional

import cv2
import numpy as np

from bodyspan.stream.frame import VideoFrame, VideoSourceError


logger = logging.getLogger(__name__)


class OpenCVVideoSource:
    """
    Webcam video source backed by cv2.VideoCapture.

    Attributes:
        camera_index: OpenCV device index
        width, height: Requested capture size
        target_fps: Requested capture rate

    Example:
        source = OpenCVVideoSource(camera_index=0)
        source.start()
        frame = source.current_frame()
        ...
        source.stop()
    """

    def __init__(
        self,
        camera_index: int = 0,
        width: int = 1280,
        height: int = 720,
        target_fps: int = 30,
        read_failure_limit: int = 30,
    ) -> None:
        """
        Initialize camera source (does not open the device).

        Args:
            camera_index: OpenCV device index
            width: Requested frame width
            height: Requested frame height
            target_fps: Requested capture FPS
            read_failure_limit: Consecutive failed reads before the
                stream is considered ended
        """
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.target_fps = target_fps
        self.read_failure_limit = read_failure_limit

        self._capture: Optional[cv2.VideoCapture] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._running = False

        self._image: Optional[np.ndarray] = None
        self._timestamp: float = 0.0
        self._paused = False
        self._ended = False
        self._frames_captured = 0
        self._read_failures = 0

    def start(self) -> None:
        """
        Open the camera and start the capture thread.

        Raises:
            VideoSourceError: If the device cannot be opened
        """
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            raise VideoSourceError(
                f"Failed to open camera {self.camera_index}. "
                f"Check that it is connected and permissions are granted."
            )
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        capture.set(cv2.CAP_PROP_FPS, self.target_fps)

        self._capture = capture
        self._running = True
        self._ended = False
        self._thread = threading.Thread(
            target=self._capture_loop,
            name="camera_capture",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Camera {self.camera_index} opened: requested "
            f"{self.width}x{self.height}@{self.target_fps}fps"
        )

    def _capture_loop(self) -> None:
        """Read frames until stopped or the device stops delivering."""
        while self._running:
            ok, image = self._capture.read()
            if not ok or image is None:
                self._read_failures += 1
                if self._read_failures >= self.read_failure_limit:
                    logger.error(
                        f"Camera {self.camera_index} stopped delivering frames "
                        f"after {self._read_failures} failed reads"
                    )
                    with self._lock:
                        self._ended = True
                    break
                time.sleep(0.01)
                continue

            self._read_failures = 0
            now = time.monotonic()
            with self._lock:
                if not self._paused:
                    self._image = image
                    self._timestamp = now
                    self._frames_captured += 1

    def current_frame(self) -> VideoFrame:
        """Newest captured frame (zero-sized until the first frame arrives)."""
        with self._lock:
            image = self._image
            if image is None:
                return VideoFrame(
                    timestamp=0.0, width=0, height=0,
                    paused=self._paused, ended=self._ended,
                )
            height, width = image.shape[:2]
            return VideoFrame(
                timestamp=self._timestamp,
                width=width,
                height=height,
                paused=self._paused,
                ended=self._ended,
                image=image,
            )

    def pause(self) -> None:
        """Freeze the presented frame."""
        with self._lock:
            self._paused = True

    def resume(self) -> None:
        """Resume presenting new frames."""
        with self._lock:
            self._paused = False

    def stop(self) -> None:
        """Stop the capture thread and release the device."""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        with self._lock:
            self._ended = True
        logger.info(
            f"Camera {self.camera_index} released after "
            f"{self._frames_captured} frames"
        )

    def metrics(self) -> dict:
        """Get capture metrics for observability."""
        with self._lock:
            return {
                "frames_captured": self._frames_captured,
                "paused": self._paused,
                "ended": self._ended,
            }


class StaticVideoSource:
    """
    Scripted video source.

    Each `current_frame()` call presents the next scripted frame; once the
    script is exhausted the last frame keeps being presented.
    """

    def __init__(self, frames: Iterable[VideoFrame], fail_on_start: bool = False) -> None:
        self._frames: List[VideoFrame] = list(frames)
        if not self._frames:
            raise ValueError("StaticVideoSource needs at least one frame")
        self._fail_on_start = fail_on_start
        self._index = 0
        self.started = False
        self.stopped = False

    def start(self) -> None:
        if self._fail_on_start:
            raise VideoSourceError("Scripted video source failure")
        self.started = True

    def current_frame(self) -> VideoFrame:
        frame = self._frames[min(self._index, len(self._frames) - 1)]
        self._index += 1
        return frame

    def stop(self) -> None:
        self.stopped = True

    def metrics(self) -> dict:
        return {"frames_presented": self._index}
