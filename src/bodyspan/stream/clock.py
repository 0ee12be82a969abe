"""
Frame Clock
===========

Tracks the last video timestamp that was processed.
"""

import logging
from typing import Optional


logger = logging.getLogger(__name__)


class FrameClock:
    """
    Last processed presentation timestamp.

    Monotonic within a session: a timestamp lower than the last one is
    still treated as new (and logged), since sources may jump backwards
    on seek. Reset on stream restart.
    """

    __slots__ = ("_last_timestamp", "_backwards_count")

    def __init__(self) -> None:
        self._last_timestamp: Optional[float] = None
        self._backwards_count: int = 0

    @property
    def last_timestamp(self) -> Optional[float]:
        """Last processed timestamp, None before the first frame."""
        return self._last_timestamp

    @property
    def backwards_count(self) -> int:
        """Number of times the timestamp went backwards."""
        return self._backwards_count

    def is_new(self, timestamp: float) -> bool:
        """Whether a timestamp differs from the last processed one."""
        return timestamp != self._last_timestamp

    def advance(self, timestamp: float) -> None:
        """Record a timestamp as processed."""
        if self._last_timestamp is not None and timestamp < self._last_timestamp:
            self._backwards_count += 1
            logger.warning(
                f"Timestamp went backwards: got {timestamp:.3f}, "
                f"previous was {self._last_timestamp:.3f}"
            )
        self._last_timestamp = timestamp

    def reset(self) -> None:
        """Forget the last timestamp (stream restart)."""
        self._last_timestamp = None
        self._backwards_count = 0
