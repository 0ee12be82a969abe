"""
Display Scheduler
=================

Paces the measurement loop to the display refresh rate.

A browser drives this kind of loop with its per-frame animation callback;
here the loop awaits `next_tick()` instead. Ticks are aligned to a fixed
refresh period: when a tick runs late, the missed boundaries are skipped
rather than replayed in a burst, like a missed vsync. While the output is
not visible the scheduler backs off to a much lower rate.
"""

import asyncio
import logging
import math
from typing import Optional, Protocol


logger = logging.getLogger(__name__)


class DisplayScheduler(Protocol):
    """Protocol for display-synchronized tick sources."""

    async def next_tick(self) -> float:
        """Wait for the next display frame; return its scheduled time."""
        ...


class IntervalDisplayScheduler:
    """
    Fixed-rate display scheduler on the asyncio loop clock.

    Attributes:
        refresh_hz: Tick rate while visible
        hidden_refresh_hz: Tick rate while not visible
        ticks: Number of ticks delivered
        skipped: Number of refresh boundaries missed

    Example:
        scheduler = IntervalDisplayScheduler(refresh_hz=60)
        while running:
            await scheduler.next_tick()
            ...
    """

    def __init__(self, refresh_hz: float = 60.0, hidden_refresh_hz: float = 1.0) -> None:
        if refresh_hz <= 0 or hidden_refresh_hz <= 0:
            raise ValueError("refresh rates must be positive")
        self.refresh_hz = refresh_hz
        self.hidden_refresh_hz = hidden_refresh_hz
        self.ticks: int = 0
        self.skipped: int = 0
        self._visible = True
        self._next_deadline: Optional[float] = None

        logger.info(
            f"IntervalDisplayScheduler initialized: {refresh_hz}Hz "
            f"({hidden_refresh_hz}Hz hidden)"
        )

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def period(self) -> float:
        """Current tick period in seconds."""
        hz = self.refresh_hz if self._visible else self.hidden_refresh_hz
        return 1.0 / hz

    def set_visible(self, visible: bool) -> None:
        """Switch between the visible and hidden refresh rates."""
        if visible != self._visible:
            self._visible = visible
            self._next_deadline = None
            logger.info(f"Display {'visible' if visible else 'hidden'}: period={self.period:.3f}s")

    async def next_tick(self) -> float:
        loop = asyncio.get_running_loop()
        now = loop.time()
        period = self.period

        deadline = self._next_deadline if self._next_deadline is not None else now
        if deadline < now:
            missed = math.floor((now - deadline) / period)
            if missed:
                self.skipped += missed
                deadline += missed * period

        delay = deadline - now
        if delay > 0:
            await asyncio.sleep(delay)
        else:
            # Yield so other tasks (readers, cancellation) get a turn
            await asyncio.sleep(0)

        self._next_deadline = deadline + period
        self.ticks += 1
        return deadline

    def reset(self) -> None:
        self._next_deadline = None

    def metrics(self) -> dict:
        return {
            "ticks": self.ticks,
            "skipped": self.skipped,
            "refresh_hz": self.refresh_hz if self._visible else self.hidden_refresh_hz,
            "visible": self._visible,
        }
