"""Confetti celebration schedule.

Started by the accept flow and never awaited by it. The sequence is one big
burst followed by paired side bursts every 250 ms whose particle count decays
linearly to zero over the duration. Bursts are handed to an emit sink; the
default sink writes debug log entries.
"""

import asyncio
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from valentine.logging import get_logger

logger = get_logger(__name__)

BIG_BURST_PARTICLES = 150
BIG_BURST_SPREAD = 100
BIG_BURST_ORIGIN_Y = 0.6
SIDE_BURST_PARTICLES = 50
SIDE_BURST_SPREAD = 360
BURST_INTERVAL_S = 0.25
DEFAULT_DURATION_S = 4.0

PALETTE = ("#ec4899", "#f472b6", "#f9a8d4", "#fce7f3")


@dataclass(frozen=True)
class Burst:
    particle_count: float
    spread: int
    origin_x: float
    origin_y: float
    colors: tuple[str, ...] = PALETTE


def _log_burst(burst: Burst) -> None:
    logger.debug(
        "confetti_burst",
        particle_count=round(burst.particle_count, 2),
        origin_x=round(burst.origin_x, 3),
        origin_y=round(burst.origin_y, 3),
    )


class ConfettiCelebration:
    """Self-terminating confetti sequence running as its own asyncio task."""

    def __init__(
        self,
        duration_s: float = DEFAULT_DURATION_S,
        *,
        emit: Callable[[Burst], None] | None = None,
        interval_s: float = BURST_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.duration_s = duration_s
        self._emit = emit or _log_burst
        self._interval_s = interval_s
        self._clock = clock
        self._rng = rng or random.Random()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Emit the big burst and schedule the side bursts. Idempotent."""
        if self._task is not None:
            return
        self._emit(
            Burst(
                particle_count=BIG_BURST_PARTICLES,
                spread=BIG_BURST_SPREAD,
                origin_x=0.5,
                origin_y=BIG_BURST_ORIGIN_Y,
                colors=PALETTE + ("#fdf2f8",),
            )
        )
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        end = self._clock() + self.duration_s
        while True:
            await asyncio.sleep(self._interval_s)
            time_left = end - self._clock()
            if time_left <= 0:
                return
            count = SIDE_BURST_PARTICLES * (time_left / self.duration_s)
            for low, high in ((0.1, 0.3), (0.7, 0.9)):
                self._emit(
                    Burst(
                        particle_count=count,
                        spread=SIDE_BURST_SPREAD,
                        origin_x=self._rng.uniform(low, high),
                        origin_y=self._rng.random() - 0.2,
                    )
                )

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    def stop(self) -> None:
        if self.running:
            self._task.cancel()  # type: ignore[union-attr]
