"""
Synthetic progress for when the transcoder cannot run.

Stands in for real telemetry so clients still see the job advance. Ticks
are monotonic, each at most ``step`` points apart, and the last one lands
exactly on ``target``.
"""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


async def simulate_progress(
    target: int,
    on_tick: Callable[[int], Awaitable[None]],
    *,
    start: int = 10,
    step: int = 10,
    interval: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """
    Emit progress ticks from ``start`` up to ``target``.

    Each tick waits ``interval`` seconds, advances by ``step`` and calls
    ``on_tick`` with the new value. Returns once ``target`` has been ticked;
    returns immediately when ``start`` is already at or past it.
    """
    if step <= 0:
        raise ValueError("step must be positive")

    current = start
    while current < target:
        await sleep(interval)
        current = min(current + step, target)
        await on_tick(current)
    logger.debug(f"Simulated progress reached {target}%")
