# relay_agent/core/scheduler.py
import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Cycle = Callable[[], Awaitable[object]]


async def run_cycle_safely(cycle: Cycle) -> None:
    try:
        await cycle()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.exception(f"Reconciliation cycle crashed: {e}")


async def run_forever(cycle: Cycle, interval: float) -> None:
    """
    Run `cycle` every `interval` seconds.

    The next cycle starts only after the previous one returned, so cycles
    never overlap. A slow cycle delays the next tick instead of queueing it.
    """
    logger.info(f"Scheduler started, interval={interval}s")

    while True:
        started = time.monotonic()
        await run_cycle_safely(cycle)
        elapsed = time.monotonic() - started
        await asyncio.sleep(max(0.0, interval - elapsed))
