"""Tracking of fire-and-forget background tasks for graceful shutdown."""

import asyncio
from typing import Set

from produce_orders.core.logger import setup_logger

logger = setup_logger(__name__)

_pending_tasks: Set[asyncio.Task] = set()


def track_task(task: asyncio.Task) -> None:
    """
    Track a background task for graceful shutdown.

    Args:
        task: The asyncio Task to track
    """
    _pending_tasks.add(task)
    task.add_done_callback(_pending_tasks.discard)


def pending_task_count() -> int:
    return len(_pending_tasks)


async def wait_for_pending_tasks() -> None:
    """Wait for every tracked task to finish (no timeout)."""
    if not _pending_tasks:
        logger.debug("No pending tasks to wait for")
        return

    count = len(_pending_tasks)
    logger.info(f"Waiting for {count} pending tasks to complete...")
    await asyncio.gather(*list(_pending_tasks), return_exceptions=True)
    logger.info(f"All {count} pending tasks completed")
