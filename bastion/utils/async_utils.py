"""
Bastion - Async Utilities
=========================

Background tasks whose failures end up in the log.

Usage:
    from bastion.utils.async_utils import create_safe_task

    self._sweep_task = create_safe_task(self._sweep_loop(), "AntiSpam Sweep Loop")
"""

import asyncio
from typing import Any, Coroutine

from bastion.core.logger import logger


# =============================================================================
# Safe Background Tasks
# =============================================================================

def _log_task_failure(task: asyncio.Task) -> None:
    # Cancellation is how shutdown stops loops
    if task.cancelled():
        return
    error = task.exception()
    if error is None:
        return
    logger.error("Background Task Failed", [
        ("Task", task.get_name()),
        ("Error Type", type(error).__name__),
        ("Error", str(error)[:200]),
    ])


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Schedule coro on the running loop and log it if it raises.

    The caller keeps the returned task to cancel it later; nothing awaits
    it, so without the callback an exception would be dropped silently.
    """
    task = asyncio.create_task(coro, name=name)
    task.add_done_callback(_log_task_failure)
    return task


__all__ = [
    "create_safe_task",
]
