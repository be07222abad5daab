"""Bounded calls into the queue store.

Every store call gets a time bound and a latency sample. Writes can be
shielded: if the caller is cancelled or the bound expires, the write keeps
running to completion instead of being aborted halfway.
"""

import asyncio
import time
from typing import Awaitable, TypeVar

from core.errors import StoreError, StoreTimeoutError
from core.observability.logging import get_logger
from core.observability.metrics import get_metrics

logger = get_logger(__name__)

T = TypeVar("T")


def _report_late_outcome(stage: str):
    def callback(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"{stage} failed after caller stopped waiting: {error}")
        else:
            logger.warning(f"{stage} completed after caller stopped waiting")
    return callback


async def call_store(
    operation: Awaitable[T],
    stage: str,
    timeout: float,
    shield: bool = False,
) -> T:
    """Await a store operation with a time bound.

    Args:
        operation: Coroutine returned by a QueueStore method
        stage: Metric/log label, e.g. "store.append"
        timeout: Seconds before giving up
        shield: Let the operation finish even if we stop waiting for it

    Returns:
        The operation's result

    Raises:
        StoreTimeoutError: The bound expired
        StoreError: The backend failed
    """
    started = time.perf_counter()
    task = asyncio.ensure_future(operation)
    try:
        if shield:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        return await asyncio.wait_for(task, timeout)
    except asyncio.TimeoutError as e:
        if shield:
            task.add_done_callback(_report_late_outcome(stage))
        raise StoreTimeoutError(f"{stage} timed out after {timeout:g}s") from e
    except asyncio.CancelledError:
        if shield and not task.done():
            task.add_done_callback(_report_late_outcome(stage))
        raise
    except StoreError:
        raise
    except Exception as e:
        raise StoreError(f"{stage} failed: {e}") from e
    finally:
        get_metrics().record_store_call(stage, (time.perf_counter() - started) * 1000)
