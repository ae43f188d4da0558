"""
Batch Progress

Progress snapshot dataclass and the best-effort delivery helper used by the
batch dispatcher. Delivery order across units is not guaranteed; every settled
unit triggers exactly one notification.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pagetranslate.logger import get_logger

logger = get_logger(__name__)

# progress_sink(completed, total); may return an awaitable
ProgressSink = Callable[[int, int], Any]


@dataclass
class BatchProgress:
    """Progress information for one running batch."""
    completed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.completed * 100 / self.total)

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "total": self.total,
            "percent": self.percent,
        }


# Deliveries still in flight; holds references so pending tasks are not collected
_pending_deliveries = set()


def _delivery_done(task: "asyncio.Future") -> None:
    _pending_deliveries.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Progress sink failed: {error}")


def notify_progress(sink: Optional[ProgressSink], completed: int, total: int) -> None:
    """
    Deliver one progress update without waiting for the sink.

    An awaitable returned by the sink is scheduled on the running loop and never
    gates the batch; a failing or unreachable sink is logged and ignored.
    """
    if sink is None:
        return
    try:
        outcome = sink(completed, total)
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            _pending_deliveries.add(task)
            task.add_done_callback(_delivery_done)
    except Exception as e:
        logger.debug(f"Progress sink failed at {completed}/{total}: {e}")
