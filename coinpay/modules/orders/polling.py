"""Cancellable confirmation loops, one asyncio task per order id."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

# Returns True when the loop should keep going.
PollStep = Callable[[str], Awaitable[bool]]


@dataclass(slots=True)
class _PollHandle:
    task: asyncio.Task
    stop: asyncio.Event = field(default_factory=asyncio.Event)


class PollScheduler:
    """Runs ``step(order_id)`` every ``interval`` seconds until it says stop.

    Cancellation is cooperative: the stop event is checked before every wait,
    and the wait itself returns early when the event is set. A step is never
    interrupted halfway unless ``shutdown`` runs out of time.
    """

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self._handles: Dict[str, _PollHandle] = {}

    def start(self, order_id: str, step: PollStep) -> bool:
        """Start a loop for ``order_id``; returns False when one is already running."""
        handle = self._handles.get(order_id)
        if handle is not None and not handle.task.done():
            return False
        stop = asyncio.Event()
        task = asyncio.create_task(self._run(order_id, step, stop), name=f"poll-{order_id}")
        self._handles[order_id] = _PollHandle(task=task, stop=stop)
        logger.debug("Polling started for order %s", order_id)
        return True

    def cancel(self, order_id: str) -> None:
        handle = self._handles.get(order_id)
        if handle is not None:
            handle.stop.set()

    def is_active(self, order_id: str) -> bool:
        handle = self._handles.get(order_id)
        return handle is not None and not handle.task.done()

    def active_orders(self) -> list[str]:
        return [order_id for order_id, handle in self._handles.items() if not handle.task.done()]

    async def wait(self, order_id: str) -> None:
        handle = self._handles.get(order_id)
        if handle is not None:
            await asyncio.shield(handle.task)

    async def shutdown(self, timeout: float = 5.0) -> None:
        handles = list(self._handles.values())
        for handle in handles:
            handle.stop.set()
        tasks = [handle.task for handle in handles if not handle.task.done()]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self, order_id: str, step: PollStep, stop: asyncio.Event) -> None:
        try:
            while not stop.is_set():
                try:
                    keep_going = await step(order_id)
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Poll step for order %s raised: %s", order_id, exc)
                    keep_going = True
                if not keep_going or stop.is_set():
                    break
                try:
                    await asyncio.wait_for(stop.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.debug("Polling for order %s cancelled", order_id)
            raise
        finally:
            current = self._handles.get(order_id)
            if current is not None and current.task is asyncio.current_task():
                self._handles.pop(order_id, None)
            logger.debug("Polling stopped for order %s", order_id)
