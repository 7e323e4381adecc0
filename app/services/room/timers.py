"""Cancellable per-room timers backed by asyncio tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class RoomTimers:
    """Owns at most one pending timer per (room_id, purpose) key.

    Arming a key cancels whatever was pending for it, so a stale timer can
    never fire after it has been replaced. A firing timer drops its own handle
    before running the callback, which lets the callback re-arm the same key.
    """

    def __init__(self) -> None:
        self._tasks: dict[tuple[str, str], asyncio.Task] = {}

    def arm(self, room_id: str, purpose: str, delay: float, callback: TimerCallback) -> None:
        """Schedule callback after delay seconds, replacing any pending timer for the key.

        Must be called from a running event loop.
        """
        key = (room_id, purpose)
        self._cancel_key(key)

        async def run_timer() -> None:
            await asyncio.sleep(delay)
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]
            try:
                await callback()
            except Exception as e:
                logger.error("Error in %s timer for room %s: %s", purpose, room_id, e)

        self._tasks[key] = asyncio.create_task(run_timer(), name=f"{purpose}:{room_id}")
        logger.debug("Armed %s timer for room %s (%.1fs)", purpose, room_id, delay)

    def cancel(self, room_id: str, purpose: str) -> None:
        self._cancel_key((room_id, purpose))

    def cancel_room(self, room_id: str) -> None:
        """Cancel every pending timer belonging to room_id."""
        for key in [k for k in self._tasks if k[0] == room_id]:
            self._cancel_key(key)

    def is_armed(self, room_id: str, purpose: str) -> bool:
        return (room_id, purpose) in self._tasks

    async def cancel_all(self) -> None:
        """Cancel every pending timer and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Cancelled %d room timers", len(tasks))

    def _cancel_key(self, key: tuple[str, str]) -> None:
        task = self._tasks.pop(key, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            logger.debug("Cancelled %s timer for room %s", key[1], key[0])
