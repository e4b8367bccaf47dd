import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Protocol
from uuid import uuid4
from zoneinfo import ZoneInfo

from papelaria.logging_config import get_logger
from papelaria.models import TimerHandle

logger = get_logger("timer_service")

TimerCallback = Callable[[TimerHandle], Awaitable[None]]


class Clock(Protocol):
    def now(self) -> datetime: ...


class TimerService(Protocol):
    def schedule_once(self, delay: timedelta, callback: TimerCallback, label: str = "") -> TimerHandle: ...

    def cancel(self, handle: TimerHandle) -> bool: ...

    def cancel_all(self) -> int: ...


class ZoneClock:
    """Wall clock pinned to one named timezone."""

    def __init__(self, tz_name: str):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class AsyncioTimerService:
    """Single-shot delayed callbacks on the running event loop.

    The callback receives its own handle so it can check it is still the one
    its session expects. Exceptions raised by callbacks are logged, never
    propagated to the loop.
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule_once(self, delay: timedelta, callback: TimerCallback, label: str = "") -> TimerHandle:
        handle = TimerHandle(id=uuid4().hex, label=label, due_at=self.clock.now() + delay)
        task = asyncio.get_running_loop().create_task(self._run(handle, delay, callback))
        self._tasks[handle.id] = task
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        task = self._tasks.pop(handle.id, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        count = 0
        for task in list(self._tasks.values()):
            if not task.done():
                task.cancel()
                count += 1
        self._tasks.clear()
        return count

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def _run(self, handle: TimerHandle, delay: timedelta, callback: TimerCallback) -> None:
        await asyncio.sleep(max(delay.total_seconds(), 0))
        # Past this point the timer can no longer be canceled.
        self._tasks.pop(handle.id, None)
        try:
            await callback(handle)
        except Exception:
            logger.exception("Timer callback failed", extra={"context": {"timer": handle.label, "id": handle.id}})
