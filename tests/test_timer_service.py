import asyncio
from datetime import timedelta

import pytest

from conftest import ManualClock, at
from papelaria.services.timer_service import AsyncioTimerService, ZoneClock

TICK = timedelta(milliseconds=10)


class TestZoneClock:
    def test_now_is_aware(self):
        now = ZoneClock("America/Sao_Paulo").now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(hours=-3)


class TestAsyncioTimerService:
    @pytest.mark.asyncio
    async def test_fires_once_with_own_handle(self):
        timers = AsyncioTimerService(ManualClock(at(10)))
        fired = []

        async def callback(handle):
            fired.append(handle)

        handle = timers.schedule_once(TICK, callback, label="pickup_notice")
        assert handle.due_at == at(10) + TICK
        assert timers.pending == 1

        await asyncio.sleep(0.05)

        assert fired == [handle]
        assert timers.pending == 0

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing(self):
        timers = AsyncioTimerService(ManualClock(at(10)))
        fired = []

        async def callback(handle):
            fired.append(handle)

        handle = timers.schedule_once(TICK, callback)
        assert timers.cancel(handle) is True
        assert timers.cancel(handle) is False

        await asyncio.sleep(0.05)
        assert fired == []

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self):
        timers = AsyncioTimerService(ManualClock(at(10)))

        async def boom(handle):
            raise RuntimeError("boom")

        timers.schedule_once(TICK, boom)
        await asyncio.sleep(0.05)

        assert timers.pending == 0

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        timers = AsyncioTimerService(ManualClock(at(10)))

        async def callback(handle):
            pass

        timers.schedule_once(timedelta(minutes=5), callback)
        timers.schedule_once(timedelta(minutes=6), callback)

        assert timers.cancel_all() == 2
        assert timers.pending == 0
