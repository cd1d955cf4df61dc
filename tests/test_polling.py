import asyncio

import pytest

from coinpay.modules.orders import PollScheduler

pytestmark = pytest.mark.anyio


class CountingStep:
    def __init__(self, stop_after: int = 0, fail_first: bool = False) -> None:
        self.calls = 0
        self.stop_after = stop_after
        self.fail_first = fail_first

    async def __call__(self, order_id: str) -> bool:
        self.calls += 1
        if self.fail_first and self.calls == 1:
            raise RuntimeError("transient")
        return not (self.stop_after and self.calls >= self.stop_after)


class TestPollScheduler:
    async def test_runs_until_step_says_stop(self):
        scheduler = PollScheduler(interval=0.001)
        step = CountingStep(stop_after=3)
        assert scheduler.start("o-1", step) is True
        await scheduler.wait("o-1")
        assert step.calls == 3
        assert not scheduler.is_active("o-1")

    async def test_one_loop_per_order(self):
        scheduler = PollScheduler(interval=0.01)
        step = CountingStep()
        assert scheduler.start("o-1", step) is True
        assert scheduler.start("o-1", step) is False
        assert scheduler.active_orders() == ["o-1"]
        await scheduler.shutdown()

    async def test_cancel_stops_during_wait(self):
        scheduler = PollScheduler(interval=60)
        step = CountingStep()
        scheduler.start("o-1", step)
        await asyncio.sleep(0.01)
        scheduler.cancel("o-1")
        await asyncio.wait_for(scheduler.wait("o-1"), timeout=1)
        assert step.calls == 1
        assert scheduler.active_orders() == []

    async def test_step_errors_do_not_end_the_loop(self):
        scheduler = PollScheduler(interval=0.001)
        step = CountingStep(stop_after=2, fail_first=True)
        scheduler.start("o-1", step)
        await scheduler.wait("o-1")
        assert step.calls == 2

    async def test_shutdown_stops_every_loop(self):
        scheduler = PollScheduler(interval=60)
        steps = {order_id: CountingStep() for order_id in ("a", "b", "c")}
        for order_id, step in steps.items():
            scheduler.start(order_id, step)
        await asyncio.sleep(0.01)

        await scheduler.shutdown(timeout=1)

        assert scheduler.active_orders() == []
        assert all(step.calls == 1 for step in steps.values())

    async def test_restart_after_finish(self):
        scheduler = PollScheduler(interval=0.001)
        first = CountingStep(stop_after=1)
        scheduler.start("o-1", first)
        await scheduler.wait("o-1")
        second = CountingStep(stop_after=1)
        assert scheduler.start("o-1", second) is True
        await scheduler.wait("o-1")
        assert second.calls == 1
