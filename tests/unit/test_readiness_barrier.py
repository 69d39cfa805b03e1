import asyncio

from dunit.models import WorkerKey
from dunit.processes import ReadinessBarrier


class TestReadinessBarrier:
    async def test_wait_returns_immediately_when_nothing_is_armed(self) -> None:
        barrier = ReadinessBarrier()

        assert await barrier.wait(0.01) is True

    async def test_wait_returns_false_on_timeout(self) -> None:
        barrier = ReadinessBarrier()
        barrier.arm(WorkerKey(0), "launch-a")

        assert await barrier.wait(0.05) is False
        assert barrier.outstanding == [WorkerKey(0)]

    async def test_wait_returns_true_as_soon_as_the_last_worker_signals(self) -> None:
        barrier = ReadinessBarrier()
        barrier.arm(WorkerKey(0), "launch-a")
        barrier.arm(WorkerKey(1), "launch-b")

        loop = asyncio.get_running_loop()
        loop.call_later(0.01, barrier.signal, WorkerKey(0), "launch-a")
        loop.call_later(0.02, barrier.signal, WorkerKey(1), "launch-b")

        started = loop.time()

        assert await barrier.wait(5) is True
        assert loop.time() - started < 1

    async def test_stale_and_duplicate_signals_are_ignored(self) -> None:
        barrier = ReadinessBarrier()
        barrier.arm(WorkerKey(0), "launch-a")
        barrier.arm(WorkerKey(1), "launch-b")

        assert barrier.signal(WorkerKey(0), "an-older-launch") is False
        assert barrier.signal(WorkerKey(0, "001"), "launch-a") is False
        assert barrier.signal(WorkerKey(0), "launch-a") is True
        assert barrier.signal(WorkerKey(0), "launch-a") is False

        assert await barrier.wait(0.01) is False

    async def test_barrier_can_be_rearmed_after_it_cleared(self) -> None:
        barrier = ReadinessBarrier()
        barrier.arm(WorkerKey(0), "launch-a")
        barrier.signal(WorkerKey(0), "launch-a")

        assert await barrier.wait(0.01) is True

        barrier.arm(WorkerKey(0), "launch-b")

        assert await barrier.wait(0.01) is False

    async def test_disarm_releases_waiters(self) -> None:
        barrier = ReadinessBarrier()
        barrier.arm(WorkerKey(0), "launch-a")

        asyncio.get_running_loop().call_later(0.01, barrier.disarm)

        assert await barrier.wait(5) is True
