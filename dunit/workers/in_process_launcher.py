import asyncio
import os

from dunit.env import Env
from dunit.models import WorkerKey

from .run_worker import run_worker_async


class TaskHandle:
    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def pid(self) -> int:
        return os.getpid()

    @property
    def task(self):
        return self._task

    def is_alive(self) -> bool:
        return not self._task.done()

    def kill(self, wait: float):
        if not self._task.done():
            self._task.cancel()


class InProcessLauncher:
    """
    Runs each worker as a task on the coordinator's own loop. Workers keep
    their own RPC server and talk to the coordinator over localhost TCP
    exactly as spawned workers do, but share its process and cwd.
    """

    def __init__(self) -> None:
        self.tasks: list[asyncio.Task] = []

    async def launch(
        self,
        key: WorkerKey,
        env: Env,
        working_directory: str,
    ) -> TaskHandle:
        os.makedirs(working_directory, exist_ok=True)

        task = asyncio.create_task(
            run_worker_async(env),
            name=f"dunit-{key.name}",
        )

        task.add_done_callback(self._consume_result)
        self.tasks.append(task)

        return TaskHandle(task)

    def _consume_result(self, task: asyncio.Task):
        if not task.cancelled():
            task.exception()

    async def join(self):
        pending = [task for task in self.tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self.tasks.clear()
