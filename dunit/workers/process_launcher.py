import asyncio
import multiprocessing
import threading
from multiprocessing.context import SpawnContext, SpawnProcess

import psutil

from dunit.env import Env
from dunit.errors import LaunchError
from dunit.models import WorkerKey
from dunit.versions import CURRENT_VERSION, VersionManager

from .run_worker import run_worker


class ProcessHandle:
    def __init__(self, process: SpawnProcess) -> None:
        self._process = process

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def exitcode(self) -> int | None:
        return self._process.exitcode

    def is_alive(self) -> bool:
        if self._process.pid is None or self._process.exitcode is not None:
            return False

        try:
            process = psutil.Process(self._process.pid)
            return process.is_running() and process.status() != psutil.STATUS_ZOMBIE

        except psutil.Error:
            return False

    def kill(self, wait: float):
        if self._process.pid is None:
            return

        children: list[psutil.Process] = []

        try:
            process = psutil.Process(self._process.pid)
            children = process.children(recursive=True)

        except psutil.Error:
            process = None

        for child in children:
            try:
                child.kill()

            except psutil.Error:
                pass

        if process is not None:
            try:
                process.kill()

            except psutil.Error:
                pass

        self._process.join(wait)

        if children:
            psutil.wait_procs(children, timeout=wait)


class MultiprocessingLauncher:
    """
    Spawns every worker as a fresh interpreter through the spawn context.
    Workers of a non-current version run under the interpreter the
    VersionManager maps that version to.
    """

    def __init__(self, versions: VersionManager | None = None) -> None:
        self._versions = versions or VersionManager()
        self._context: SpawnContext = multiprocessing.get_context("spawn")
        self._executable_lock = threading.Lock()

    async def launch(
        self,
        key: WorkerKey,
        env: Env,
        working_directory: str,
    ) -> ProcessHandle:
        loop = asyncio.get_running_loop()

        return await loop.run_in_executor(
            None,
            self._spawn,
            key,
            env.to_launch_parameters(),
            working_directory,
        )

    def _spawn(
        self,
        key: WorkerKey,
        parameters: dict[str, str],
        working_directory: str,
    ) -> ProcessHandle:
        try:
            executable = self._versions.get_executable(key.version)

        except KeyError as err:
            raise LaunchError(f"Cannot launch {key.name} - {err}") from err

        process = self._context.Process(
            target=run_worker,
            args=(parameters, working_directory),
            name=f"dunit-{key.name}",
            daemon=False,
        )

        with self._executable_lock:
            try:
                if key.version != CURRENT_VERSION:
                    self._context.set_executable(executable)

                process.start()

            except (OSError, ValueError, multiprocessing.ProcessError) as err:
                raise LaunchError(
                    f"Could not spawn {key.name} - {type(err).__name__}: {err}"
                ) from err

            finally:
                if key.version != CURRENT_VERSION:
                    self._context.set_executable(
                        self._versions.get_executable(CURRENT_VERSION)
                    )

        return ProcessHandle(process)

    async def join(self):
        # Reaps children that already exited.
        multiprocessing.active_children()
