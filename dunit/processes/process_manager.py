import asyncio
import os
import shutil
import uuid
from typing import Dict

from dunit.env import Env, TimeParser
from dunit.errors import LaunchError, NotBoundError, NotFoundError
from dunit.logging import Logger
from dunit.logging.dunit_logging_models import (
    ProcessManagerDebug,
    ProcessManagerInfo,
    ProcessManagerTrace,
    ProcessManagerWarn,
)
from dunit.models import FleetState, WorkerKey, WorkerState
from dunit.naming import NamingDirectory
from dunit.versions import CURRENT_VERSION, VersionManager
from dunit.workers import MultiprocessingLauncher, WorkerProcess

from .readiness_barrier import ReadinessBarrier


class ProcessManager:
    """
    Owns every worker incarnation of a fleet. Launches never wait for
    readiness; callers pair launches with wait_for_vms().
    """

    def __init__(
        self,
        state: FleetState,
        env: Env,
        directory: NamingDirectory,
        launcher=None,
    ) -> None:
        self._state = state
        self._env = env
        self._directory = directory

        if launcher is None:
            launcher = MultiprocessingLauncher(VersionManager.from_env(env))

        self._launcher = launcher
        self._workers: Dict[int, WorkerProcess] = {}
        self._barrier = ReadinessBarrier()
        self._killed = False
        self._kill_wait = TimeParser(env.DUNIT_KILL_WAIT).time

        self._logger = Logger()
        self._logger_name = f"process_manager_{uuid.uuid4().hex[:8]}"

        default_config = {
            "naming_host": state.naming_host,
            "naming_port": state.naming_port,
        }

        self._logger.configure(
            name=self._logger_name,
            path=env.suspect_log_path(),
            models={
                "trace": (ProcessManagerTrace, default_config),
                "debug": (ProcessManagerDebug, default_config),
                "info": (ProcessManagerInfo, default_config),
                "warn": (ProcessManagerWarn, default_config),
            },
        )

    @property
    def workers(self):
        return dict(self._workers)

    @property
    def launcher(self):
        return self._launcher

    @property
    def killed(self) -> bool:
        return self._killed

    @property
    def outstanding(self):
        return self._barrier.outstanding

    def get_worker(self, vm_id: int) -> WorkerProcess | None:
        return self._workers.get(vm_id)

    def working_directory_for(self, key: WorkerKey) -> str:
        return os.path.join(
            self._env.DUNIT_WORKSPACE_DIR,
            "dunit",
            key.name,
        )

    async def launch_vm(
        self,
        vm_id: int,
        version: str = CURRENT_VERSION,
        force_new_working_dir: bool = False,
    ) -> WorkerProcess:
        if self._killed:
            raise LaunchError(
                f"Cannot launch vm{vm_id} - the fleet's workers were already killed"
            )

        existing = self._workers.get(vm_id)
        if (
            existing is not None
            and existing.state not in (WorkerState.DEAD, WorkerState.BOUNCED)
            and existing.is_alive()
        ):
            raise LaunchError(f"Cannot launch vm{vm_id} - {existing.key.name} is still running")

        key = WorkerKey(vm_id, version)
        launch_id = uuid.uuid4().hex
        working_directory = self.working_directory_for(key)

        loop = asyncio.get_running_loop()

        try:
            await loop.run_in_executor(
                None,
                self._prepare_working_directory,
                working_directory,
                force_new_working_dir or self._env.DUNIT_MAKE_NEW_WORKING_DIRS,
            )

        except OSError as err:
            raise LaunchError(
                f"Could not prepare working directory {working_directory} - {err}"
            ) from err

        env = self._env.model_copy(
            update={
                "DUNIT_NAMING_HOST": self._state.naming_host,
                "DUNIT_NAMING_PORT": self._state.naming_port,
                "DUNIT_VM_NUM": vm_id,
                "DUNIT_VM_VERSION": version,
                "DUNIT_LAUNCH_ID": launch_id,
                "DUNIT_LOCATOR_PORT": self._state.locator_port,
            }
        )

        worker = WorkerProcess(key, launch_id, working_directory)
        self._workers[vm_id] = worker
        self._barrier.arm(key, launch_id)

        async with self._logger.context(name=self._logger_name) as ctx:
            await ctx.log_prepared(
                f"Launching {key.name} in {working_directory} with launch id {launch_id}",
                name="debug",
            )

            try:
                worker.handle = await self._launcher.launch(
                    key,
                    env,
                    working_directory,
                )

            except LaunchError:
                worker.state = WorkerState.DEAD
                self._barrier.disarm(vm_id)
                raise

            except Exception as err:
                worker.state = WorkerState.DEAD
                self._barrier.disarm(vm_id)

                raise LaunchError(
                    f"Could not launch {key.name} - {type(err).__name__}: {err}"
                ) from err

            if self._killed:
                # kill_vms() ran while the spawn was in flight.
                self._kill_worker(worker)

                raise LaunchError(
                    f"Cannot launch {key.name} - the fleet's workers were killed during launch"
                )

            await ctx.log_prepared(
                f"Launched {key.name} with pid {worker.pid}",
                name="info",
            )

        return worker

    def _prepare_working_directory(
        self,
        working_directory: str,
        force_new: bool,
    ):
        if force_new and os.path.exists(working_directory):
            shutil.rmtree(working_directory)

        os.makedirs(working_directory, exist_ok=True)

    async def wait_for_vms(self, timeout: float) -> bool:
        ready = await self._barrier.wait(timeout)

        if not ready:
            async with self._logger.context(name=self._logger_name) as ctx:
                await ctx.log_prepared(
                    f"Timed out after {timeout:g} seconds waiting on {', '.join(key.name for key in self._barrier.outstanding)}",
                    name="warn",
                )

        return ready

    def signal_vm_ready(self, key: WorkerKey, launch_id: str) -> bool:
        worker = self._workers.get(key.vm_id)

        if (
            worker is None
            or worker.launch_id != launch_id
            or not self._barrier.signal(key, launch_id)
        ):
            self._logger.stream(self._logger_name).log_prepared_nowait(
                f"Ignored ready signal from {key.name} with launch id {launch_id}",
                name="trace",
            )

            return False

        worker.state = WorkerState.READY

        return True

    def get_stub(self, vm_id: int):
        worker = self._workers.get(vm_id)
        name = worker.key.name if worker else WorkerKey(vm_id).name

        try:
            return self._directory.lookup(name)

        except NotFoundError as err:
            raise NotBoundError(name) from err

    async def bounce(
        self,
        vm_id: int,
        version: str = CURRENT_VERSION,
    ) -> WorkerProcess:
        worker = self._workers.get(vm_id)
        if worker is None:
            raise NotBoundError(WorkerKey(vm_id, version).name)

        async with self._logger.context(name=self._logger_name) as ctx:
            await ctx.log_prepared(
                f"Bouncing {worker.key.name} to version {version}",
                name="info",
            )

        self._kill_worker(worker)
        worker.state = WorkerState.BOUNCED
        self._barrier.disarm(vm_id)

        key = WorkerKey(vm_id, version)
        if key.name != worker.key.name:
            self._directory.unbind(worker.key.name)

        if self._directory.is_bound(key.name):
            self._directory.permit_rebind(key.name)

        return await self.launch_vm(vm_id, version=version)

    def kill_vms(self):
        self._killed = True
        self._barrier.disarm()

        for worker in list(self._workers.values()):
            if worker.state != WorkerState.DEAD:
                self._kill_worker(worker)

            worker.state = WorkerState.DEAD

    def _kill_worker(self, worker: WorkerProcess):
        try:
            worker.kill(self._kill_wait)

        except Exception as err:
            self._logger.stream(self._logger_name).log_prepared_nowait(
                f"Could not kill {worker.key.name} - {type(err).__name__}: {err}",
                name="trace",
            )

    def has_live_vms(self) -> bool:
        return any(worker.is_alive() for worker in self._workers.values())

    async def close(self):
        await self._logger.close()

    def abort(self):
        self._logger.abort()
