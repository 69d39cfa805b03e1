import asyncio
from collections import defaultdict
from typing import Dict

from dunit.env import Env, TimeParser
from dunit.errors import (
    BounceError,
    LaunchError,
    NameNotBoundError,
    NotFoundError,
    StartupTimeoutError,
)
from dunit.hooks import remote
from dunit.logging import Logger
from dunit.logging.dunit_logging_models import MasterDebug, MasterError, MasterInfo
from dunit.models import BounceResult, FleetState, WorkerKey
from dunit.naming import NamingDirectory
from dunit.processes import ProcessManager
from dunit.versions import CURRENT_VERSION


class Master:
    """
    Coordination endpoint bound in the naming directory. Workers report
    readiness here, and bounces requested from any process run here so
    the coordinator keeps ownership of every worker.
    """

    def __init__(
        self,
        state: FleetState,
        env: Env,
        process_manager: ProcessManager,
        directory: NamingDirectory,
    ) -> None:
        self._state = state
        self._env = env
        self._process_manager = process_manager
        self._directory = directory

        self._ready_lock = asyncio.Lock()
        self._bounce_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._startup_timeout = TimeParser(env.DUNIT_STARTUP_TIMEOUT).time

        self._logger = Logger()
        self._logger.configure(
            name="master",
            path=env.suspect_log_path(),
            models={
                "debug": (MasterDebug, {"master_name": env.DUNIT_MASTER}),
                "info": (MasterInfo, {"master_name": env.DUNIT_MASTER}),
                "error": (MasterError, {"master_name": env.DUNIT_MASTER}),
            },
        )

    @property
    def startup_timeout(self) -> float:
        return self._startup_timeout

    @remote()
    async def signal_vm_ready(self, key: WorkerKey, launch_id: str) -> bool:
        async with self._ready_lock:
            accepted = self._process_manager.signal_vm_ready(key, launch_id)

        if accepted:
            async with self._logger.context(name="master") as ctx:
                await ctx.log_prepared(
                    f"{key.name} signalled ready",
                    name="debug",
                )

        return accepted

    @remote()
    async def ping(self):
        return True

    @remote()
    async def get_locator_port(self) -> int:
        return self._state.locator_port

    @remote()
    async def bounce(
        self,
        vm_id: int,
        version: str = CURRENT_VERSION,
    ) -> BounceResult:
        async with self._bounce_locks[vm_id]:
            async with self._logger.context(name="master") as ctx:
                await ctx.log_prepared(
                    f"Bouncing vm{vm_id} to version {version}",
                    name="info",
                )

                try:
                    await self._process_manager.bounce(vm_id, version=version)

                except LaunchError as err:
                    await ctx.log_prepared(
                        f"Relaunch of vm{vm_id} failed - {err}",
                        name="error",
                    )

                    raise BounceError(
                        vm_id,
                        version,
                        str(err),
                        cause=err,
                    ) from err

                if not await self._process_manager.wait_for_vms(self._startup_timeout):
                    timeout_error = StartupTimeoutError(
                        self._startup_timeout,
                        [key.name for key in self._process_manager.outstanding],
                    )

                    raise BounceError(
                        vm_id,
                        version,
                        str(timeout_error),
                        cause=timeout_error,
                    ) from timeout_error

                name = WorkerKey(vm_id, version).name

                try:
                    stub = self._directory.lookup(name)

                except NotFoundError:
                    not_bound = NameNotBoundError(name)

                    raise BounceError(
                        vm_id,
                        version,
                        str(not_bound),
                        cause=not_bound,
                    ) from not_bound

                await ctx.log_prepared(
                    f"Bounced vm{vm_id} is bound as {name}",
                    name="debug",
                )

                return BounceResult(vm_id, version, stub)

    async def close(self):
        await self._logger.close()

    def abort(self):
        self._logger.abort()
