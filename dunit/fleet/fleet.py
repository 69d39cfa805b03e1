import asyncio
import atexit
import os
import signal
from typing import Any, Awaitable, Callable, Dict

from dunit.env import Env, TimeParser, load_env
from dunit.errors import (
    FleetStateError,
    LaunchError,
    StartupTimeoutError,
    SuspectStringsError,
)
from dunit.locator import start_locator_service
from dunit.logging import Logger
from dunit.logging.dunit_logging_models import (
    FleetDebug,
    FleetError,
    FleetInfo,
    FleetTrace,
)
from dunit.master import Master
from dunit.models import (
    DEBUGGING_VM_NUM,
    LOCATOR_VM_NUM,
    FleetState,
    FleetStatus,
    MethodResult,
    UnitOfWork,
    WorkerKey,
)
from dunit.naming import NAMING_DIRECTORY_NAME, NamingDirectory
from dunit.processes import ProcessManager
from dunit.protocols import LocalStub, RemoteStub, RPCServer
from dunit.suspects import SuspectLog, SuspectMatcher
from dunit.versions import CURRENT_VERSION
from dunit.workers import WORKER_EXPORT_NAME, RemoteWorker

from .host import Host
from .vm import VM

LocatorStarter = Callable[[], Awaitable[int] | int]


class Fleet:
    """
    Composition root of a test fleet. `launch()` brings up the naming
    directory, the master, a locator worker and the initial pool of
    workers; `shutdown()` takes all of it down again.
    """

    def __init__(
        self,
        env: Env | None = None,
        launcher=None,
        locator_starter: LocatorStarter | None = None,
        matcher: SuspectMatcher | None = None,
    ) -> None:
        if env is None:
            env = load_env(Env)

        self.env = env.model_copy(
            update={
                "DUNIT_WORKSPACE_DIR": os.path.abspath(env.DUNIT_WORKSPACE_DIR),
            }
        )

        self.state = FleetState(
            self.env.DUNIT_NAMING_HOST,
            self.env.DUNIT_NAMING_PORT,
        )

        self.directory = NamingDirectory()
        self.state.directory = self.directory

        self.process_manager: ProcessManager | None = None
        self.master: Master | None = None
        self.host: Host | None = None

        self._launcher = launcher
        self._locator_starter = locator_starter or start_locator_service
        self._matcher = matcher or SuspectMatcher()
        self._suspect_log = SuspectLog(self.env.suspect_log_path())
        self._startup_timeout = TimeParser(self.env.DUNIT_STARTUP_TIMEOUT).time

        self._server: RPCServer | None = None
        self._master_stub: RemoteStub | None = None
        self._debug_worker: RemoteWorker | None = None
        self._launch_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._teardown_registered = False
        self._closed = False
        self._signal_handlers: list[signal.Signals] = []

        self._logger = Logger()
        self._logger.configure(
            name="fleet",
            path=self.env.suspect_log_path(),
            models={
                "trace": (FleetTrace, self._log_config()),
                "debug": (FleetDebug, self._log_config()),
                "info": (FleetInfo, self._log_config()),
                "error": (FleetError, self._log_config()),
            },
        )

    def _log_config(self):
        return {
            "workspace": self.env.DUNIT_WORKSPACE_DIR,
            "initial_vms": self.env.DUNIT_NUM_VMS,
        }

    @property
    def status(self) -> FleetStatus:
        return self.state.status

    @property
    def launched(self) -> bool:
        return self.state.launched

    @property
    def suspect_log(self) -> SuspectLog:
        return self._suspect_log

    async def launch(self) -> Host:
        if self.state.status != FleetStatus.CREATED:
            raise FleetStateError(
                f"Fleet can only be launched once - current status is {self.state.status.value}"
            )

        self.state.status = FleetStatus.BOOTSTRAPPING
        self._loop = asyncio.get_running_loop()

        async with self._logger.context(name="fleet") as ctx:
            try:
                await self._clear_suspect_log()

                self._server = RPCServer(
                    self.env.DUNIT_NAMING_HOST,
                    self.env.DUNIT_NAMING_PORT,
                    self.env,
                )

                await self._server.start()

                self.state.naming_host = self._server.host
                self.state.naming_port = self._server.port

                self._server.export(NAMING_DIRECTORY_NAME, self.directory)

                self.process_manager = ProcessManager(
                    self.state,
                    self.env,
                    self.directory,
                    launcher=self._launcher,
                )

                self.master = Master(
                    self.state,
                    self.env,
                    self.process_manager,
                    self.directory,
                )
                self.state.master = self.master

                self._master_stub = self._server.export(self.env.DUNIT_MASTER, self.master)
                self.directory.bind(self.env.DUNIT_MASTER, self._master_stub)

                self._register_teardown()

                await ctx.log_prepared(
                    f"Naming directory and master listening on {self.state.naming_host}:{self.state.naming_port}",
                    name="debug",
                )

                await self.process_manager.launch_vm(LOCATOR_VM_NUM)
                await self._wait_for_vms()

                self.state.locator_port = await self._start_locator()

                await ctx.log_prepared(
                    f"Locator started on port {self.state.locator_port}",
                    name="info",
                )

                for vm_id in range(self.env.DUNIT_NUM_VMS):
                    await self.process_manager.launch_vm(vm_id)

                await self._wait_for_vms()

                self.host = Host(
                    self.state,
                    self.process_manager,
                    self._master_stub,
                    self._startup_timeout,
                    self._create_debug_vm(),
                )

                self.host.get_locator()
                for vm_id in range(self.env.DUNIT_NUM_VMS):
                    self.host.register(vm_id)

                self.state.status = FleetStatus.RUNNING

                await ctx.log_prepared(
                    f"Fleet running with {self.host.vm_count} VMs and a locator",
                    name="info",
                )

            except BaseException as err:
                self.state.status = FleetStatus.FAILED

                if self.process_manager is not None:
                    self.process_manager.kill_vms()

                if self._master_stub is not None:
                    self._master_stub.close()

                if self._server is not None:
                    self._server.abort()

                self._unregister_teardown()

                await ctx.log_prepared(
                    f"Fleet launch failed - {type(err).__name__}: {err}",
                    name="error",
                )

                raise

        return self.host

    async def launch_if_needed(self) -> Host:
        async with self._launch_lock:
            if self.state.status == FleetStatus.CREATED:
                await self.launch()

            elif self.state.status != FleetStatus.RUNNING:
                raise FleetStateError(
                    f"Fleet is {self.state.status.value} and cannot be used"
                )

        return self.host

    async def _clear_suspect_log(self):
        try:
            await self._loop.run_in_executor(None, self._suspect_log.clear)

        except OSError as err:
            async with self._logger.context(name="fleet") as ctx:
                await ctx.log_prepared(
                    f"Could not clear suspect log {self._suspect_log.path} - {err}",
                    name="debug",
                )

    async def _wait_for_vms(self):
        if not await self.process_manager.wait_for_vms(self._startup_timeout):
            raise StartupTimeoutError(
                self._startup_timeout,
                [key.name for key in self.process_manager.outstanding],
            )

    async def _start_locator(self) -> int:
        locator_stub = self.process_manager.get_stub(LOCATOR_VM_NUM)

        result: MethodResult = await locator_stub.call_with_timeout(
            "execute_method_on_object",
            self._startup_timeout,
            UnitOfWork(self._locator_starter),
        )

        if result.failed:
            raise LaunchError(
                f"Locator failed to start - {result.exception_type}: {result.message}\n{result.stack_trace}"
            )

        return int(result.value)

    def _create_debug_vm(self) -> VM:
        key = WorkerKey(DEBUGGING_VM_NUM)

        self._debug_worker = RemoteWorker(
            key,
            "local",
            log_path=self.env.suspect_log_path(),
        )

        return VM(
            key.vm_id,
            CURRENT_VERSION,
            LocalStub(self._debug_worker, WORKER_EXPORT_NAME),
            working_directory=os.getcwd(),
        )

    def _register_teardown(self):
        if self._teardown_registered:
            return

        atexit.register(self.abort)
        self._teardown_registered = True

        if not self.env.DUNIT_HANDLE_SIGNALS:
            return

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.add_signal_handler(
                    signum,
                    self._handle_signal,
                    signum,
                )

                self._signal_handlers.append(signum)

            except (NotImplementedError, RuntimeError, ValueError):
                # Signal handlers can only be installed from the main thread.
                pass

    def _unregister_teardown(self):
        if self._teardown_registered:
            atexit.unregister(self.abort)
            self._teardown_registered = False

        for signum in self._signal_handlers:
            try:
                self._loop.remove_signal_handler(signum)

            except (RuntimeError, ValueError):
                # Loop already closed.
                pass

        self._signal_handlers.clear()

    def _handle_signal(self, signum: signal.Signals):
        self.abort()

        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)

    async def shutdown(self):
        if self._closed:
            return

        self._closed = True

        if self.state.status == FleetStatus.CREATED:
            self.state.status = FleetStatus.TORN_DOWN
            await self._logger.close()
            return

        async with self._logger.context(name="fleet") as ctx:
            await ctx.log_prepared(
                "Shutting down fleet",
                name="debug",
            )

            if self.process_manager is not None:
                self.process_manager.kill_vms()

                await self.process_manager.launcher.join()

            if self.host is not None:
                for vm in [*self.host.get_all_vms(), self.host.get_locator()]:
                    vm.stub.close()

            if self._master_stub is not None:
                self._master_stub.close()

            if self._server is not None:
                await self._server.close()

            self._unregister_teardown()
            self.state.status = FleetStatus.TORN_DOWN

            await ctx.log_prepared(
                "Fleet shut down",
                name="debug",
            )

        await asyncio.gather(
            *[
                component.close()
                for component in (self.process_manager, self.master, self._debug_worker)
                if component is not None
            ],
            return_exceptions=True,
        )

        await self._logger.close()

    def abort(self):
        """
        Synchronous best-effort teardown for exit hooks and signal
        handlers. Kills every worker and never raises.
        """
        try:
            if self.process_manager is not None:
                self.process_manager.kill_vms()

        except Exception as err:
            self._logger.stream("fleet").log_prepared_nowait(
                f"Could not kill workers during abort - {type(err).__name__}: {err}",
                name="trace",
            )

        try:
            if self._server is not None:
                self._server.abort()

        except Exception as err:
            self._logger.stream("fleet").log_prepared_nowait(
                f"Could not close server during abort - {type(err).__name__}: {err}",
                name="trace",
            )

        if self.state.launched:
            self.state.status = FleetStatus.TORN_DOWN

        for component in (self.process_manager, self.master, self._debug_worker):
            if component is not None:
                component.abort()

        self._logger.abort()

    async def close_and_check_for_suspects(self):
        if not self.state.launched:
            return

        try:
            suspects = await asyncio.get_running_loop().run_in_executor(
                None,
                self._suspect_log.check,
                self._matcher,
            )

        except OSError as err:
            async with self._logger.context(name="fleet") as ctx:
                await ctx.log_prepared(
                    f"Could not check suspect log {self._suspect_log.path} - {err}",
                    name="debug",
                )

            return

        if suspects:
            raise SuspectStringsError("\n".join(suspects))

    def add_ignored_exception(self, pattern: str):
        self._matcher.add_ignored(pattern)

    def remove_ignored_exception(self, pattern: str):
        self._matcher.remove_ignored(pattern)

    def get_locator_port(self) -> int:
        return self.state.locator_port

    def get_locator_string(self) -> str:
        return f"localhost[{self.state.locator_port}]"

    def get_distributed_system_properties(self) -> Dict[str, Any]:
        return {
            "locators": self.get_locator_string(),
            "mcast-port": "0",
            "enable-cluster-configuration": "false",
            "use-cluster-configuration": "false",
            "log-level": self.env.DUNIT_LOG_LEVEL,
        }
