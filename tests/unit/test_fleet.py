import asyncio
import os

import pytest

from dunit.env import Env
from dunit.errors import (
    FleetStateError,
    LaunchError,
    RemoteInvocationError,
    StartupTimeoutError,
    SuspectStringsError,
)
from dunit.fleet import Fleet
from dunit.locator import LocatorMessage, query_locator, stop_locator_service
from dunit.logging import Logger
from dunit.logging.dunit_logging_models import WorkerError
from dunit.models import DEBUGGING_VM_NUM, LOCATOR_VM_NUM, FleetStatus, WorkerKey, WorkerState
from dunit.workers import InProcessLauncher


class Counter:
    def __init__(self, start: int) -> None:
        self.value = start

    def increment(self, amount: int = 1) -> int:
        self.value += amount
        return self.value


async def write_error(path: str, message: str):
    logger = Logger()
    logger.configure(
        name="test_errors",
        path=path,
        models={
            "error": (
                WorkerError,
                {"vm_id": 0, "version": "000", "launch_id": "test"},
            ),
        },
    )

    async with logger.context(name="test_errors") as ctx:
        await ctx.log_prepared(message, name="error")

    await logger.close()


class TestFleetLaunch:
    async def test_launch_boots_the_locator_and_initial_vms(self, in_process_fleet: Fleet) -> None:
        host = in_process_fleet.host

        assert in_process_fleet.status == FleetStatus.RUNNING
        assert host.vm_count == 2

        names = list(in_process_fleet.directory.list())

        assert sorted(names) == sorted(["DUNIT_MASTER", "vm-2", "vm0", "vm1"])
        assert all(
            worker.state == WorkerState.READY
            for worker in in_process_fleet.process_manager.workers.values()
        )

    async def test_locator_is_started_and_reachable(self, in_process_fleet: Fleet) -> None:
        port = in_process_fleet.get_locator_port()

        assert port > 0
        assert in_process_fleet.get_locator_string() == f"localhost[{port}]"
        assert in_process_fleet.get_distributed_system_properties()["locators"] == f"localhost[{port}]"

        response = await query_locator(
            "127.0.0.1",
            port,
            LocatorMessage(operation="ping"),
        )

        assert response == {"ok": True}

    async def test_master_reports_the_locator_port(self, in_process_fleet: Fleet) -> None:
        assert await in_process_fleet.master.get_locator_port() == in_process_fleet.get_locator_port()

    async def test_launching_twice_raises(self, in_process_fleet: Fleet) -> None:
        with pytest.raises(FleetStateError):
            await in_process_fleet.launch()

        assert await in_process_fleet.launch_if_needed() is in_process_fleet.host

    async def test_startup_timeout_fails_the_launch(
        self,
        workspace: str,
        launcher_factory,
    ) -> None:
        env = Env(
            DUNIT_WORKSPACE_DIR=workspace,
            DUNIT_STARTUP_TIMEOUT="0.1s",
            DUNIT_HANDLE_SIGNALS=False,
        )

        launcher = launcher_factory()
        fleet = Fleet(env, launcher=launcher)

        with pytest.raises(StartupTimeoutError):
            await fleet.launch()

        assert fleet.status == FleetStatus.FAILED
        assert all(handle.kills == 1 for handle in launcher.handles)

        await fleet.shutdown()

        assert fleet.status == FleetStatus.TORN_DOWN

    async def test_locator_failures_fail_the_launch(self, env: Env) -> None:
        def broken_locator():
            raise RuntimeError("port in use")

        fleet = Fleet(
            env,
            launcher=InProcessLauncher(),
            locator_starter=broken_locator,
        )

        with pytest.raises(LaunchError) as error:
            await fleet.launch()

        assert "port in use" in str(error.value)
        assert fleet.status == FleetStatus.FAILED

        await fleet.shutdown()

    async def test_failed_launch_stops_listening(self, env: Env) -> None:
        def broken_locator():
            raise RuntimeError("port in use")

        fleet = Fleet(
            env,
            launcher=InProcessLauncher(),
            locator_starter=broken_locator,
        )

        with pytest.raises(LaunchError):
            await fleet.launch()

        assert fleet.state.naming_port > 0

        with pytest.raises(OSError):
            _, writer = await asyncio.open_connection(
                fleet.state.naming_host,
                fleet.state.naming_port,
            )
            writer.close()

        await fleet.shutdown()

        assert fleet.status == FleetStatus.TORN_DOWN

    async def test_launch_with_no_initial_vms_boots_only_the_locator(
        self,
        env: Env,
    ) -> None:
        fleet = Fleet(
            env.model_copy(update={"DUNIT_NUM_VMS": 0}),
            launcher=InProcessLauncher(),
        )

        host = await fleet.launch()

        try:
            assert fleet.status == FleetStatus.RUNNING
            assert host.vm_count == 0
            assert host.get_all_vms() == []
            assert sorted(fleet.directory.list()) == ["DUNIT_MASTER", "vm-2"]
            assert await host.get_locator().ping() == WorkerKey(LOCATOR_VM_NUM)

            vm = await host.get_vm(0)

            assert vm.vm_id == 0
            assert host.vm_count == 1

        finally:
            await fleet.shutdown()
            await stop_locator_service(fleet.get_locator_port())


class TestVMInvocation:
    async def test_invoke_returns_the_remote_value(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(0)

        assert await vm.invoke(lambda left, right: left + right, 2, 3) == 5

    async def test_invoke_raises_for_remote_failures(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(1)

        def explode():
            raise ValueError("bad state")

        with pytest.raises(RemoteInvocationError) as error:
            await vm.invoke(explode)

        assert error.value.result.exception_type == "builtins.ValueError"
        assert error.value.vm_name == "vm1"

    async def test_invoke_async_returns_a_task(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(0)

        task = vm.invoke_async(lambda: "async")

        assert isinstance(task, asyncio.Task)
        assert await task == "async"

    async def test_invoke_method_calls_a_method_of_a_shipped_object(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(0)

        assert await vm.invoke_method(Counter(1), "increment", 2) == 3

    async def test_debug_vm_runs_in_the_coordinator(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(DEBUGGING_VM_NUM)

        assert await vm.invoke(os.getpid) == os.getpid()


class TestHostGrowth:
    async def test_get_vm_beyond_the_count_fills_every_gap(self, in_process_fleet: Fleet) -> None:
        host = in_process_fleet.host

        vm = await host.get_vm(4)

        assert vm.vm_id == 4
        assert host.vm_count == 5
        assert [vm.vm_id for vm in host.get_all_vms()] == [0, 1, 2, 3, 4]
        assert await vm.invoke(lambda: "grown") == "grown"

    async def test_get_vm_with_another_version_swaps_the_worker(self, in_process_fleet: Fleet) -> None:
        host = in_process_fleet.host

        vm = await host.get_vm(1, version="110")

        assert vm.version == "110"
        assert vm.name == "vm1_v110"
        assert "vm1_v110" in in_process_fleet.directory.list()
        assert "vm1" not in in_process_fleet.directory.list()
        assert await vm.invoke(lambda: 7) == 7

        assert (await host.get_vm(1, version="110")) is vm

    async def test_get_vm_beyond_the_count_with_a_version(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(3, version="110")

        assert vm.version == "110"
        assert (await in_process_fleet.host.get_vm(2)).version == "000"


class TestBounce:
    async def test_bounce_with_the_same_version_relaunches(self, in_process_fleet: Fleet) -> None:
        vm = await in_process_fleet.host.get_vm(0)
        worker = in_process_fleet.process_manager.get_worker(0)
        old_stub = vm.stub

        await vm.bounce()

        relaunched = in_process_fleet.process_manager.get_worker(0)

        assert relaunched.launch_id != worker.launch_id
        assert vm.stub != old_stub
        assert await vm.ping() == relaunched.key

    async def test_bounce_through_the_master_stub(self, in_process_fleet: Fleet) -> None:
        master_stub = in_process_fleet.directory.lookup(in_process_fleet.env.DUNIT_MASTER)

        result = await master_stub.call("bounce", 1)

        assert result.vm_id == 1
        assert await result.stub.call("ping") == in_process_fleet.process_manager.get_worker(1).key

        result.stub.close()
        master_stub.close()


class TestTeardown:
    async def test_shutdown_kills_every_worker_and_is_repeatable(self, env: Env) -> None:
        fleet = Fleet(env, launcher=InProcessLauncher())
        await fleet.launch()

        await fleet.shutdown()
        await fleet.shutdown()

        assert fleet.status == FleetStatus.TORN_DOWN
        assert fleet.process_manager.has_live_vms() is False
        assert all(
            worker.state == WorkerState.DEAD
            for worker in fleet.process_manager.workers.values()
        )

        with pytest.raises(LaunchError):
            await fleet.process_manager.launch_vm(9)

    async def test_abort_kills_workers_synchronously(self, in_process_fleet: Fleet) -> None:
        in_process_fleet.abort()
        in_process_fleet.abort()

        assert in_process_fleet.process_manager.killed is True
        assert in_process_fleet.status == FleetStatus.TORN_DOWN


class TestSuspectCheck:
    async def test_clean_runs_pass(self, in_process_fleet: Fleet) -> None:
        await in_process_fleet.close_and_check_for_suspects()

    async def test_error_entries_fail_the_check_once(self, in_process_fleet: Fleet) -> None:
        await write_error(in_process_fleet.suspect_log.path, "cache closed unexpectedly")

        with pytest.raises(SuspectStringsError) as error:
            await in_process_fleet.close_and_check_for_suspects()

        assert "cache closed unexpectedly" in error.value.suspects

        await in_process_fleet.close_and_check_for_suspects()

    async def test_ignored_exceptions_do_not_fail_the_check(self, in_process_fleet: Fleet) -> None:
        in_process_fleet.add_ignored_exception("cache closed")
        await write_error(in_process_fleet.suspect_log.path, "cache closed unexpectedly")

        await in_process_fleet.close_and_check_for_suspects()

        in_process_fleet.remove_ignored_exception("cache closed")

    async def test_unlaunched_fleets_never_fail(self, env: Env, suspect_log_path: str) -> None:
        fleet = Fleet(env, launcher=InProcessLauncher())
        await write_error(suspect_log_path, "left over from another run")

        await fleet.close_and_check_for_suspects()
