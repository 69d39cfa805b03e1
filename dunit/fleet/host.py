import asyncio
from typing import Dict, List

from dunit.errors import StartupTimeoutError
from dunit.models import DEBUGGING_VM_NUM, LOCATOR_VM_NUM, FleetState
from dunit.processes import ProcessManager
from dunit.versions import CURRENT_VERSION

from .vm import VM


class Host:
    """
    The fleet as seen by a test: numbered VMs that are created on demand
    and swapped to another version when asked for one.
    """

    def __init__(
        self,
        state: FleetState,
        process_manager: ProcessManager,
        master_stub,
        startup_timeout: float,
        debug_vm: VM,
    ) -> None:
        self._state = state
        self._process_manager = process_manager
        self._master_stub = master_stub
        self._startup_timeout = startup_timeout
        self._debug_vm = debug_vm

        self._vms: Dict[int, VM] = {}
        self._locator: VM | None = None
        self._grow_lock = asyncio.Lock()

    @property
    def vm_count(self) -> int:
        return self._state.vm_count

    def register(self, vm_id: int) -> VM:
        worker = self._process_manager.get_worker(vm_id)
        stub = self._process_manager.get_stub(vm_id)

        vm = VM(
            vm_id,
            worker.version,
            stub,
            master=self._master_stub,
            bounce_timeout=None,
            working_directory=worker.working_directory,
        )

        if vm_id == LOCATOR_VM_NUM:
            self._locator = vm

        else:
            self._vms[vm_id] = vm
            self._state.vm_count = max(self._state.vm_count, vm_id + 1)

        return vm

    async def get_vm(
        self,
        vm_id: int,
        version: str = CURRENT_VERSION,
    ) -> VM:
        if vm_id == DEBUGGING_VM_NUM:
            return self._debug_vm

        if vm_id == LOCATOR_VM_NUM:
            return self.get_locator()

        if vm_id < 0:
            raise ValueError(f"Err. - no VM with id {vm_id}")

        async with self._grow_lock:
            vm = self._vms.get(vm_id)

            if vm is None:
                vm = await self._grow(vm_id, version)

            elif vm.version != version:
                await vm.bounce(version)

            return vm

    async def _grow(self, vm_id: int, version: str) -> VM:
        gap = [
            gap_id for gap_id in range(self.vm_count, vm_id) if gap_id not in self._vms
        ]

        for gap_id in gap:
            await self._process_manager.launch_vm(gap_id)

        await self._wait()

        for gap_id in gap:
            self.register(gap_id)

        await self._process_manager.launch_vm(vm_id, version=version)
        await self._wait()

        return self.register(vm_id)

    async def _wait(self):
        if not await self._process_manager.wait_for_vms(self._startup_timeout):
            raise StartupTimeoutError(
                self._startup_timeout,
                [key.name for key in self._process_manager.outstanding],
            )

    def get_locator(self) -> VM:
        if self._locator is None:
            self._locator = self.register(LOCATOR_VM_NUM)

        return self._locator

    def get_all_vms(self) -> List[VM]:
        return [self._vms[vm_id] for vm_id in sorted(self._vms)]
