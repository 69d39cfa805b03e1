from __future__ import annotations

from dataclasses import dataclass

from dunit.versions import CURRENT_VERSION

LOCATOR_VM_NUM = -2
DEBUGGING_VM_NUM = -1


@dataclass(frozen=True, slots=True)
class WorkerKey:
    """
    Identity of a worker: its logical slot id and the version it runs.
    Directory names are derived from the key and never parsed back.
    """

    vm_id: int
    version: str = CURRENT_VERSION

    @property
    def name(self) -> str:
        if self.version == CURRENT_VERSION:
            return f"vm{self.vm_id}"

        return f"vm{self.vm_id}_v{self.version}"

    @property
    def is_locator(self) -> bool:
        return self.vm_id == LOCATOR_VM_NUM

    @property
    def is_debug(self) -> bool:
        return self.vm_id == DEBUGGING_VM_NUM

    def with_version(self, version: str) -> WorkerKey:
        return WorkerKey(self.vm_id, version)

    def __str__(self) -> str:
        return self.name
