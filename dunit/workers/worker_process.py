from __future__ import annotations

from typing import Protocol

from dunit.models import WorkerKey, WorkerState


class WorkerHandle(Protocol):
    @property
    def pid(self) -> int | None: ...

    def is_alive(self) -> bool: ...

    def kill(self, wait: float) -> None: ...


class WorkerProcess:
    """
    Coordinator-side record of one spawned worker incarnation.
    """

    def __init__(
        self,
        key: WorkerKey,
        launch_id: str,
        working_directory: str,
        handle: WorkerHandle | None = None,
    ) -> None:
        self.key = key
        self.launch_id = launch_id
        self.working_directory = working_directory
        self.handle = handle
        self.state = WorkerState.LAUNCHING

    @property
    def vm_id(self) -> int:
        return self.key.vm_id

    @property
    def version(self) -> str:
        return self.key.version

    @property
    def process(self) -> WorkerHandle | None:
        return self.handle

    @property
    def pid(self) -> int | None:
        if self.handle is None:
            return None

        return self.handle.pid

    def is_alive(self) -> bool:
        if self.handle is None:
            return False

        return self.handle.is_alive()

    def kill(self, wait: float):
        if self.handle is not None:
            self.handle.kill(wait)

    def __repr__(self) -> str:
        return (
            f"WorkerProcess({self.key.name}, state={self.state.value}, "
            f"pid={self.pid}, launch_id={self.launch_id})"
        )
