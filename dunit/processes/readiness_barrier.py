import asyncio
from typing import Dict

from dunit.models import WorkerKey


class ReadinessBarrier:
    """
    Tracks launched-but-not-ready workers by vm id. Each armed entry holds
    the launch id of the incarnation it waits for, so signals from a
    previous incarnation or repeated signals never count twice.
    """

    def __init__(self) -> None:
        self._outstanding: Dict[int, tuple[WorkerKey, str]] = {}
        self._clear = asyncio.Event()
        self._clear.set()

    @property
    def outstanding(self):
        return [key for key, _ in self._outstanding.values()]

    def arm(self, key: WorkerKey, launch_id: str):
        self._outstanding[key.vm_id] = (key, launch_id)
        self._clear.clear()

    def signal(self, key: WorkerKey, launch_id: str) -> bool:
        armed = self._outstanding.get(key.vm_id)
        if armed is None:
            return False

        armed_key, armed_launch_id = armed
        if armed_key != key or armed_launch_id != launch_id:
            return False

        del self._outstanding[key.vm_id]
        self._update()

        return True

    def disarm(self, vm_id: int | None = None):
        if vm_id is None:
            self._outstanding.clear()

        else:
            self._outstanding.pop(vm_id, None)

        self._update()

    async def wait(self, timeout: float) -> bool:
        if self._clear.is_set():
            return True

        try:
            await asyncio.wait_for(self._clear.wait(), timeout=timeout)
            return True

        except asyncio.TimeoutError:
            return False

    def _update(self):
        if len(self._outstanding) == 0:
            self._clear.set()
