from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dunit.protocols import RemoteStub


class BounceResult:
    __slots__ = ("vm_id", "version", "stub")

    def __init__(
        self,
        vm_id: int,
        version: str,
        stub: RemoteStub,
    ) -> None:
        self.vm_id = vm_id
        self.version = version
        self.stub = stub

    def __getstate__(self):
        return (self.vm_id, self.version, self.stub)

    def __setstate__(self, state):
        self.vm_id, self.version, self.stub = state
