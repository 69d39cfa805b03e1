from __future__ import annotations

import asyncio
from typing import Any, Callable

from dunit.errors import BounceError, RemoteInvocationError
from dunit.models import MethodResult, UnitOfWork, WorkerKey


class VM:
    """
    Driver-side view of one worker. The stub is replaced when the worker
    is bounced, so a VM stays valid across incarnations.
    """

    def __init__(
        self,
        vm_id: int,
        version: str,
        stub,
        master=None,
        bounce_timeout: float | None = None,
        working_directory: str | None = None,
    ) -> None:
        self.vm_id = vm_id
        self.version = version
        self.stub = stub
        self.working_directory = working_directory

        self._master = master
        self._bounce_timeout = bounce_timeout

    @property
    def key(self) -> WorkerKey:
        return WorkerKey(self.vm_id, self.version)

    @property
    def name(self) -> str:
        return self.key.name

    async def execute(
        self,
        unit: UnitOfWork,
        timeout: float | None = None,
    ) -> MethodResult:
        return await self.stub.call_with_timeout(
            "execute_method_on_object",
            timeout,
            unit,
        )

    async def invoke(
        self,
        target: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        result = await self.execute(
            UnitOfWork(
                target,
                args=args,
                kwargs=kwargs,
            )
        )

        if result.failed:
            raise RemoteInvocationError(self.name, result)

        return result.value

    def invoke_async(
        self,
        target: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> asyncio.Task:
        return asyncio.ensure_future(
            self.invoke(target, *args, **kwargs)
        )

    async def invoke_method(
        self,
        target: Any,
        method_name: str,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        result = await self.execute(
            UnitOfWork(
                target,
                method_name=method_name,
                args=args,
                kwargs=kwargs,
            )
        )

        if result.failed:
            raise RemoteInvocationError(self.name, result)

        return result.value

    async def ping(self):
        return await self.stub.call("ping")

    async def bounce(self, version: str | None = None) -> VM:
        if version is None:
            version = self.version

        if self._master is None:
            raise BounceError(
                self.vm_id,
                version,
                f"{self.name} runs inside the coordinator",
            )

        result = await self._master.call_with_timeout(
            "bounce",
            self._bounce_timeout,
            self.vm_id,
            version,
        )

        self.stub.close()
        self.stub = result.stub
        self.version = version

        return self

    def __repr__(self) -> str:
        return f"VM({self.name})"
