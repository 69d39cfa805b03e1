import asyncio
import inspect
import os
from typing import Any

from dunit.hooks import HookType


class LocalStub:
    """
    Stub over an object living in the calling process. Exposes the same
    call interface as RemoteStub without any transport.
    """

    def __init__(self, instance: Any, object_name: str) -> None:
        self.instance = instance
        self.object_name = object_name
        self.host = "localhost"
        self.port = os.getpid()

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    async def call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        return await self.call_with_timeout(method, None, *args, **kwargs)

    async def call_with_timeout(
        self,
        method: str,
        timeout: float | None,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        handler = getattr(self.instance, method, None)
        if handler is None or getattr(handler, "hook_type", None) != HookType.REMOTE:
            raise AttributeError(f"{self.object_name} has no remote method {method}")

        result = handler(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await asyncio.wait_for(result, timeout=timeout)

        return result

    def close(self):
        pass

    def __repr__(self) -> str:
        return f"LocalStub({self.object_name})"
