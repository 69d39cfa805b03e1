from __future__ import annotations

import asyncio
import uuid
from collections import deque
from typing import Any, Deque, Tuple

from dunit.env import Env, TimeParser
from dunit.errors import RemoteCallError, RemoteUnreachableError

from .frame_codec import FrameCodec
from .models import Request, Response

Connection = Tuple[asyncio.StreamReader, asyncio.StreamWriter]


class RemoteStub:
    """
    Picklable handle to an object exported by an RPCServer. Stubs are
    addressed by (host, port, object name, export id) and keep a small pool
    of idle connections, one request in flight per connection.
    """

    def __init__(
        self,
        host: str,
        port: int,
        object_name: str,
        export_id: str | None = None,
        request_timeout: float | None = 30.0,
        connect_timeout: float = 5.0,
        connect_retries: int = 10,
        retry_interval: float = 0.25,
    ) -> None:
        self.host = host
        self.port = port
        self.object_name = object_name
        self.export_id = export_id
        self.request_timeout = request_timeout
        self.connect_timeout = connect_timeout
        self.connect_retries = connect_retries
        self.retry_interval = retry_interval

        self._connections: Deque[Connection] = deque()
        self._codec: FrameCodec | None = None

    @classmethod
    def from_env(
        cls,
        host: str,
        port: int,
        object_name: str,
        env: Env,
        export_id: str | None = None,
    ):
        return cls(
            host,
            port,
            object_name,
            export_id,
            request_timeout=TimeParser(env.DUNIT_REQUEST_TIMEOUT).time,
            connect_timeout=TimeParser(env.DUNIT_CONNECT_TIMEOUT).time,
            connect_retries=env.DUNIT_CONNECT_RETRIES,
            retry_interval=TimeParser(env.DUNIT_RETRY_INTERVAL).time,
        )

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    async def call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        return await self.call_with_timeout(
            method,
            self.request_timeout,
            *args,
            **kwargs,
        )

    async def call_with_timeout(
        self,
        method: str,
        timeout: float | None,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        if self._codec is None:
            self._codec = FrameCodec()

        request = Request(
            uuid.uuid4().hex,
            self.object_name,
            self.export_id,
            method,
            args,
            kwargs,
        )

        frame = self._codec.encode(request)

        reader, writer = await self._acquire()

        try:
            writer.write(frame)
            await writer.drain()

            response: Response = await asyncio.wait_for(
                self._codec.read(reader),
                timeout=timeout,
            )

        except asyncio.TimeoutError:
            self._discard(writer)
            raise RemoteUnreachableError(
                self.address,
                f"no response to {self.object_name}.{method} within {timeout:g} seconds",
            )

        except (
            asyncio.IncompleteReadError,
            ConnectionError,
            OSError,
        ) as err:
            self._discard(writer)
            raise RemoteUnreachableError(
                self.address,
                f"{type(err).__name__} during {self.object_name}.{method}",
            ) from err

        except BaseException:
            self._discard(writer)
            raise

        self._connections.append((reader, writer))

        if response.ok:
            return response.value

        if response.error is not None:
            raise response.error

        raise RemoteCallError(
            f"{self.object_name}.{method}",
            response.error_type,
            response.message,
            stack_trace=response.stack_trace or "",
        )

    async def _acquire(self) -> Connection:
        while self._connections:
            reader, writer = self._connections.popleft()

            if writer.is_closing() or reader.at_eof():
                self._discard(writer)
                continue

            return reader, writer

        last_error: Exception | None = None

        for _ in range(max(self.connect_retries, 1)):
            try:
                return await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port),
                    timeout=self.connect_timeout,
                )

            except (
                asyncio.TimeoutError,
                ConnectionError,
                OSError,
            ) as err:
                last_error = err

            await asyncio.sleep(self.retry_interval)

        raise RemoteUnreachableError(
            self.address,
            f"could not connect - {type(last_error).__name__}: {last_error}",
        )

    def _discard(self, writer: asyncio.StreamWriter):
        try:
            writer.close()

        except (OSError, RuntimeError):
            pass

    def close(self):
        while self._connections:
            _, writer = self._connections.popleft()
            self._discard(writer)

    def __getstate__(self):
        return {
            "host": self.host,
            "port": self.port,
            "object_name": self.object_name,
            "export_id": self.export_id,
            "request_timeout": self.request_timeout,
            "connect_timeout": self.connect_timeout,
            "connect_retries": self.connect_retries,
            "retry_interval": self.retry_interval,
        }

    def __setstate__(self, state: dict):
        self.__dict__.update(state)
        self._connections = deque()
        self._codec = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteStub):
            return NotImplemented

        return (
            self.host,
            self.port,
            self.object_name,
            self.export_id,
        ) == (
            other.host,
            other.port,
            other.object_name,
            other.export_id,
        )

    def __hash__(self) -> int:
        return hash((self.host, self.port, self.object_name, self.export_id))

    def __repr__(self) -> str:
        return f"RemoteStub({self.object_name}@{self.host}:{self.port})"
