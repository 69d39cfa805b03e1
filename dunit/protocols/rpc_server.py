import asyncio
import inspect
import uuid
from typing import Any, Callable, Dict

from dunit.env import Env, TimeParser
from dunit.errors import NotFoundError, RemoteCallError
from dunit.hooks import HookType
from dunit.logging import Logger
from dunit.logging.dunit_logging_models import (
    ProtocolDebug,
    ProtocolError,
    ProtocolTrace,
)

from .frame_codec import FrameCodec
from .models import Request, Response
from .remote_stub import RemoteStub


class ExportedObject:
    __slots__ = (
        "name",
        "export_id",
        "instance",
        "methods",
    )

    def __init__(
        self,
        name: str,
        instance: Any,
        methods: Dict[str, Callable[..., Any]],
    ) -> None:
        self.name = name
        self.export_id = uuid.uuid4().hex
        self.instance = instance
        self.methods = methods


class RPCServer:
    """
    Serves objects over length-prefixed TCP frames. Only methods decorated
    with @remote() are callable, and coroutine results are awaited on the
    server's loop before the response is written.
    """

    def __init__(
        self,
        host: str,
        port: int,
        env: Env,
    ) -> None:
        self.host = host
        self.port = port
        self.env = env

        self._logger = Logger()
        self._exports: Dict[str, ExportedObject] = {}
        self._handlers: set[asyncio.Task] = set()
        self._server: asyncio.Server | None = None
        self._codec = FrameCodec()
        self._running = False

        self._connect_timeout = TimeParser(env.DUNIT_CONNECT_TIMEOUT).time
        self._logger_name = f"rpc_server_{uuid.uuid4().hex[:8]}"

    @property
    def running(self) -> bool:
        return self._running

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)

    async def start(self):
        self._server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port,
        )

        server_socket = self._server.sockets[0]
        self.host, self.port = server_socket.getsockname()[:2]
        self._running = True

        default_config = {
            "host": self.host,
            "port": self.port,
        }

        self._logger.configure(
            name=self._logger_name,
            path=self.env.suspect_log_path(),
            models={
                "trace": (ProtocolTrace, default_config),
                "debug": (ProtocolDebug, default_config),
                "error": (ProtocolError, default_config),
            },
        )

        async with self._logger.context(name=self._logger_name) as ctx:
            await ctx.log_prepared(
                f"RPC server listening on {self.host}:{self.port}",
                name="debug",
            )

    def export(self, name: str, instance: Any) -> RemoteStub:
        methods = {
            method_name: method
            for method_name, method in inspect.getmembers(
                instance,
                predicate=lambda member: hasattr(
                    member,
                    "hook_type",
                )
                and getattr(member, "hook_type") == HookType.REMOTE,
            )
        }

        self._exports[name] = ExportedObject(name, instance, methods)

        return self.stub_for(name)

    def unexport(self, name: str):
        self._exports.pop(name, None)

    def stub_for(self, name: str) -> RemoteStub:
        exported = self._exports.get(name)
        if exported is None:
            raise NotFoundError(name)

        return RemoteStub.from_env(
            self.host,
            self.port,
            name,
            self.env,
            export_id=exported.export_id,
        )

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ):
        handler = asyncio.current_task()
        self._handlers.add(handler)

        try:
            while self._running:
                try:
                    frame = await self._codec.read_frame(reader)

                except (asyncio.IncompleteReadError, ConnectionError):
                    break

                try:
                    request: Request = self._codec.decode(frame)
                    response = await self._dispatch(request)

                except Exception as err:
                    response = Response.from_error(
                        None,
                        RemoteCallError(
                            "<decode>",
                            f"{type(err).__module__}.{type(err).__qualname__}",
                            str(err),
                        ),
                    )

                writer.write(self._encode_response(response))
                await writer.drain()

        except (ConnectionError, OSError) as err:
            async with self._logger.context(name=self._logger_name) as ctx:
                await ctx.log_prepared(
                    f"Connection dropped - {type(err).__name__}: {err}",
                    name="trace",
                )

        except asyncio.CancelledError:
            pass

        finally:
            self._handlers.discard(handler)

            try:
                writer.close()

            except (OSError, RuntimeError):
                pass

    async def _dispatch(self, request: Request) -> Response:
        exported = self._exports.get(request.object_name)
        if exported is None or (
            request.export_id is not None
            and exported.export_id != request.export_id
        ):
            return Response.from_error(
                request.request_id,
                NotFoundError(request.object_name),
            )

        method = exported.methods.get(request.method)
        if method is None:
            return Response.from_error(
                request.request_id,
                AttributeError(
                    f"{request.object_name} has no remote method {request.method}"
                ),
            )

        try:
            result = method(*request.args, **request.kwargs)
            if inspect.isawaitable(result):
                result = await result

            return Response(request.request_id, value=result)

        except Exception as err:
            return Response.from_error(request.request_id, err)

    def _encode_response(self, response: Response) -> bytes:
        try:
            return self._codec.encode(response)

        except Exception as err:
            if response.ok:
                response = Response.from_error(
                    response.request_id,
                    TypeError(
                        f"Result could not be serialized - {type(err).__name__}: {err}"
                    ),
                )

                try:
                    return self._codec.encode(response)

                except Exception:
                    pass

            return self._codec.encode(response.without_error_object())

    async def close(self):
        self._running = False

        if self._server is None:
            return

        self._server.close()

        handlers = list(self._handlers)
        for handler in handlers:
            handler.cancel()

        if handlers:
            await asyncio.gather(*handlers, return_exceptions=True)

        try:
            await asyncio.wait_for(
                self._server.wait_closed(),
                timeout=self._connect_timeout,
            )

        except (asyncio.TimeoutError, OSError):
            pass

        await self._logger.close()
        self._server = None

    def abort(self):
        self._running = False

        if self._server is not None:
            self._server.close()

        for handler in list(self._handlers):
            handler.cancel()

        self._logger.abort()
