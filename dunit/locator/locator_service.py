import asyncio
from typing import Dict

import orjson

from .locator_message import LocatorMessage

_services: Dict[int, "LocatorService"] = {}


class LocatorService:
    """
    Minimal membership service: members register an address under a
    name and anyone may list the current members. Requests and responses
    are newline-delimited JSON objects.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
    ) -> None:
        self.host = host
        self.port = port
        self.members: Dict[str, tuple[str, int]] = {}
        self._server: asyncio.Server | None = None

    async def start(self) -> int:
        self._server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port,
        )

        self.host, self.port = self._server.sockets[0].getsockname()[:2]

        return self.port

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ):
        try:
            while line := await reader.readline():
                try:
                    response = self.handle(LocatorMessage.load(line))

                except (orjson.JSONDecodeError, TypeError, ValueError) as err:
                    response = {"ok": False, "error": str(err)}

                writer.write(orjson.dumps(response) + b"\n")
                await writer.drain()

        except (ConnectionError, OSError):
            pass

        finally:
            writer.close()

    def handle(self, message: LocatorMessage) -> dict:
        match message.operation:
            case "register":
                if message.member is None or message.host is None or message.port is None:
                    return {"ok": False, "error": "register requires member, host and port"}

                self.members[message.member] = (message.host, message.port)
                return {"ok": True}

            case "unregister":
                self.members.pop(message.member, None)
                return {"ok": True}

            case "members":
                return {
                    "ok": True,
                    "members": {
                        member: [host, port] for member, (host, port) in self.members.items()
                    },
                }

            case "ping":
                return {"ok": True}

            case _:
                return {"ok": False, "error": f"unknown operation {message.operation}"}

    async def close(self):
        if self._server is None:
            return

        self._server.close()

        try:
            await asyncio.wait_for(self._server.wait_closed(), timeout=1)

        except asyncio.TimeoutError:
            pass

        self._server = None


async def start_locator_service(host: str = "127.0.0.1", port: int = 0) -> int:
    service = LocatorService(host=host, port=port)
    locator_port = await service.start()
    _services[locator_port] = service

    return locator_port


async def stop_locator_service(port: int):
    service = _services.pop(port, None)
    if service is not None:
        await service.close()


async def query_locator(
    host: str,
    port: int,
    message: LocatorMessage,
    timeout: float = 5,
) -> dict:
    reader, writer = await asyncio.wait_for(
        asyncio.open_connection(host, port),
        timeout=timeout,
    )

    try:
        writer.write(message.dump() + b"\n")
        await writer.drain()

        return orjson.loads(
            await asyncio.wait_for(reader.readline(), timeout=timeout)
        )

    finally:
        writer.close()
