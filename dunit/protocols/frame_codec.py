import asyncio
import struct
from typing import Any

import cloudpickle
import zstandard

HEADER = struct.Struct(">I")


class FrameCodec:
    """
    Length-prefixed frames: a 4-byte big-endian payload size followed by a
    zstandard-compressed cloudpickle of the message.
    """

    def __init__(self) -> None:
        self._compressor = zstandard.ZstdCompressor()
        self._decompressor = zstandard.ZstdDecompressor()

    def encode(self, message: Any) -> bytes:
        payload = self._compressor.compress(cloudpickle.dumps(message))
        return HEADER.pack(len(payload)) + payload

    def decode(self, payload: bytes) -> Any:
        return cloudpickle.loads(self._decompressor.decompress(payload))

    async def read_frame(self, reader: asyncio.StreamReader) -> bytes:
        header = await reader.readexactly(HEADER.size)
        (size,) = HEADER.unpack(header)

        return await reader.readexactly(size)

    async def read(self, reader: asyncio.StreamReader) -> Any:
        return self.decode(await self.read_frame(reader))
