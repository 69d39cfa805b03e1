from typing import Literal

import msgspec
import orjson

LocatorOperation = Literal["register", "unregister", "members", "ping"]


class LocatorMessage(msgspec.Struct, kw_only=True):
    operation: LocatorOperation
    member: str | None = None
    host: str | None = None
    port: int | None = None

    @classmethod
    def load(cls, data: bytes):
        return cls(**orjson.loads(data))

    def dump(self):
        return orjson.dumps(
            msgspec.structs.asdict(self)
        )
