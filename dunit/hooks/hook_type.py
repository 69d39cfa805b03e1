from enum import Enum


class HookType(Enum):
    REMOTE = "REMOTE"
