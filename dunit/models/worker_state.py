from enum import Enum


class WorkerState(Enum):
    LAUNCHING = "LAUNCHING"
    READY = "READY"
    BOUNCED = "BOUNCED"
    DEAD = "DEAD"
