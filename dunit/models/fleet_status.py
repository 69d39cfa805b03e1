from enum import Enum


class FleetStatus(Enum):
    CREATED = "CREATED"
    BOOTSTRAPPING = "BOOTSTRAPPING"
    RUNNING = "RUNNING"
    FAILED = "FAILED"
    TORN_DOWN = "TORN_DOWN"
