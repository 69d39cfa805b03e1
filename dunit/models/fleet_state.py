from __future__ import annotations

from typing import TYPE_CHECKING

from .fleet_status import FleetStatus

if TYPE_CHECKING:
    from dunit.naming import NamingDirectory
    from dunit.master import Master


class FleetState:
    """
    Mutable bookkeeping of one fleet. Owned by the Fleet and shared with
    the ProcessManager and Master it creates.
    """

    __slots__ = (
        "naming_host",
        "naming_port",
        "locator_port",
        "master",
        "directory",
        "vm_count",
        "status",
    )

    def __init__(
        self,
        naming_host: str,
        naming_port: int = 0,
    ) -> None:
        self.naming_host = naming_host
        self.naming_port = naming_port
        self.locator_port: int = 0
        self.master: Master | None = None
        self.directory: NamingDirectory | None = None
        self.vm_count: int = 0
        self.status = FleetStatus.CREATED

    @property
    def launched(self) -> bool:
        return self.status in (
            FleetStatus.BOOTSTRAPPING,
            FleetStatus.RUNNING,
            FleetStatus.FAILED,
            FleetStatus.TORN_DOWN,
        )

    @property
    def naming_address(self) -> tuple[str, int]:
        return (self.naming_host, self.naming_port)
