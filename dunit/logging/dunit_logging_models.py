from .models import Entry, LogLevel


class FleetTrace(Entry, kw_only=True):
    workspace: str
    initial_vms: int
    level: LogLevel = LogLevel.TRACE


class FleetDebug(Entry, kw_only=True):
    workspace: str
    initial_vms: int
    level: LogLevel = LogLevel.DEBUG


class FleetInfo(Entry, kw_only=True):
    workspace: str
    initial_vms: int
    level: LogLevel = LogLevel.INFO


class FleetError(Entry, kw_only=True):
    workspace: str
    initial_vms: int
    level: LogLevel = LogLevel.ERROR


class FleetFatal(Entry, kw_only=True):
    workspace: str
    initial_vms: int
    level: LogLevel = LogLevel.FATAL


class ProcessManagerTrace(Entry, kw_only=True):
    naming_host: str
    naming_port: int
    level: LogLevel = LogLevel.TRACE


class ProcessManagerDebug(Entry, kw_only=True):
    naming_host: str
    naming_port: int
    level: LogLevel = LogLevel.DEBUG


class ProcessManagerInfo(Entry, kw_only=True):
    naming_host: str
    naming_port: int
    level: LogLevel = LogLevel.INFO


class ProcessManagerWarn(Entry, kw_only=True):
    naming_host: str
    naming_port: int
    level: LogLevel = LogLevel.WARN


class MasterDebug(Entry, kw_only=True):
    master_name: str
    level: LogLevel = LogLevel.DEBUG


class MasterInfo(Entry, kw_only=True):
    master_name: str
    level: LogLevel = LogLevel.INFO


class MasterError(Entry, kw_only=True):
    master_name: str
    level: LogLevel = LogLevel.ERROR


class WorkerTrace(Entry, kw_only=True):
    vm_id: int
    version: str
    launch_id: str
    level: LogLevel = LogLevel.TRACE


class WorkerDebug(Entry, kw_only=True):
    vm_id: int
    version: str
    launch_id: str
    level: LogLevel = LogLevel.DEBUG


class WorkerInfo(Entry, kw_only=True):
    vm_id: int
    version: str
    launch_id: str
    level: LogLevel = LogLevel.INFO


class WorkerError(Entry, kw_only=True):
    vm_id: int
    version: str
    launch_id: str
    level: LogLevel = LogLevel.ERROR


class ProtocolTrace(Entry, kw_only=True):
    host: str
    port: int
    level: LogLevel = LogLevel.TRACE


class ProtocolDebug(Entry, kw_only=True):
    host: str
    port: int
    level: LogLevel = LogLevel.DEBUG


class ProtocolError(Entry, kw_only=True):
    host: str
    port: int
    level: LogLevel = LogLevel.ERROR
