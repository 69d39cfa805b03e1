from .bounce_result import BounceResult as BounceResult
from .fleet_state import FleetState as FleetState
from .fleet_status import FleetStatus as FleetStatus
from .method_result import MethodResult as MethodResult
from .unit_of_work import UnitOfWork as UnitOfWork
from .worker_key import (
    DEBUGGING_VM_NUM as DEBUGGING_VM_NUM,
    LOCATOR_VM_NUM as LOCATOR_VM_NUM,
    WorkerKey as WorkerKey,
)
from .worker_state import WorkerState as WorkerState
