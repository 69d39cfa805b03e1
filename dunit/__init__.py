from .env import Env as Env, load_env as load_env
from .errors import (
    BounceError as BounceError,
    DUnitError as DUnitError,
    LaunchError as LaunchError,
    RemoteInvocationError as RemoteInvocationError,
    RemoteUnreachableError as RemoteUnreachableError,
    StartupTimeoutError as StartupTimeoutError,
    SuspectStringsError as SuspectStringsError,
)
from .fleet import Fleet as Fleet, Host as Host, VM as VM
from .models import (
    DEBUGGING_VM_NUM as DEBUGGING_VM_NUM,
    LOCATOR_VM_NUM as LOCATOR_VM_NUM,
    MethodResult as MethodResult,
    UnitOfWork as UnitOfWork,
    WorkerKey as WorkerKey,
)
from .versions import CURRENT_VERSION as CURRENT_VERSION, VersionManager as VersionManager
from .workers import (
    InProcessLauncher as InProcessLauncher,
    MultiprocessingLauncher as MultiprocessingLauncher,
)
