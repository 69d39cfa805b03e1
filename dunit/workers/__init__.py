from .in_process_launcher import (
    InProcessLauncher as InProcessLauncher,
    TaskHandle as TaskHandle,
)
from .process_launcher import (
    MultiprocessingLauncher as MultiprocessingLauncher,
    ProcessHandle as ProcessHandle,
)
from .remote_worker import (
    WORKER_EXPORT_NAME as WORKER_EXPORT_NAME,
    RemoteWorker as RemoteWorker,
)
from .run_worker import (
    run_worker as run_worker,
    run_worker_async as run_worker_async,
    set_process_name as set_process_name,
)
from .worker_process import (
    WorkerHandle as WorkerHandle,
    WorkerProcess as WorkerProcess,
)
