import asyncio
import functools
import inspect

import cloudpickle

from dunit.hooks import remote
from dunit.logging import Logger
from dunit.logging.dunit_logging_models import (
    WorkerDebug,
    WorkerError,
    WorkerInfo,
    WorkerTrace,
)
from dunit.models import MethodResult, UnitOfWork, WorkerKey

WORKER_EXPORT_NAME = "worker"


class RemoteWorker:
    """
    The endpoint every worker exports. Units of work never raise across
    the process boundary: failures come back as MethodResult data.
    """

    def __init__(
        self,
        key: WorkerKey,
        launch_id: str,
        log_path: str | None = None,
    ) -> None:
        self.key = key
        self.launch_id = launch_id

        self._logger = Logger()
        self._logger_name = f"worker_{key.name}_{launch_id[:8]}"

        default_config = {
            "vm_id": key.vm_id,
            "version": key.version,
            "launch_id": launch_id,
        }

        self._logger.configure(
            name=self._logger_name,
            path=log_path,
            models={
                "trace": (WorkerTrace, default_config),
                "debug": (WorkerDebug, default_config),
                "info": (WorkerInfo, default_config),
                "error": (WorkerError, default_config),
            },
        )

    @remote()
    async def ping(self):
        return self.key

    @remote()
    async def execute_method_on_object(self, unit: UnitOfWork) -> MethodResult:
        async with self._logger.context(name=self._logger_name) as ctx:
            await ctx.log_prepared(
                f"Received method {unit.name} with {len(unit.args)} args on {self.key.name}",
                name="debug",
            )

            try:
                method = unit.resolve()

                if inspect.iscoroutinefunction(method):
                    value = await method(*unit.args, **unit.kwargs)

                else:
                    loop = asyncio.get_running_loop()
                    value = await loop.run_in_executor(
                        None,
                        functools.partial(
                            method,
                            *unit.args,
                            **unit.kwargs,
                        ),
                    )

                    if inspect.isawaitable(value):
                        value = await value

                cloudpickle.dumps(value)

            except Exception as err:
                await ctx.log_prepared(
                    f"Method {unit.name} on {self.key.name} failed with {type(err).__name__}: {err}",
                    name="info",
                )

                return MethodResult.failure(err)

            await ctx.log_prepared(
                f"Method {unit.name} on {self.key.name} completed",
                name="trace",
            )

            return MethodResult.success(value)

    async def log(self, message: str, name: str = "debug"):
        async with self._logger.context(name=self._logger_name) as ctx:
            await ctx.log_prepared(message, name=name)

    async def close(self):
        await self._logger.close()

    def abort(self):
        self._logger.abort()
