import os

import msgspec

from dunit.logging import Entry, Logger, LoggerStream, LogLevel
from dunit.logging.dunit_logging_models import WorkerError, WorkerInfo


def read_logs(path: str) -> list[dict]:
    with open(path, "rb") as logfile:
        return [msgspec.json.decode(line) for line in logfile if line.strip()]


class TestLoggerFileOutput:
    async def test_prepared_messages_are_written_as_json_lines(self, workspace: str) -> None:
        logger = Logger()
        path = os.path.join(workspace, "fleet.json")

        default_config = {"vm_id": 1, "version": "000", "launch_id": "abc"}

        logger.configure(
            name="worker",
            path=path,
            models={
                "info": (WorkerInfo, default_config),
                "error": (WorkerError, default_config),
            },
        )

        async with logger.context(name="worker") as ctx:
            await ctx.log_prepared("vm1 bound", name="info")
            await ctx.log_prepared("vm1 failed", name="error")

        await logger.close()

        logs = read_logs(path)

        assert [log["entry"]["message"] for log in logs] == ["vm1 bound", "vm1 failed"]
        assert [log["entry"]["level"] for log in logs] == ["INFO", "ERROR"]
        assert logs[0]["entry"]["vm_id"] == 1
        assert logs[0]["pid"] == os.getpid()

    async def test_entries_below_the_configured_level_are_dropped(self, workspace: str) -> None:
        logger = Logger()
        path = os.path.join(workspace, "fleet.json")

        logger.configure(
            name="quiet",
            path=path,
            models={
                "trace": (Entry, {"level": LogLevel.TRACE}),
            },
        )

        async with logger.context(name="quiet") as ctx:
            await ctx.log_prepared("hidden", name="trace")
            await ctx.log_prepared("shown")

        await logger.close()

        assert [log["entry"]["message"] for log in read_logs(path)] == ["shown"]


class TestLoggerSyncFallback:
    def test_nowait_logging_writes_synchronously_without_a_loop(self, workspace: str) -> None:
        stream = LoggerStream(
            name="sync",
            filename="sync.json",
            directory=workspace,
        )

        stream.log_prepared_nowait("written during teardown")
        stream.abort()

        logs = read_logs(os.path.join(workspace, "sync.json"))

        assert logs[0]["entry"]["message"] == "written during teardown"
