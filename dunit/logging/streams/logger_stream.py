import asyncio
import datetime
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import (
    Any,
    Dict,
    TypeVar,
)

import msgspec

from dunit.logging.config.logging_config import LoggingConfig
from dunit.logging.config.stream_type import StreamType
from dunit.logging.models import Entry, Log, LogLevel

T = TypeVar('T', bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {pid} - {filename}:{function_name}.{line_number} - {message}"


class LoggerStream:
    """
    Writes entries either to a JSON lines file or, when no file is
    configured, to stdout/stderr using a format template.

    Entries below the globally configured level are dropped. The
    ``*_nowait`` variant falls back to a blocking write when there
    is no running event loop (atexit and signal handlers).
    """

    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
        models: dict[
            str,
            tuple[
                type[T],
                dict[str, Any],
            ]
        ] | None = None,
    ) -> None:
        self._name = name or "default"
        self._template = template or DEFAULT_TEMPLATE
        self._filename = filename
        self._directory = directory

        self._loop: asyncio.AbstractEventLoop | None = None
        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._pending: set[asyncio.Future] = set()

        self._config = LoggingConfig()

        self._models: Dict[str, tuple[type[Entry], dict[str, Any]]] = dict(models or {})
        self._models['default'] = (
            Entry,
            {'level': LogLevel.INFO},
        )

    @property
    def name(self):
        return self._name

    @property
    def logfile_path(self) -> str | None:
        if self._filename is None:
            return None

        directory = self._directory or self._config.directory or os.getcwd()

        return os.path.join(directory, self._filename)

    async def initialize(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        if (logfile_path := self.logfile_path):
            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._open_file,
                    logfile_path,
                )

    def log_prepared_nowait(
        self,
        message: str,
        name: str = 'default',
    ):
        entry = self._to_entry(message, name)

        try:
            loop = asyncio.get_running_loop()

        except RuntimeError:
            self._write(self._to_log(entry))
            return

        task = loop.create_task(self.log(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def log_prepared(
        self,
        message: str,
        name: str = 'default',
    ):
        await self.log(
            self._to_entry(message, name)
        )

    async def log(self, entry: T):
        if self._config.enabled(entry.level) is False:
            return

        if self._loop is None:
            await self.initialize()

        log = self._to_log(entry)
        logfile_path = self.logfile_path

        if logfile_path is None:
            await self._loop.run_in_executor(None, self._write, log)
            return

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(None, self._write, log)

    async def close(self):
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

        for logfile_path, logfile in list(self._files.items()):
            async with self._file_locks[logfile_path]:
                logfile.close()

        self._files.clear()

    def abort(self):
        for future in self._pending:
            if not future.done():
                future.cancel()

        for logfile in self._files.values():
            try:
                logfile.close()

            except OSError:
                pass

        self._files.clear()

    def _to_entry(
        self,
        message: str,
        name: str,
    ) -> Entry:
        model, defaults = self._models.get(
            name,
            self._models['default'],
        )

        return model(
            message=message,
            **defaults
        )

    def _to_log(self, entry: Entry) -> Log:
        filename, line_number, function_name = self._find_caller()

        return Log(
            entry=entry,
            filename=filename,
            function_name=function_name,
            line_number=line_number,
            pid=os.getpid(),
        )

    def _open_file(self, logfile_path: str):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            return logfile

        assert (
            pathlib.Path(logfile_path).suffix == ".json"
        ), "Err. - file must be JSON file for logs."

        pathlib.Path(logfile_path).parent.mkdir(parents=True, exist_ok=True)
        self._files[logfile_path] = open(logfile_path, "ab+")

        return self._files[logfile_path]

    def _write(self, log: Log):
        if self._config.enabled(log.entry.level) is False:
            return

        logfile_path = self.logfile_path

        try:
            if logfile_path:
                logfile = self._open_file(logfile_path)
                logfile.write(msgspec.json.encode(log) + b"\n")
                logfile.flush()

                return

            stream = sys.stdout if self._config.output == StreamType.STDOUT else sys.stderr
            stream.write(
                log.entry.to_template(
                    self._template,
                    context={
                        "filename": log.filename,
                        "function_name": log.function_name,
                        "line_number": log.line_number,
                        "pid": log.pid,
                        "thread_id": threading.get_native_id(),
                        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                    },
                ) + "\n"
            )
            stream.flush()

        except (ValueError, OSError):
            # Closed stream or file during interpreter shutdown.
            pass

    def _find_caller(self):
        """
        Walk out of this module so the record points at the code
        that asked for the log line.
        """
        frame = sys._getframe(1)

        while frame.f_back and frame.f_code.co_filename == __file__:
            frame = frame.f_back

        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )
