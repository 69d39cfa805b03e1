import asyncio
import ctypes
import multiprocessing
import os
import sys
import uuid
from typing import Dict

from dunit.env import Env, TimeParser, load_env
from dunit.errors import RemoteUnreachableError
from dunit.logging import LoggingConfig
from dunit.models import WorkerKey
from dunit.naming import NAMING_DIRECTORY_NAME
from dunit.protocols import RemoteStub, RPCServer

from .remote_worker import WORKER_EXPORT_NAME, RemoteWorker


def set_process_name(name: str):
    try:
        libc = ctypes.CDLL("libc.so.6")
        progname = ctypes.c_char_p.in_dll(
            libc, "__progname_full"
        )

        new_name = name.encode()
        # for `ps` command, capped so argv and environ after argv[0] survive:
        libc.strcpy(
            progname,
            ctypes.c_char_p(new_name[:len(progname.value or b"")]),
        )
        # for `top` command and `/proc/self/comm`:
        buff = ctypes.create_string_buffer(len(new_name) + 1)
        buff.value = new_name
        libc.prctl(15, ctypes.byref(buff), 0, 0, 0)

    except Exception:
        pass


async def watch_master(
    master: RemoteStub,
    worker: RemoteWorker,
    env: Env,
):
    """
    Ping the master until it stops answering. Returns once the configured
    number of consecutive pings failed so an orphaned worker can exit.
    """
    interval = TimeParser(env.DUNIT_MASTER_PING_INTERVAL).time
    max_failures = env.DUNIT_MASTER_PING_FAILURES
    failures = 0

    while failures < max_failures:
        await asyncio.sleep(interval)

        try:
            await master.call("ping")
            failures = 0

        except RemoteUnreachableError as err:
            failures += 1

            await worker.log(
                f"Master ping {failures}/{max_failures} failed - {err.reason}",
                name="trace",
            )

    await worker.log(
        f"Master unreachable after {max_failures} pings, {worker.key.name} exiting",
        name="debug",
    )


async def run_worker_async(env: Env):
    key = WorkerKey(env.DUNIT_VM_NUM, env.DUNIT_VM_VERSION)
    launch_id = env.DUNIT_LAUNCH_ID or uuid.uuid4().hex

    server = RPCServer(env.DUNIT_NAMING_HOST, 0, env)
    worker = RemoteWorker(
        key,
        launch_id,
        log_path=env.suspect_log_path(),
    )

    directory = RemoteStub.from_env(
        env.DUNIT_NAMING_HOST,
        env.DUNIT_NAMING_PORT,
        NAMING_DIRECTORY_NAME,
        env,
    )

    master: RemoteStub | None = None

    try:
        try:
            await server.start()
            worker_stub = server.export(WORKER_EXPORT_NAME, worker)

            master = await directory.call("lookup", env.DUNIT_MASTER)
            await directory.call("bind", key.name, worker_stub)

            await worker.log(
                f"{key.name} bound at {server.host}:{server.port} with pid {os.getpid()}",
                name="info",
            )

            await master.call("signal_vm_ready", key, launch_id)

        except Exception as err:
            await worker.log(
                f"{key.name} failed to start - {type(err).__name__}: {err}",
                name="error",
            )

            raise

        await watch_master(master, worker, env)

    finally:
        directory.close()

        if master is not None:
            master.close()

        await server.close()
        await worker.close()


def run_worker(
    parameters: Dict[str, str],
    working_directory: str | None = None,
):
    os.environ.update(parameters)

    env = load_env(Env)

    set_process_name(f"dunit-{WorkerKey(env.DUNIT_VM_NUM, env.DUNIT_VM_VERSION).name}")

    if working_directory:
        os.makedirs(working_directory, exist_ok=True)
        os.chdir(working_directory)

    logging_config = LoggingConfig()
    logging_config.update(
        log_level=env.DUNIT_LOG_LEVEL,
        log_output="stderr",
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        loop.run_until_complete(run_worker_async(env))

    except (
        Exception,
        KeyboardInterrupt,
        multiprocessing.ProcessError,
    ) as err:
        sys.stderr.write(
            f"dunit worker {env.DUNIT_VM_NUM} exited with {type(err).__name__}: {err}\n"
        )
        sys.exit(1)

    finally:
        loop.close()
