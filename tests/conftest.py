import os
from typing import AsyncGenerator

import pytest

from dunit.env import Env
from dunit.fleet import Fleet
from dunit.locator import stop_locator_service
from dunit.workers import InProcessLauncher


@pytest.fixture
def workspace(tmp_path) -> str:
    return str(tmp_path)


@pytest.fixture
def env(workspace: str) -> Env:
    return Env(
        DUNIT_WORKSPACE_DIR=workspace,
        DUNIT_NUM_VMS=2,
        DUNIT_STARTUP_TIMEOUT="10s",
        DUNIT_REQUEST_TIMEOUT="10s",
        DUNIT_CONNECT_TIMEOUT="1s",
        DUNIT_CONNECT_RETRIES=2,
        DUNIT_RETRY_INTERVAL="0.05s",
        DUNIT_KILL_WAIT="1s",
        DUNIT_MASTER_PING_INTERVAL="0.2s",
        DUNIT_HANDLE_SIGNALS=False,
    )


@pytest.fixture
async def in_process_fleet(env: Env) -> AsyncGenerator[Fleet, None]:
    fleet = Fleet(
        env,
        launcher=InProcessLauncher(),
    )

    await fleet.launch()

    yield fleet

    await fleet.shutdown()
    await stop_locator_service(fleet.get_locator_port())


@pytest.fixture
def suspect_log_path(env: Env) -> str:
    return os.path.join(env.DUNIT_WORKSPACE_DIR, env.DUNIT_SUSPECT_FILENAME)
