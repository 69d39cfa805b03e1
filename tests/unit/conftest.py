import asyncio
import os
from typing import Awaitable, Callable, List, Tuple

import pytest

from dunit.env import Env
from dunit.models import FleetState, WorkerKey
from dunit.naming import NamingDirectory
from dunit.protocols import RemoteStub


class FakeHandle:
    def __init__(self) -> None:
        self.alive = True
        self.kills = 0

    @property
    def pid(self) -> int:
        return os.getpid()

    def is_alive(self) -> bool:
        return self.alive

    def kill(self, wait: float):
        self.kills += 1
        self.alive = False


class FakeLauncher:
    """
    Records launches instead of spawning anything. An optional callback
    plays the part of the worker, e.g. binding a name and signalling ready.
    """

    def __init__(
        self,
        on_launch: Callable[[WorkerKey, Env], Awaitable[None]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.on_launch = on_launch
        self.error = error
        self.launches: List[Tuple[WorkerKey, Env, str]] = []
        self.handles: List[FakeHandle] = []
        self.tasks: List[asyncio.Task] = []

    async def launch(
        self,
        key: WorkerKey,
        env: Env,
        working_directory: str,
    ) -> FakeHandle:
        if self.error is not None:
            raise self.error

        self.launches.append((key, env, working_directory))

        handle = FakeHandle()
        self.handles.append(handle)

        if self.on_launch is not None:
            self.tasks.append(
                asyncio.create_task(self.on_launch(key, env))
            )

        return handle

    async def join(self):
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)


def stub_for(key: WorkerKey, launch_id: str) -> RemoteStub:
    return RemoteStub("127.0.0.1", 1, key.name, launch_id)


@pytest.fixture
def fleet_state() -> FleetState:
    return FleetState("127.0.0.1", 40404)


@pytest.fixture
def directory() -> NamingDirectory:
    return NamingDirectory()


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def launcher_factory():
    return FakeLauncher
