import os
import sys
from typing import Dict

from dunit.env import Env


CURRENT_VERSION = "000"


class VersionManager:
    """
    Maps version tags to the interpreter used to spawn workers of that
    version. The current version always runs under the coordinator's own
    interpreter.
    """

    def __init__(self, executables: Dict[str, str] | None = None) -> None:
        self._executables: Dict[str, str] = {
            CURRENT_VERSION: sys.executable,
        }

        if executables:
            for version, executable in executables.items():
                self.register(version, executable)

    @classmethod
    def from_env(cls, env: Env):
        executables: Dict[str, str] = {}

        for mapping in env.DUNIT_VERSION_EXECUTABLES.split(","):
            if "=" not in mapping:
                continue

            version, executable = mapping.split("=", maxsplit=1)
            executables[version.strip()] = executable.strip()

        return cls(executables)

    @property
    def versions(self):
        return list(self._executables.keys())

    def register(self, version: str, executable: str):
        if version == CURRENT_VERSION:
            raise ValueError(
                f"Err. - version {CURRENT_VERSION} always runs under {sys.executable}"
            )

        self._executables[version] = os.path.abspath(executable)

    def has_version(self, version: str) -> bool:
        return version in self._executables

    def get_executable(self, version: str) -> str:
        executable = self._executables.get(version)
        if executable is None:
            raise KeyError(f"Err. - no interpreter registered for version {version}")

        return executable
