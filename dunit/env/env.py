import os
from typing import Callable, Dict, Union

from pydantic import BaseModel, StrictBool, StrictInt, StrictStr

PrimaryType = Union[str, int, float, bytes, bool]


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Env(BaseModel):
    DUNIT_NAMING_HOST: StrictStr = "127.0.0.1"
    DUNIT_NAMING_PORT: StrictInt = 0
    DUNIT_MASTER: StrictStr = "DUNIT_MASTER"
    DUNIT_WORKSPACE_DIR: StrictStr = os.getcwd()
    DUNIT_VM_NUM: StrictInt | None = None
    DUNIT_VM_VERSION: StrictStr = "000"
    DUNIT_LAUNCH_ID: StrictStr | None = None
    DUNIT_LOCATOR_PORT: StrictInt = 0
    DUNIT_NUM_VMS: StrictInt = 4
    DUNIT_STARTUP_TIMEOUT: StrictStr = "120s"
    DUNIT_REQUEST_TIMEOUT: StrictStr = "30s"
    DUNIT_CONNECT_TIMEOUT: StrictStr = "5s"
    DUNIT_CONNECT_RETRIES: StrictInt = 10
    DUNIT_RETRY_INTERVAL: StrictStr = "0.25s"
    DUNIT_KILL_WAIT: StrictStr = "2s"
    DUNIT_MASTER_PING_INTERVAL: StrictStr = "1s"
    DUNIT_MASTER_PING_FAILURES: StrictInt = 3
    DUNIT_MAKE_NEW_WORKING_DIRS: StrictBool = False
    DUNIT_HANDLE_SIGNALS: StrictBool = True
    DUNIT_VERSION_EXECUTABLES: StrictStr = ""
    DUNIT_SUSPECT_FILENAME: StrictStr = "dunit_suspect.json"
    DUNIT_LOG_LEVEL: StrictStr = "info"
    DUNIT_LOGS_DIRECTORY: StrictStr | None = None

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "DUNIT_NAMING_HOST": str,
            "DUNIT_NAMING_PORT": int,
            "DUNIT_MASTER": str,
            "DUNIT_WORKSPACE_DIR": str,
            "DUNIT_VM_NUM": int,
            "DUNIT_VM_VERSION": str,
            "DUNIT_LAUNCH_ID": str,
            "DUNIT_LOCATOR_PORT": int,
            "DUNIT_NUM_VMS": int,
            "DUNIT_STARTUP_TIMEOUT": str,
            "DUNIT_REQUEST_TIMEOUT": str,
            "DUNIT_CONNECT_TIMEOUT": str,
            "DUNIT_CONNECT_RETRIES": int,
            "DUNIT_RETRY_INTERVAL": str,
            "DUNIT_KILL_WAIT": str,
            "DUNIT_MASTER_PING_INTERVAL": str,
            "DUNIT_MASTER_PING_FAILURES": int,
            "DUNIT_MAKE_NEW_WORKING_DIRS": _to_bool,
            "DUNIT_HANDLE_SIGNALS": _to_bool,
            "DUNIT_VERSION_EXECUTABLES": str,
            "DUNIT_SUSPECT_FILENAME": str,
            "DUNIT_LOG_LEVEL": str,
            "DUNIT_LOGS_DIRECTORY": str,
        }

    def suspect_log_path(self) -> str:
        directory = self.DUNIT_LOGS_DIRECTORY or self.DUNIT_WORKSPACE_DIR
        return os.path.join(directory, self.DUNIT_SUSPECT_FILENAME)

    def to_launch_parameters(self) -> Dict[str, str]:
        """
        Render the model as process environment variables, the form in
        which worker processes receive their launch parameters.
        """
        parameters: Dict[str, str] = {}

        for name, value in self.model_dump(exclude_none=True).items():
            if isinstance(value, bool):
                value = "true" if value else "false"

            parameters[name] = str(value)

        return parameters
