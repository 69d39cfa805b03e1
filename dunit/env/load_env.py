import os
from typing import Dict, Mapping, TypeVar, Union

from dotenv import dotenv_values
from pydantic import BaseModel

from .env import Env

T = TypeVar("T", bound=BaseModel)

PrimaryType = Union[str, int, bool, float, bytes]


def _convert(
    source: Mapping[str, str | None],
    envars: Dict[str, type],
) -> Dict[str, PrimaryType]:
    return {
        envar_name: envars[envar_name](envar_value)
        for envar_name, envar_value in source.items()
        if envar_name in envars and envar_value
    }


def load_env(default: type[Env], env_file: str = None, override: T | None = None) -> T:
    """
    Build an Env from the process environment, then an optional dotenv
    file, then an explicit override model. Later sources win.
    """
    envars = default.types_map()

    if env_file is None:
        env_file = ".env"

    values = _convert(os.environ, envars)

    if env_file and os.path.exists(env_file):
        values.update(
            _convert(dotenv_values(dotenv_path=env_file), envars)
        )

    if override:
        values.update(override.model_dump(exclude_none=True, exclude_unset=True))
        return type(override)(**values)

    return default(**values)
