from __future__ import annotations

import asyncio
import pathlib
from typing import (
    Any,
    Dict,
    TypeVar,
)

from dunit.logging.models import Entry

from .logger_context import LoggerContext

T = TypeVar('T', bound=Entry)


class Logger:
    """
    A registry of named logger contexts. ``configure`` fixes where a
    name writes to and which entry models it accepts; ``context`` hands
    back the configured stream inside an ``async with`` block.
    """

    def __init__(self) -> None:
        self._contexts: Dict[str, LoggerContext] = {}

    def __getitem__(self, name: str):
        if name not in self._contexts:
            self._contexts[name] = LoggerContext(name=name)

        return self._contexts[name]

    def configure(
        self,
        name: str | None = None,
        template: str | None = None,
        path: str | None = None,
        models: dict[
            str,
            tuple[
                type[T],
                dict[str, Any],
            ]
        ] | None = None,
    ):
        name = name or 'default'

        filename: str | None = None
        directory: str | None = None

        if path:
            logfile_path = pathlib.Path(path).absolute()
            filename = logfile_path.name
            directory = str(logfile_path.parent)

        self._contexts[name] = LoggerContext(
            name=name,
            template=template,
            filename=filename,
            directory=directory,
            nested=True,
            models=models,
        )

    def context(self, name: str | None = None):
        return self[name or 'default']

    def stream(self, name: str | None = None):
        return self[name or 'default'].stream

    async def close(self):
        if len(self._contexts) > 0:
            await asyncio.gather(*[
                context.stream.close() for context in self._contexts.values()
            ], return_exceptions=True)

    def abort(self):
        for context in self._contexts.values():
            context.stream.abort()
