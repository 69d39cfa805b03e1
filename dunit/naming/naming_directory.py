from typing import Dict

from dunit.errors import DuplicateNameError, NotFoundError
from dunit.hooks import remote
from dunit.protocols import RemoteStub

from .name_listing import NameListing

NAMING_DIRECTORY_NAME = "naming_directory"


class NamingDirectory:
    """
    Maps names to remote stubs. Lives on the coordinator loop, so every
    operation runs to completion before the next one starts.
    """

    def __init__(self) -> None:
        self._bindings: Dict[str, RemoteStub] = {}
        self._rebindable: set[str] = set()

    @remote()
    def bind(self, name: str, stub: RemoteStub):
        if name in self._bindings and name not in self._rebindable:
            raise DuplicateNameError(name)

        self._rebindable.discard(name)
        self._bindings[name] = stub

    @remote()
    def unbind(self, name: str):
        self._bindings.pop(name, None)

    @remote()
    def lookup(self, name: str) -> RemoteStub:
        stub = self._bindings.get(name)
        if stub is None:
            raise NotFoundError(name)

        return stub

    @remote()
    def list(self) -> NameListing:
        return NameListing(directory=self)

    def permit_rebind(self, name: str):
        self._rebindable.add(name)

    def is_bound(self, name: str) -> bool:
        return name in self._bindings

    def bound_names(self):
        return list(self._bindings.keys())
