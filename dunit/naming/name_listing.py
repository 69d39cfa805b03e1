from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, List

if TYPE_CHECKING:
    from .naming_directory import NamingDirectory


class NameListing:
    """
    Restartable view of the bound names. Each iteration reads the names
    bound at that moment; a pickled listing carries a snapshot instead.
    """

    def __init__(
        self,
        directory: NamingDirectory | None = None,
        names: List[str] | None = None,
    ) -> None:
        self._directory = directory
        self._names = names

    def __iter__(self) -> Iterator[str]:
        if self._directory is not None:
            names = self._directory.bound_names()

        else:
            names = list(self._names or [])

        yield from names

    def __contains__(self, name: object) -> bool:
        return any(bound == name for bound in self)

    def __len__(self) -> int:
        return len(list(iter(self)))

    def __getstate__(self):
        return {"names": list(iter(self))}

    def __setstate__(self, state: dict):
        self._directory = None
        self._names = state["names"]

    def __repr__(self) -> str:
        return f"NameListing({list(iter(self))!r})"
