"""
vulnsrc/registry.py -- Updater protocol and the name -> updater table.

There is no module-level registry. build_registry() in vulnsrc/__init__.py
constructs one at startup and the caller passes it to whatever runs
updaters; tests construct their own.
"""

from collections.abc import Iterator
from typing import Optional, Protocol, runtime_checkable

from core.models import UpdateResponse
from vulndb.state import Datastore


@runtime_checkable
class Updater(Protocol):
    """A vulnerability source.

    update() raises core.errors.CouldNotDownload / CouldNotParse on fatal
    upstream problems and returns an UpdateResponse otherwise. clean()
    releases anything the updater holds and must be safe to call whether
    or not update() ran or succeeded.
    """

    def update(self, datastore: Datastore) -> UpdateResponse: ...

    def clean(self) -> None: ...


class UpdaterRegistry:
    def __init__(self) -> None:
        self._updaters: dict[str, Updater] = {}
        self._frozen = False

    def register(self, name: str, updater: Updater) -> None:
        """Register updater under name. Duplicate names are a programming error."""
        if self._frozen:
            raise RuntimeError(f"cannot register updater {name!r}: registry is frozen")
        if not name:
            raise ValueError("updater name must not be empty")
        if name in self._updaters:
            raise ValueError(f"updater {name!r} is already registered")
        if not isinstance(updater, Updater):
            raise TypeError(f"{type(updater).__name__} does not implement update() and clean()")
        self._updaters[name] = updater

    def freeze(self) -> None:
        """End the initialization phase; later register() calls fail."""
        self._frozen = True

    def get(self, name: str) -> Optional[Updater]:
        return self._updaters.get(name)

    def names(self) -> list[str]:
        return sorted(self._updaters)

    def __contains__(self, name: object) -> bool:
        return name in self._updaters

    def __len__(self) -> int:
        return len(self._updaters)

    def __iter__(self) -> Iterator[tuple[str, Updater]]:
        return iter(sorted(self._updaters.items()))
