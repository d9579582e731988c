"""World tracking for orphaned-record detection and scheduled sweeps."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.config import DeathChestSettings


class KnownWorlds:
    """
    Set-backed WorldResolver.

    The host server calls load()/unload() as worlds come and go.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: set[str] = set(names)

    def is_world_loaded(self, name: str) -> bool:
        return name in self._names

    def load(self, name: str) -> None:
        self._names.add(name)

    def unload(self, name: str) -> None:
        self._names.discard(name)

    def names(self) -> list[str]:
        """Loaded world names, sorted."""
        return sorted(self._names)


def enabled_worlds(settings: DeathChestSettings, worlds: KnownWorlds) -> list[str]:
    """
    Resolve the worlds death chests are enabled in.

    Args:
        settings: Settings carrying the enabled_worlds and disabled_worlds lists
        worlds: Currently loaded worlds

    Returns:
        The configured list, or every loaded world when the list is empty,
        minus any disabled world.
    """
    if settings.enabled_worlds:
        names = list(dict.fromkeys(settings.enabled_worlds))
    else:
        names = worlds.names()

    disabled = set(settings.disabled_worlds)
    return [name for name in names if name not in disabled]
