"""
Expiration Sweeper for the Datastore.

Background task that periodically deletes expired death chests in every
enabled world. A world whose sweep fails is logged and skipped; the other
worlds are still swept.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..core.logging import get_logger
from .errors import StorageError
from .protocol import system_clock
from .worlds import enabled_worlds

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..core.config import DeathChestSettings
    from .protocol import Clock, DataStore
    from .worlds import KnownWorlds

logger = get_logger(__name__)

# Backoff bounds after an unexpected error in the sweep loop
INITIAL_BACKOFF_SECONDS = 60.0
MAX_BACKOFF_SECONDS = 3600.0


@dataclass
class SweepStats:
    """Statistics from a sweep run."""

    records_deleted: int = 0
    worlds_swept: list[str] = field(default_factory=list)
    worlds_failed: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0


class ExpirationSweeper:
    """
    Periodically removes expired death chests.

    run_once() can be called directly from a scheduler; start() runs it in a
    loop as an asyncio task on the host's event loop thread.
    """

    def __init__(
        self,
        store: DataStore,
        settings: DeathChestSettings,
        worlds: KnownWorlds,
        clock: Clock = system_clock,
    ):
        """
        Initialize the sweeper.

        Args:
            store: Datastore to sweep
            settings: Supplies enabled_worlds and sweep_interval_seconds
            worlds: Loaded worlds, used when enabled_worlds is empty
            clock: Clock read once per sweep
        """
        self.store = store
        self.settings = settings
        self.worlds = worlds
        self.clock = clock
        self._running = False
        self._task: asyncio.Task | None = None

    def run_once(self, worlds: Iterable[str] | None = None) -> SweepStats:
        """
        Sweep each world once.

        Args:
            worlds: Worlds to sweep (defaults to the enabled worlds)

        Returns:
            Statistics from the sweep
        """
        start_time = time.time()
        stats = SweepStats()
        if worlds is None:
            worlds = enabled_worlds(self.settings, self.worlds)
        targets = list(worlds)

        # One instant for the whole sweep
        now = self.clock()

        for world in targets:
            try:
                deleted = self.store.delete_expired_records(world, now)
            except StorageError:
                logger.warning("Expiration sweep failed for world '%s'; continuing.", world)
                stats.worlds_failed.append(world)
                continue

            stats.records_deleted += deleted
            stats.worlds_swept.append(world)
            if deleted > 0:
                logger.info("Expired %d death chest(s) in world '%s'", deleted, world)

        if stats.records_deleted > 0:
            self.store.flush()

        stats.duration_seconds = time.time() - start_time
        logger.debug(
            "Expiration sweep complete: %d deleted across %d world(s) in %.2fs",
            stats.records_deleted,
            len(stats.worlds_swept),
            stats.duration_seconds,
        )
        return stats

    async def run(self) -> None:
        """
        Run the sweep loop continuously.

        Runs until cancelled. Handles errors with exponential backoff.

        Each sweep calls the blocking datastore directly, so the event loop is
        held for the duration of run_once(); the store must only be used from
        this loop's thread.
        """
        self._running = True
        backoff = INITIAL_BACKOFF_SECONDS

        logger.info(
            "Expiration sweeper started (interval=%d seconds)",
            self.settings.sweep_interval_seconds,
        )

        while self._running:
            try:
                self.run_once()
                backoff = INITIAL_BACKOFF_SECONDS
                await asyncio.sleep(self.settings.sweep_interval_seconds)

            except asyncio.CancelledError:
                logger.info("Expiration sweeper cancelled")
                break

            except Exception as e:
                logger.error("Expiration sweeper error, retrying in %.0fs: %s", backoff, e)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF_SECONDS)

        self._running = False
        logger.info("Expiration sweeper stopped")

    def start(self) -> asyncio.Task:
        """
        Start the sweep loop as a background task.

        Returns:
            The asyncio Task running the sweep loop
        """
        if self._task is not None and not self._task.done():
            raise RuntimeError("Expiration sweeper already running")

        self._task = asyncio.create_task(self.run(), name="deathchest-sweeper")
        return self._task

    async def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the sweep loop.

        Args:
            timeout: How long to wait for the task to finish
        """
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Expiration sweeper did not stop within timeout")
            except asyncio.CancelledError:
                pass

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
