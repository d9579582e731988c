"""
Death Chest - Persistent storage for player death chests.

Tracks the chests placed where players die: who owns each one, who killed
them, where it sits and when it expires.

Package structure:
    deathchest/
    ├── core/           # Shared infrastructure
    │   ├── config.py   # DEATHCHEST_* settings
    │   └── logging.py  # Package loggers
    └── datastore/      # Records, backends, sweeper, backend selection
"""

__version__ = "1.0.0"

from .core import DeathChestSettings, load_settings
from .datastore import DataStoreManager, DeathChestRecord, KnownWorlds

__all__ = [
    "__version__",
    "DeathChestSettings",
    "load_settings",
    "DataStoreManager",
    "DeathChestRecord",
    "KnownWorlds",
]
