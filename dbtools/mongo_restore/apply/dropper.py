"""
Pre-restore clearing of the target database.

Three modes are supported:
- DATABASE: drop the whole target database
- NAMED: drop an explicit list of collections
- ALL_EXISTING: drop every current collection except server-owned
  "system." ones

Invariants:
    - Collection drops run concurrently and are joined before returning
    - A failed drop is logged and does not stop the other drops
    - A failure to list collections is fatal and happens before any drop
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from ..errors import DatabaseOperationError
from ..target.base import TargetDatabase

logger = logging.getLogger(__name__)

# Collections the server owns; never dropped by the "all existing" mode.
SYSTEM_PREFIX = "system."


class DropMode(Enum):
    """What to clear before importing."""

    NONE = "none"
    DATABASE = "database"
    NAMED = "named"
    ALL_EXISTING = "all_existing"


@dataclass(frozen=True)
class DropPolicy:
    """Resolved drop behaviour.

    Attributes:
        mode: Which drop step to run
        names: Collections to drop when mode is NAMED
    """

    mode: DropMode = DropMode.NONE
    names: tuple[str, ...] = ()

    @property
    def enabled(self) -> bool:
        return self.mode is not DropMode.NONE


def is_system_collection(name: str) -> bool:
    return name.startswith(SYSTEM_PREFIX)


class CollectionDropper:
    """Runs the configured drop step against a target database."""

    def __init__(self, target: TargetDatabase, log: Optional[logging.Logger] = None) -> None:
        self.target = target
        self._log = log or logger
        self.failed: List[str] = []

    async def run(self, policy: DropPolicy) -> None:
        """Run the drop step for a policy.

        Raises:
            TransportError: If existing collections cannot be listed
        """
        if policy.mode is DropMode.DATABASE:
            await self.drop_database()
        elif policy.mode is DropMode.NAMED:
            await self.drop_collections(policy.names)
        elif policy.mode is DropMode.ALL_EXISTING:
            await self.drop_all_existing()

    async def drop_database(self) -> None:
        self._log.info("drop database")
        try:
            await self.target.drop_database()
        except DatabaseOperationError as e:
            self.failed.append(self.target.database_name)
            self._log.warning(e.message)

    async def drop_collections(self, names: Iterable[str]) -> None:
        """Drop collections concurrently; returns when every drop is done."""
        names = list(names)
        self._log.info("drop collections")
        if not names:
            return
        await asyncio.gather(*(self._drop_one(name) for name in names))

    async def drop_all_existing(self) -> None:
        """Drop every existing collection not carrying the system prefix.

        Raises:
            TransportError: If listing collections fails
        """
        existing = await self.target.list_collection_names()
        await self.drop_collections(name for name in existing if not is_system_collection(name))

    async def _drop_one(self, name: str) -> None:
        self._log.info(f"select collection {name}")
        try:
            await self.target.drop_collection(name)
        except DatabaseOperationError as e:
            self.failed.append(name)
            self._log.warning(e.message)
