"""
Filesystem dump source.

Walks a dump unpacked on disk. The dump root must hold exactly one
directory, named after the source database; every directory below it is a
collection and every file inside those is one document (or, under
.metadata, one index list).

Invariants:
    - All collection directories are announced before any file is read
    - Files are opened one at a time and closed before the next is produced
    - A root without exactly one database directory is rejected by
      validate(), before any connection is made
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

from ..errors import ConfigurationError
from .base import EntryListener

logger = logging.getLogger(__name__)


class FilesystemDumpSource:
    """Dump source over a directory tree.

    Entry paths handed to the listener are relative to the dump root,
    e.g. "shop/users/6521.json".
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def validate(self) -> None:
        """Check the dump root layout.

        Raises:
            ConfigurationError: If the root is not a directory or does not
                contain exactly one database directory
        """
        self._database_dir()

    def _database_dir(self) -> Path:
        if not self.root.is_dir():
            raise ConfigurationError(f"root option is not a directory: {self.root}", option="root")

        dirs = sorted(p.name for p in self.root.iterdir() if p.is_dir())
        if len(dirs) != 1:
            raise ConfigurationError(
                f"Found {len(dirs)} database directories in {self.root} and only support one: {dirs}",
                option="root",
            )
        return self.root / dirs[0]

    async def begin(self, listener: EntryListener) -> None:
        """Announce collections, feed every document file, then finish."""
        db_dir = self._database_dir()
        collections = self._subdirectories(db_dir)

        for collection_dir in collections:
            await listener.on_directory(self._relative(collection_dir))

        for collection_dir in collections:
            for path in sorted(p for p in collection_dir.iterdir() if p.is_file()):
                with path.open("rb") as f:
                    await listener.on_file(self._relative(path), f)

        await listener.finish()

    @staticmethod
    def _subdirectories(db_dir: Path) -> List[Path]:
        return sorted(p for p in db_dir.iterdir() if p.is_dir())

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()
