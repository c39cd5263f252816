"""
Base protocol and types for dump sources.

A dump source walks an exported snapshot and feeds its entries to an
EntryListener. Both the tar and the filesystem sources produce the same
shape of entries, so the listener never knows where the dump came from.

Dump layout:
    <database>/
        <collection>/<document file>      one document per file
        .metadata/<collection>            JSON list of index specifications

Invariants:
    - Exactly one entry is in flight: each listener call is awaited before
      the next entry is produced
    - listener.finish() is awaited exactly once, after the last entry
    - validate() never touches the target database

How to change safely:
    - Protocol changes require updating every source (archive, filesystem)
    - New sources must keep the one-entry-at-a-time contract
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, BinaryIO, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from ..config import RestoreConfig

# Reserved directory holding index definitions instead of documents.
METADATA_DIR = ".metadata"


class EntryKind(Enum):
    """Kinds of dump entries the listener understands."""

    DIRECTORY = "directory"
    FILE = "file"


@dataclass(frozen=True)
class DumpEntry:
    """One classified entry of a dump.

    Attributes:
        kind: Directory (collection announcement) or file (blob)
        path: Entry path as found in the dump, '/'-separated
    """

    kind: EntryKind
    path: str

    @property
    def segments(self) -> Tuple[str, ...]:
        return split_entry_path(self.path)

    @property
    def collection(self) -> str | None:
        """Collection this entry belongs to, if its path is deep enough.

        For a directory this is its own name; for a file, its parent's.
        """
        segments = self.segments
        if self.kind is EntryKind.DIRECTORY:
            return segments[-1] if len(segments) >= 2 else None
        return segments[-2] if len(segments) >= 3 else None

    @property
    def filename(self) -> str:
        segments = self.segments
        return segments[-1] if segments else ""


def split_entry_path(path: str) -> Tuple[str, ...]:
    """Split an entry path into segments.

    Backslashes are treated as separators, empty and '.' segments dropped.

    Example:
        >>> split_entry_path("./mydb\\\\users/")
        ('mydb', 'users')
    """
    normalized = path.replace("\\", "/")
    return tuple(part for part in normalized.split("/") if part and part != ".")


@runtime_checkable
class EntryListener(Protocol):
    """Receiver of dump entries."""

    @abstractmethod
    async def on_directory(self, path: str) -> None:
        """Handle a directory entry (collection announcement)."""
        ...

    @abstractmethod
    async def on_file(self, path: str, stream: BinaryIO) -> None:
        """Handle a file entry.

        The stream is only valid until this call returns.
        """
        ...

    @abstractmethod
    async def finish(self) -> None:
        """Handle the end of the dump."""
        ...


@runtime_checkable
class DumpSource(Protocol):
    """Protocol for dump sources.

    Example:
        >>> source = FilesystemDumpSource("/backups/2024-01-01")
        >>> source.validate()
        >>> await source.begin(dispatcher)
    """

    @abstractmethod
    def validate(self) -> None:
        """Inspect the source before any database work.

        Raises:
            ConfigurationError: If the source is unusable
        """
        ...

    @abstractmethod
    async def begin(self, listener: EntryListener) -> None:
        """Feed every entry to the listener, then await listener.finish().

        Returns once finish() has completed.
        """
        ...


def create_dump_source(config: "RestoreConfig") -> DumpSource:
    """Factory function to create a dump source from configuration.

    Args:
        config: Restore configuration

    Returns:
        TarDumpSource when a stream or tar file is configured,
        FilesystemDumpSource otherwise
    """
    from .archive import TarDumpSource
    from .filesystem import FilesystemDumpSource

    if config.stream is not None:
        return TarDumpSource(stream=config.stream)
    if config.use_archive:
        return TarDumpSource(path=config.archive_path)
    return FilesystemDumpSource(config.root)
