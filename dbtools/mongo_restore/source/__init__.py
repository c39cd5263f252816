"""
Dump sources for the restore pipeline.

This module provides the sources a restore can read from:
- TarDumpSource: a tar archive file or any binary stream
- FilesystemDumpSource: a dump unpacked on disk

Both feed the same EntryListener contract, one entry at a time.
"""

from .archive import TarDumpSource
from .base import (
    METADATA_DIR,
    DumpEntry,
    DumpSource,
    EntryKind,
    EntryListener,
    create_dump_source,
    split_entry_path,
)
from .filesystem import FilesystemDumpSource

__all__ = [
    # Protocol and types
    "DumpSource",
    "EntryListener",
    "DumpEntry",
    "EntryKind",
    "METADATA_DIR",
    "split_entry_path",
    # Factory
    "create_dump_source",
    # Implementations
    "TarDumpSource",
    "FilesystemDumpSource",
]
