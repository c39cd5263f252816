"""
mongo_restore - restore a MongoDB database from an exported dump.

A dump is either a directory tree or a tar stream with this layout:

    <database>/<collection>/<one file per document>
    <database>/.metadata/<collection>     index specifications (JSON list)

Pipeline:
    ┌────────────┐     ┌─────────────────┐     ┌───────────────┐     ┌──────────┐
    │ DumpSource │────▶│ EntryDispatcher │────▶│ BatchedWriter │────▶│ MongoDB  │
    │ (tar / fs) │     │ (classify,      │     │ (50-doc       │     │ (Motor)  │
    └────────────┘     │  decode)        │     │  batches)     │     └──────────┘
                       └─────────────────┘     └───────────────┘

Invariants:
    - One dump entry is in flight at a time
    - Indexes are replayed only after every document has been flushed
    - Individual database failures are logged; the restore carries on
    - Connection, listing, layout and decode failures abort the restore

How to change safely:
    - Run the in-memory integration tests for every pipeline change
    - Run tests/e2e against a real mongod before changing target/mongo.py
"""

from ._version import __version__
from .config import RestoreConfig
from .errors import (
    ConfigurationError,
    DatabaseOperationError,
    RestoreError,
    SourceFormatError,
    TransportError,
)
from .session import RestoreResult, RestoreSession, SessionState, restore, restore_async

__all__ = [
    "__version__",
    "restore",
    "restore_async",
    "RestoreConfig",
    "RestoreSession",
    "RestoreResult",
    "SessionState",
    "RestoreError",
    "ConfigurationError",
    "TransportError",
    "DatabaseOperationError",
    "SourceFormatError",
]
