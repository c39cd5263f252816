"""
Apply module - turning dump entries into database writes.

This module handles:
- Decoding document and index blobs
- Classifying dump entries (collections, documents, index metadata)
- Batched document writes and index replay
- Clearing the target before a restore

Invariants:
    - Collections are created before their documents for filesystem dumps
    - Indexes are applied only after every buffered document is flushed
    - Individual database failures are logged, never raised

How to change safely:
    - Verify ordering with the in-memory target's operation log
    - Keep the dispatcher free of driver-specific code
"""

from .decoder import Decoder, DecoderKind, decode_index_specs, resolve_decoder
from .dispatcher import EntryDispatcher
from .dropper import CollectionDropper, DropMode, DropPolicy, is_system_collection
from .writer import FLUSH_THRESHOLD, BatchedWriter, MetadataRecord, WriterStats

__all__ = [
    "Decoder",
    "DecoderKind",
    "decode_index_specs",
    "resolve_decoder",
    "EntryDispatcher",
    "CollectionDropper",
    "DropMode",
    "DropPolicy",
    "is_system_collection",
    "BatchedWriter",
    "MetadataRecord",
    "WriterStats",
    "FLUSH_THRESHOLD",
]
