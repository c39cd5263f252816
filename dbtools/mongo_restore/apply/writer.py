"""
Batched writer for restored documents.

The writer sits between the dispatcher and the target database. It keeps
one pending buffer per collection and turns many single-document calls
into a few batched inserts.

Protocol:
    1. create_collection() for every collection announced by the source
    2. add_document() for every decoded document; a collection whose
       buffer grows past FLUSH_THRESHOLD is flushed immediately
    3. drain() once the source is exhausted, flushing every buffer
    4. add_indices() once drain() has returned

Invariants:
    - One insert_many round trip per flush, never one per document
    - A buffer is cleared by a flush whether or not the insert succeeded
    - Database failures are logged and counted, never raised to the caller
    - Buffers are touched by a single task only; no locking is needed

How to change safely:
    - Raising from here turns a best-effort restore into all-or-nothing
    - Keep drain() iterative; dumps can hold thousands of collections
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors import DatabaseOperationError
from ..target.base import TargetDatabase

logger = logging.getLogger(__name__)

# Number of pending documents a collection may hold before it is flushed.
FLUSH_THRESHOLD = 50


@dataclass(frozen=True)
class MetadataRecord:
    """Index definitions captured for one collection.

    Attributes:
        collection: Collection the indexes belong to
        indexes: Index specifications, in dump order
    """

    collection: str
    indexes: List[Dict[str, Any]]


@dataclass
class WriterStats:
    """Counters for one restore run."""

    collections_created: int = 0
    documents_written: int = 0
    batches_flushed: int = 0
    indexes_applied: int = 0
    errors: int = 0


class BatchedWriter:
    """Buffers documents per collection and writes them in batches.

    Attributes:
        target: Database being restored into
        threshold: Buffer length that may not be exceeded without a flush
        stats: Counters for created collections, written documents, etc.

    Example:
        >>> writer = BatchedWriter(target)
        >>> await writer.create_collection("users")
        >>> await writer.add_document("users", {"name": "ada"})
        >>> await writer.drain()
    """

    def __init__(
        self,
        target: TargetDatabase,
        log: Optional[logging.Logger] = None,
        threshold: int = FLUSH_THRESHOLD,
    ) -> None:
        """Initialize the writer.

        Args:
            target: Connected target database
            log: Session logger; defaults to this module's logger
            threshold: Flush a collection once its buffer exceeds this
        """
        self.target = target
        self.threshold = threshold
        self.stats = WriterStats()
        self._log = log or logger
        self._pending: Dict[str, List[Dict[str, Any]]] = {}

    @property
    def pending(self) -> Dict[str, int]:
        """Buffered document count per collection."""
        return {name: len(docs) for name, docs in self._pending.items()}

    async def create_collection(self, name: str) -> None:
        """Create a collection; an existing one is logged, not an error."""
        try:
            await self.target.create_collection(name)
        except DatabaseOperationError as e:
            self._failed(e)
            return
        self.stats.collections_created += 1

    async def add_document(self, name: str, document: Dict[str, Any]) -> None:
        """Buffer a document, flushing its collection past the threshold."""
        buffer = self._pending.setdefault(name, [])
        buffer.append(document)
        if len(buffer) > self.threshold:
            await self._flush(name)

    async def drain(self) -> None:
        """Flush every buffered collection until nothing is pending."""
        while self._pending:
            name = next(iter(self._pending))
            await self._flush(name)

    async def add_indices(self, records: List[MetadataRecord]) -> None:
        """Apply index definitions, consuming records last-in-first-out.

        The list is emptied as records are applied.
        """
        while records:
            record = records.pop()
            try:
                await self.target.create_indexes(record.collection, record.indexes)
            except DatabaseOperationError as e:
                self._failed(e)
                continue
            self.stats.indexes_applied += 1
            self._log.debug(f"Created {len(record.indexes)} indexes on {record.collection}")

    async def _flush(self, name: str) -> None:
        documents = self._pending.pop(name, [])
        if not documents:
            return

        self.stats.batches_flushed += 1
        try:
            written = await self.target.insert_many(name, documents)
        except DatabaseOperationError as e:
            self._failed(e)
            return
        self.stats.documents_written += written

    def _failed(self, error: DatabaseOperationError) -> None:
        self.stats.errors += 1
        self._log.warning(error.message)
