"""
In-memory restore target for testing.

This module provides a dictionary-backed TargetDatabase for:
- Unit tests of the writer, dispatcher and dropper
- Integration tests of whole restore sessions
- Local dry runs without a MongoDB server

Invariants:
    - All data is lost when the object is discarded
    - Failure classes match the Motor backend (TransportError for connect
      and listing, DatabaseOperationError for everything else)
    - Every operation is appended to `operations` in issue order

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the TargetDatabase protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import DatabaseOperationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_INDEX_NAME = "_id_"


@dataclass
class InMemoryCollection:
    """In-memory collection storage."""

    documents: List[Dict[str, Any]] = field(default_factory=list)
    indexes: List[Dict[str, Any]] = field(default_factory=list)


class InMemoryTargetDatabase:
    """In-memory implementation of TargetDatabase for testing.

    Attributes:
        operations: Log of (operation, collection) tuples in issue order
        connect_calls: Number of connect() attempts

    Example:
        >>> target = InMemoryTargetDatabase("shop", existing={"old": []})
        >>> target.fail_on("drop_collection", "old")
        >>> await target.connect()
        >>> await target.drop_collection("old")  # raises DatabaseOperationError
    """

    def __init__(
        self,
        database_name: str = "test",
        existing: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        drop_delay: float = 0.0,
    ) -> None:
        """Initialize the in-memory target.

        Args:
            database_name: Name reported as the target database
            existing: Collections present before the restore
            drop_delay: Seconds each collection drop takes, to exercise
                concurrent drops
        """
        self._database_name = database_name
        self._collections: Dict[str, InMemoryCollection] = {
            name: InMemoryCollection(documents=copy.deepcopy(docs))
            for name, docs in (existing or {}).items()
        }
        self._connected = False
        self._failures: Set[Tuple[str, Optional[str]]] = set()
        self.drop_delay = drop_delay
        self.operations: List[Tuple[str, Optional[str]]] = []
        self.connect_calls = 0
        self.close_calls = 0

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def database_name(self) -> str:
        return self._database_name

    async def connect(self) -> None:
        """Connect (no-op unless a failure was injected)."""
        self.connect_calls += 1
        self._check_failure("connect", None, TransportError)
        self._connected = True
        logger.debug("InMemoryTargetDatabase connected")

    async def close(self) -> None:
        """Close; data is kept so tests can inspect it afterwards."""
        self.close_calls += 1
        self._connected = False
        logger.debug("InMemoryTargetDatabase closed")

    async def create_collection(self, name: str) -> None:
        self._record("create_collection", name)
        self._check_failure("create_collection", name, DatabaseOperationError)
        if name in self._collections:
            raise DatabaseOperationError(
                f"Collection {self._database_name}.{name} already exists",
                operation="create_collection",
                collection=name,
            )
        self._collections[name] = InMemoryCollection()

    async def insert_many(self, name: str, documents: Sequence[Dict[str, Any]]) -> int:
        self._record("insert_many", name)
        self._check_failure("insert_many", name, DatabaseOperationError)
        if not all(isinstance(doc, Mapping) for doc in documents):
            raise DatabaseOperationError(
                f"Batch for {name} holds a value that is not a document",
                operation="insert_many",
                collection=name,
            )
        collection = self._collections.setdefault(name, InMemoryCollection())
        collection.documents.extend(copy.deepcopy(list(documents)))
        return len(documents)

    async def drop_collection(self, name: str) -> None:
        self._record("drop_collection", name)
        if self.drop_delay:
            await asyncio.sleep(self.drop_delay)
        self._check_failure("drop_collection", name, DatabaseOperationError)
        self._collections.pop(name, None)

    async def drop_database(self) -> None:
        self._record("drop_database", None)
        self._check_failure("drop_database", None, DatabaseOperationError)
        self._collections.clear()

    async def list_collection_names(self) -> List[str]:
        self._record("list_collection_names", None)
        self._check_failure("list_collection_names", None, TransportError)
        return list(self._collections)

    async def create_indexes(self, name: str, specs: Sequence[Dict[str, Any]]) -> None:
        self._record("create_indexes", name)
        self._check_failure("create_indexes", name, DatabaseOperationError)
        collection = self._collections.setdefault(name, InMemoryCollection())
        existing = {spec.get("name") for spec in collection.indexes}
        for spec in specs:
            if spec.get("name") not in existing:
                collection.indexes.append(dict(spec))

    def _record(self, operation: str, collection: Optional[str]) -> None:
        if not self._connected:
            raise TransportError("Not connected")
        self.operations.append((operation, collection))

    def _check_failure(self, operation: str, collection: Optional[str], error_cls: type) -> None:
        if (operation, collection) not in self._failures and (operation, None) not in self._failures:
            return
        message = f"injected {operation} failure"
        if error_cls is DatabaseOperationError:
            raise DatabaseOperationError(message, operation=operation, collection=collection)
        raise error_cls(message)

    # Testing helpers

    def fail_on(self, operation: str, collection: Optional[str] = None) -> None:
        """Make an operation fail (testing helper).

        Args:
            operation: Method name, e.g. "insert_many" or "connect"
            collection: Only fail for this collection; None fails all
        """
        self._failures.add((operation, collection))

    def collection_names(self) -> List[str]:
        """Names of all collections (testing helper)."""
        return sorted(self._collections)

    def documents(self, name: str) -> List[Dict[str, Any]]:
        """Documents stored in a collection (testing helper)."""
        collection = self._collections.get(name)
        return list(collection.documents) if collection else []

    def indexes(self, name: str, include_default: bool = False) -> List[Dict[str, Any]]:
        """Index specifications of a collection (testing helper)."""
        collection = self._collections.get(name)
        if not collection:
            return []
        return [
            spec
            for spec in collection.indexes
            if include_default or spec.get("name") != DEFAULT_INDEX_NAME
        ]

    def calls(self, operation: str) -> List[Optional[str]]:
        """Collections targeted by one kind of operation, in order (testing helper)."""
        return [name for op, name in self.operations if op == operation]
