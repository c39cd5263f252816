"""
Base protocol for the database a dump is restored into.

The restore pipeline never talks to a driver directly. It goes through a
TargetDatabase, which exposes exactly the operations a restore needs and
translates driver failures into the errors in ..errors.

Invariants:
    - connect() and list_collection_names() raise TransportError on failure
    - Every other operation raises DatabaseOperationError on failure
    - Operations on one target are issued by a single task, except drops

How to change safely:
    - Protocol changes require updating every backend (mongo, memory)
    - Keep failure classes stable; the writer's policy depends on them
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, List, Protocol, Sequence, runtime_checkable


@runtime_checkable
class TargetDatabase(Protocol):
    """Protocol for restore target backends.

    Example:
        >>> target = MotorTargetDatabase("mongodb://localhost/shop")
        >>> await target.connect()
        >>> await target.create_collection("users")
        >>> await target.insert_many("users", [{"name": "ada"}])
        >>> await target.close()
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection.

        Raises:
            TransportError: If the server cannot be reached
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call when not connected."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether connect() has succeeded and close() has not run."""
        ...

    @property
    @abstractmethod
    def database_name(self) -> str:
        """Name of the database being restored into."""
        ...

    @abstractmethod
    async def create_collection(self, name: str) -> None:
        """Create a collection.

        Raises:
            DatabaseOperationError: If it exists already or creation fails
        """
        ...

    @abstractmethod
    async def insert_many(self, name: str, documents: Sequence[Dict[str, Any]]) -> int:
        """Insert documents in one round trip.

        Returns:
            Number of documents inserted

        Raises:
            DatabaseOperationError: If the batch write fails
        """
        ...

    @abstractmethod
    async def drop_collection(self, name: str) -> None:
        """Drop one collection.

        Raises:
            DatabaseOperationError: If the drop fails
        """
        ...

    @abstractmethod
    async def drop_database(self) -> None:
        """Drop the whole target database.

        Raises:
            DatabaseOperationError: If the drop fails
        """
        ...

    @abstractmethod
    async def list_collection_names(self) -> List[str]:
        """List collections currently in the target database.

        Raises:
            TransportError: If listing fails
        """
        ...

    @abstractmethod
    async def create_indexes(self, name: str, specs: Sequence[Dict[str, Any]]) -> None:
        """Run createIndexes for one collection.

        Raises:
            DatabaseOperationError: If the command fails
        """
        ...
