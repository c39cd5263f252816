"""
MongoDB restore target backed by Motor.

This is the production TargetDatabase. It owns one AsyncIOMotorClient for
the duration of a restore and maps pymongo errors onto the restore error
classes so the pipeline never sees driver exceptions.

Invariants:
    - connect() verifies reachability with a ping before returning
    - The target database comes from the URI unless overridden
    - Batched inserts are unordered so one bad document does not skip the
      rest of its batch

How to change safely:
    - Test against a real mongod (tests/e2e) before deploying
    - Keep the error mapping in sync with target/memory.py
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from bson.errors import InvalidDocument
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import (
    BulkWriteError,
    CollectionInvalid,
    ConfigurationError as MongoConfigurationError,
    PyMongoError,
)

from ..errors import ConfigurationError, DatabaseOperationError, TransportError

logger = logging.getLogger(__name__)

# Index spec keys written by old servers that current servers reject.
_LEGACY_INDEX_KEYS = ("ns",)


class MotorTargetDatabase:
    """Motor implementation of the TargetDatabase protocol.

    Attributes:
        uri: MongoDB connection string
        options: Extra keyword arguments for AsyncIOMotorClient

    Example:
        >>> target = MotorTargetDatabase("mongodb://localhost:27017/shop")
        >>> await target.connect()
        >>> await target.insert_many("users", [{"name": "ada"}])
        >>> await target.close()
    """

    def __init__(
        self,
        uri: str,
        options: Optional[Dict[str, Any]] = None,
        database: Optional[str] = None,
    ) -> None:
        """Initialize the Motor target.

        Args:
            uri: MongoDB connection string
            options: Passed through to AsyncIOMotorClient
            database: Database name when the URI carries none
        """
        self.uri = uri
        self.options = dict(options or {})
        self._database_override = database
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._db is not None

    @property
    def database_name(self) -> str:
        if self._db is None:
            return self._database_override or ""
        return self._db.name

    async def connect(self) -> None:
        """Create the client, select the database and ping the server.

        Raises:
            ConfigurationError: If no database name can be determined
            TransportError: If the server is unreachable
        """
        if self.is_connected:
            return

        try:
            client = AsyncIOMotorClient(self.uri, **self.options)
        except MongoConfigurationError as e:
            raise ConfigurationError(f"Invalid connection options: {e}", option="uri") from e
        except PyMongoError as e:
            raise TransportError(f"Failed to create MongoDB client: {e}") from e

        try:
            db = client.get_default_database(default=self._database_override)
        except MongoConfigurationError as e:
            client.close()
            raise ConfigurationError(
                "No database name in uri and no database option given", option="database"
            ) from e

        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            client.close()
            raise TransportError(f"Failed to connect to MongoDB: {e}") from e

        self._client = client
        self._db = db
        logger.debug("Connected to MongoDB", extra={"database": db.name})

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    async def create_collection(self, name: str) -> None:
        db = self._require_db()
        try:
            await db.create_collection(name)
        except CollectionInvalid as e:
            raise DatabaseOperationError(str(e), operation="create_collection", collection=name) from e
        except PyMongoError as e:
            raise DatabaseOperationError(
                f"Failed to create collection {name}: {e}",
                operation="create_collection",
                collection=name,
            ) from e

    async def insert_many(self, name: str, documents: Sequence[Dict[str, Any]]) -> int:
        db = self._require_db()
        try:
            result = await db[name].insert_many(list(documents), ordered=False)
        except BulkWriteError as e:
            inserted = e.details.get("nInserted", 0)
            errors = e.details.get("writeErrors", [])
            raise DatabaseOperationError(
                f"Batch insert into {name} wrote {inserted} of {len(documents)} documents, "
                f"{len(errors)} write errors",
                operation="insert_many",
                collection=name,
            ) from e
        except (TypeError, InvalidDocument) as e:
            # Raised while encoding, before anything is sent
            raise DatabaseOperationError(
                f"Batch for {name} holds a document that cannot be encoded: {e}",
                operation="insert_many",
                collection=name,
            ) from e
        except PyMongoError as e:
            raise DatabaseOperationError(
                f"Batch insert into {name} failed: {e}",
                operation="insert_many",
                collection=name,
            ) from e
        return len(result.inserted_ids)

    async def drop_collection(self, name: str) -> None:
        db = self._require_db()
        try:
            await db[name].drop()
        except PyMongoError as e:
            raise DatabaseOperationError(
                f"Failed to drop collection {name}: {e}",
                operation="drop_collection",
                collection=name,
            ) from e

    async def drop_database(self) -> None:
        db = self._require_db()
        try:
            await self._client.drop_database(db.name)
        except PyMongoError as e:
            raise DatabaseOperationError(
                f"Failed to drop database {db.name}: {e}",
                operation="drop_database",
            ) from e

    async def list_collection_names(self) -> List[str]:
        db = self._require_db()
        try:
            return await db.list_collection_names()
        except PyMongoError as e:
            raise TransportError(f"Failed to list collections of {db.name}: {e}") from e

    async def create_indexes(self, name: str, specs: Sequence[Dict[str, Any]]) -> None:
        db = self._require_db()
        indexes = [
            {key: value for key, value in spec.items() if key not in _LEGACY_INDEX_KEYS}
            for spec in specs
        ]
        try:
            await db.command({"createIndexes": name, "indexes": indexes})
        except PyMongoError as e:
            raise DatabaseOperationError(
                f"Failed to create indexes on {name}: {e}",
                operation="create_indexes",
                collection=name,
            ) from e

    def _require_db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise TransportError("Not connected", uri=None)
        return self._db
