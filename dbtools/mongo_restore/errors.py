"""
Error types for the restore pipeline.

Errors fall into two groups:
- Fatal: ConfigurationError, TransportError, SourceFormatError. These stop
  the session and are reported through the result and completion callback.
- Non-fatal: DatabaseOperationError. Raised by target backends for a single
  failed operation; the writer and dropper log it and carry on.

Invariants:
    - All errors inherit from RestoreError
    - Driver exceptions never leak past the target adapters
    - Error messages name the collection or entry involved

How to change safely:
    - New fatal conditions must be added to RestoreSession's handling
    - Do not make DatabaseOperationError fatal without revisiting the writer
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RestoreError(Exception):
    """Base exception for all restore errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "RESTORE_ERROR"
        self.details = details or {}


class ConfigurationError(RestoreError):
    """Restore options or dump layout are invalid.

    Raised when:
    - The connection URI is missing
    - The dump root is missing or not a directory
    - The decoder tag is unknown
    - The dump root does not hold exactly one database directory
    """

    def __init__(self, message: str, option: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"option": option},
        )
        self.option = option


class TransportError(RestoreError):
    """Talking to the target database failed as a whole.

    Raised when:
    - The connection cannot be established
    - Listing existing collections fails
    """

    def __init__(self, message: str, uri: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"uri": uri},
        )
        self.uri = uri


class DatabaseOperationError(RestoreError):
    """A single database operation failed.

    Raised by target backends for create-collection, insert, drop and
    create-indexes failures. Never fatal to a restore.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        collection: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="DATABASE_OPERATION_ERROR",
            details={"operation": operation, "collection": collection},
        )
        self.operation = operation
        self.collection = collection


class SourceFormatError(RestoreError):
    """A dump entry could not be decoded."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="SOURCE_FORMAT_ERROR",
            details={"path": path},
        )
        self.path = path
