"""
Restore session: the lifecycle of one restore run.

A session owns the target connection and drives the pipeline through its
states:

    Connecting -> [Dropping] -> Importing -> Draining -> [IndexApplying]
               -> Closing -> Done | Failed

Invariants:
    - Options are validated before the session is constructed; a
      ConfigurationError there is raised to the caller, not reported
    - The dump source is inspected before connecting, so a bad dump layout
      never opens a connection
    - Closing always runs and releases the connection
    - The completion callback fires exactly once, after closing
    - Only fatal errors reach the result; per-operation database errors
      are logged by the writer and dropper

How to change safely:
    - New states must be entered through _enter() so state_history stays
      complete
    - Test every failure path against InMemoryTargetDatabase.fail_on()
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from .apply.dispatcher import EntryDispatcher
from .apply.dropper import CollectionDropper
from .apply.writer import BatchedWriter, WriterStats
from .config import RestoreConfig
from .errors import RestoreError
from .logs import close_session_log, open_session_log, session_logger_name
from .source.base import DumpSource, create_dump_source
from .target.base import TargetDatabase
from .target.mongo import MotorTargetDatabase

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """States of a restore session."""

    CONNECTING = "connecting"
    DROPPING = "dropping"
    IMPORTING = "importing"
    DRAINING = "draining"
    INDEX_APPLYING = "index_applying"
    CLOSING = "closing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RestoreResult:
    """Result of a restore session.

    Attributes:
        success: Whether the restore ran to completion
        state: Terminal state (DONE or FAILED)
        error: Fatal error, if any
        collections_created: Collections created by the writer
        documents_written: Documents acknowledged by the target
        batches_flushed: Batched insert round trips issued
        indexes_applied: Index records applied successfully
        write_errors: Database operations that failed and were logged
        duration_ms: Total session duration
    """

    success: bool
    state: SessionState
    error: Optional[BaseException] = None
    collections_created: int = 0
    documents_written: int = 0
    batches_flushed: int = 0
    indexes_applied: int = 0
    write_errors: int = 0
    duration_ms: int = 0


class RestoreSession:
    """Runs one restore from a dump source into a target database.

    Example:
        >>> session = RestoreSession(RestoreConfig(uri="mongodb://localhost/shop", root="dump"))
        >>> result = await session.run()
        >>> print(result.documents_written)
    """

    def __init__(
        self,
        config: RestoreConfig,
        target: Optional[TargetDatabase] = None,
        source: Optional[DumpSource] = None,
    ) -> None:
        """Validate options and prepare the session.

        Args:
            config: Restore options
            target: Target database; a MotorTargetDatabase by default
            source: Dump source; built from the options by default

        Raises:
            ConfigurationError: If the options are invalid
        """
        config.validate()

        self.config = config
        self.decoder = config.decoder()
        self.drop_policy = config.drop_policy()
        self.target = target or MotorTargetDatabase(config.uri, config.options, config.database)
        self.source = source or create_dump_source(config)
        self.state: Optional[SessionState] = None
        self.state_history: List[SessionState] = []
        self.writer: Optional[BatchedWriter] = None
        self.log_name = session_logger_name()
        self._completed = False

    async def run(self) -> RestoreResult:
        """Run the restore to completion.

        Returns:
            RestoreResult; fatal errors are reported here, not raised
        """
        if self._completed:
            raise RuntimeError("RestoreSession.run() may only be called once")

        start_time = time.time()
        log, handler = open_session_log(self.log_name, self.config.log_file)
        log.info("restore start")
        error: Optional[BaseException] = None

        try:
            await self._restore(log)
        except Exception as e:
            error = e
            log.error(f"Restore failed: {e}", exc_info=not isinstance(e, RestoreError))
        finally:
            self._enter(SessionState.CLOSING)
            await self.target.close()
            log.info("db close")

        self._enter(SessionState.DONE if error is None else SessionState.FAILED)
        stats = self.writer.stats if self.writer else WriterStats()
        result = RestoreResult(
            success=error is None,
            state=self.state,
            error=error,
            collections_created=stats.collections_created,
            documents_written=stats.documents_written,
            batches_flushed=stats.batches_flushed,
            indexes_applied=stats.indexes_applied,
            write_errors=stats.errors,
            duration_ms=int((time.time() - start_time) * 1000),
        )

        log.info("restore stop")
        try:
            self._complete(log, error)
        finally:
            close_session_log(log, handler)
        return result

    async def _restore(self, log: logging.Logger) -> None:
        self.source.validate()

        self._enter(SessionState.CONNECTING)
        await self.target.connect()
        log.info("db open")

        if self.drop_policy.enabled:
            self._enter(SessionState.DROPPING)
            await CollectionDropper(self.target, log).run(self.drop_policy)

        self._enter(SessionState.IMPORTING)
        self.writer = BatchedWriter(self.target, log)
        dispatcher = EntryDispatcher(
            self.writer,
            self.decoder,
            metadata=self.config.metadata,
            log=log,
            on_phase=lambda phase: self._enter(SessionState(phase)),
        )
        await self.source.begin(dispatcher)

    def _complete(self, log: logging.Logger, error: Optional[BaseException]) -> None:
        self._completed = True
        if self.config.callback is not None:
            log.info("callback run")
            self.config.callback(error)

    def _enter(self, state: SessionState) -> None:
        self.state = state
        self.state_history.append(state)


async def restore_async(
    config: Optional[RestoreConfig] = None,
    *,
    target: Optional[TargetDatabase] = None,
    source: Optional[DumpSource] = None,
    **options: Any,
) -> RestoreResult:
    """Restore a dump and return the result.

    Args:
        config: Restore options; built from **options when omitted
        target: Optional target database override
        source: Optional dump source override

    Raises:
        ConfigurationError: If the options are invalid
    """
    session = RestoreSession(config or RestoreConfig(**options), target=target, source=source)
    return await session.run()


def restore(config: Optional[RestoreConfig] = None, **options: Any) -> RestoreResult:
    """Blocking wrapper around restore_async().

    Example:
        >>> restore(uri="mongodb://localhost/shop", root="/backups/dump", parser="json",
        ...         metadata=True, callback=lambda err: print(err or "done"))
    """
    return asyncio.run(restore_async(config, **options))
