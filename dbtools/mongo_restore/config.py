"""
Configuration for a restore run.

A run is described by a single RestoreConfig. It can be built directly by
library callers, from command line arguments, or from environment variables
via RestoreConfig.from_env().

Invariants:
    - validate() performs no network I/O
    - validate() raises ConfigurationError before any callback is registered
    - A supplied stream always selects the tar source, whatever `tar` says
    - drop=True takes precedence over drop_collections

How to change safely:
    - Add new options with defaults that keep existing callers working
    - Keep option names aligned with the CLI flags in tools/restore_cli.py
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Optional, Sequence, Union

from .apply.decoder import Decoder, resolve_decoder
from .apply.dropper import DropMode, DropPolicy
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DecoderOption = Union[str, Callable[[bytes], Any]]
CompletionCallback = Callable[[Optional[BaseException]], None]


@dataclass
class RestoreConfig:
    """Options for one restore run.

    Attributes:
        uri: MongoDB connection string (required)
        root: Dump root directory (required unless stream is given)
        stream: Binary stream carrying a tar dump
        parser: "json", "bson" or a callable decoding one document blob
        tar: Name of a tar file inside root to restore from
        metadata: Replay index definitions from the .metadata directory
        drop: Drop the whole target database first
        drop_collections: True to drop every non-system collection, or a
            list of collection names to drop
        callback: Called exactly once with the fatal error or None
        log_file: Path of a daily-rotated log file for lifecycle lines
        options: Keyword arguments passed through to the database client
        database: Database name when the URI does not carry one
    """

    uri: str = ""
    root: Optional[str] = None
    stream: Optional[BinaryIO] = None
    parser: DecoderOption = "bson"
    tar: Optional[str] = None
    metadata: bool = False
    drop: bool = False
    drop_collections: Union[bool, Sequence[str], None] = None
    callback: Optional[CompletionCallback] = None
    log_file: Optional[str] = None
    options: dict[str, Any] = field(default_factory=dict)
    database: Optional[str] = None

    @classmethod
    def from_env(cls) -> RestoreConfig:
        """Load configuration from environment variables.

        MONGO_RESTORE_DROP_COLLECTIONS accepts "*" for every existing
        collection or a comma-separated list of names.
        """
        drop_collections: Union[bool, list[str], None] = None
        raw_drop = os.getenv("MONGO_RESTORE_DROP_COLLECTIONS", "").strip()
        if raw_drop == "*":
            drop_collections = True
        elif raw_drop:
            drop_collections = [name.strip() for name in raw_drop.split(",") if name.strip()]

        return cls(
            uri=os.getenv("MONGO_RESTORE_URI", ""),
            root=os.getenv("MONGO_RESTORE_ROOT"),
            parser=os.getenv("MONGO_RESTORE_PARSER", "bson"),
            tar=os.getenv("MONGO_RESTORE_TAR"),
            metadata=os.getenv("MONGO_RESTORE_METADATA", "false").lower() == "true",
            drop=os.getenv("MONGO_RESTORE_DROP", "false").lower() == "true",
            drop_collections=drop_collections,
            log_file=os.getenv("MONGO_RESTORE_LOG_FILE"),
            database=os.getenv("MONGO_RESTORE_DATABASE"),
        )

    @property
    def use_archive(self) -> bool:
        """Whether the dump is read from a tar stream rather than a tree."""
        return self.stream is not None or bool(self.tar)

    @property
    def archive_path(self) -> Optional[Path]:
        if self.stream is not None or not self.tar or self.root is None:
            return None
        return Path(self.root).resolve() / self.tar

    def drop_policy(self) -> DropPolicy:
        """Resolve drop / drop_collections into a DropPolicy."""
        if self.drop:
            return DropPolicy(DropMode.DATABASE)
        if self.drop_collections is True:
            return DropPolicy(DropMode.ALL_EXISTING)
        if self.drop_collections:
            return DropPolicy(DropMode.NAMED, tuple(self.drop_collections))
        return DropPolicy()

    def decoder(self) -> Decoder:
        """Resolve the parser option into a Decoder.

        Raises:
            ConfigurationError: If the parser tag is unknown
        """
        return resolve_decoder(self.parser)

    def validate(self) -> None:
        """Validate options without touching the database.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        if not self.uri:
            raise ConfigurationError("missing uri option", option="uri")

        if self.stream is None:
            if not self.root:
                raise ConfigurationError("missing root option", option="root")
            if not Path(self.root).is_dir():
                raise ConfigurationError("root option is not a directory", option="root")

        self.decoder()

        if self.drop and self.drop_collections:
            logger.warning("Both drop and drop_collections set; dropping the whole database")

    def log_config(self) -> None:
        """Log configuration (credentials in the URI are not logged)."""
        logger.info(
            "Restore configuration loaded",
            extra={
                "root": self.root,
                "archive": self.use_archive,
                "parser": self.parser if isinstance(self.parser, str) else "custom",
                "metadata": self.metadata,
                "drop_mode": self.drop_policy().mode.value,
            },
        )
