"""
Restore CLI tool.

Usage:
    mongo-restore --uri mongodb://localhost/shop --root /backups/dump [options]
    mongo-restore --uri mongodb://localhost/shop --root /backups --tar dump.tar.gz
    cat dump.tar | mongo-restore --uri mongodb://localhost/shop --stdin

Options not given on the command line fall back to the MONGO_RESTORE_*
environment variables read by RestoreConfig.from_env().
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from ..config import RestoreConfig
from ..errors import ConfigurationError
from ..logs import setup_logging
from ..session import restore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mongo-restore",
        description="Restore a MongoDB database from a directory or tar dump",
    )
    parser.add_argument("--uri", help="MongoDB connection string")
    parser.add_argument("--root", help="Dump root directory")
    parser.add_argument("--tar", help="Tar file inside the dump root to restore from")
    parser.add_argument("--stdin", action="store_true", help="Read a tar dump from standard input")
    parser.add_argument("--parser", choices=["json", "bson"], help="Document encoding (default: bson)")
    parser.add_argument("--database", help="Target database when the URI has none")
    parser.add_argument("--metadata", action="store_true", help="Replay index definitions")
    parser.add_argument("--drop", action="store_true", help="Drop the target database first")
    drop_group = parser.add_mutually_exclusive_group()
    drop_group.add_argument(
        "--drop-collections",
        nargs="+",
        metavar="NAME",
        help="Drop these collections first",
    )
    drop_group.add_argument(
        "--drop-all-collections",
        action="store_true",
        help="Drop every non-system collection first",
    )
    parser.add_argument("--log-file", help="Write lifecycle lines to this daily-rotated file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    return parser


def config_from_args(args: argparse.Namespace) -> RestoreConfig:
    """Merge parsed arguments over the environment configuration."""
    config = RestoreConfig.from_env()
    overrides = {
        "uri": args.uri,
        "root": args.root,
        "tar": args.tar,
        "parser": args.parser,
        "database": args.database,
        "log_file": args.log_file,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    if args.stdin:
        config = replace(config, stream=sys.stdin.buffer)
    if args.metadata:
        config = replace(config, metadata=True)
    if args.drop:
        config = replace(config, drop=True)
    if args.drop_all_collections:
        config = replace(config, drop_collections=True)
    elif args.drop_collections:
        config = replace(config, drop_collections=list(args.drop_collections))
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for the restore tool."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = config_from_args(args)
        config.log_config()
        result = restore(config)
    except ConfigurationError as e:
        print(f"Invalid options: {e.message}", file=sys.stderr)
        sys.exit(2)

    if result.success:
        print("Restore completed successfully")
        print(f"  Collections created: {result.collections_created}")
        print(f"  Documents written: {result.documents_written}")
        print(f"  Indexes applied: {result.indexes_applied}")
        print(f"  Failed operations: {result.write_errors}")
        print(f"  Duration: {result.duration_ms}ms")
        sys.exit(0)
    else:
        print(f"Restore failed: {result.error}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
