"""
CLI tools for mongo_restore.

This module provides command-line tools for:
- restore: Load a filesystem or tar dump into a MongoDB database
"""

from .restore_cli import build_parser, main

__all__ = ["build_parser", "main"]
