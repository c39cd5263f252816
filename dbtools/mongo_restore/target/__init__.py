"""
Restore targets: the databases a dump is written into.

This module provides a pluggable target interface supporting:
- MongoDB through Motor (production)
- In-memory (for testing)

Invariants:
    - Driver errors are translated to restore errors at this boundary
    - Connection and listing failures are fatal, everything else is not
"""

from .base import TargetDatabase
from .memory import InMemoryTargetDatabase
from .mongo import MotorTargetDatabase

__all__ = [
    "TargetDatabase",
    "MotorTargetDatabase",
    "InMemoryTargetDatabase",
]
