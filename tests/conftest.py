"""Shared fixtures."""

import pytest

from dbtools.mongo_restore.target.memory import InMemoryTargetDatabase


@pytest.fixture
def target():
    """Fresh in-memory target database named mydb."""
    return InMemoryTargetDatabase("mydb")
