"""
E2E test fixtures for mongo-restore.

These tests need a reachable MongoDB server. Point MONGO_RESTORE_E2E_URI
at it (without a database name) to enable them, e.g.

    MONGO_RESTORE_E2E_URI=mongodb://localhost:27017 pytest tests/e2e
"""

import os
import uuid

import pytest

E2E_URI = os.environ.get("MONGO_RESTORE_E2E_URI", "mongodb://localhost:27017")


@pytest.fixture
def database_name() -> str:
    """Unique scratch database name for one test."""
    return f"restore_e2e_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def mongo_uri(database_name: str) -> str:
    """Connection string selecting the scratch database."""
    base = E2E_URI.rstrip("/")
    return f"{base}/{database_name}"
