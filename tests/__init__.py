"""
mongo-restore test suite.

This package contains:
- unit/: Unit tests (in-memory target, no server)
- integration/: Whole restore sessions against the in-memory target
- e2e/: Motor restores against a real MongoDB server
"""
