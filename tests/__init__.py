"""Test package for the semantic search service

Shared test utilities and markers.
"""
import sqlite3

import pytest


def _has_sqlite_vec():
    """Check if sqlite-vec is installed and this sqlite3 can load extensions."""
    try:
        import sqlite_vec  # noqa: F401
    except ImportError:
        return False
    return hasattr(sqlite3.Connection, "enable_load_extension")


skip_if_no_sqlite_vec = pytest.mark.skipif(
    not _has_sqlite_vec(),
    reason="sqlite-vec extension not available"
)
