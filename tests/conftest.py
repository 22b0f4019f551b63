"""Test configuration and shared fixtures for GentleDB tests."""

import pytest

from gentledb import GentleDB


@pytest.fixture
def local_db(tmp_path):
    """Filesystem-backed store in a fresh directory."""
    return GentleDB.open(tmp_path / "db")


@pytest.fixture
def memory_db():
    """Empty in-memory store."""
    return GentleDB.in_memory()


@pytest.fixture(params=["local", "memory"])
def db(request, tmp_path):
    """Run a test against both backends."""
    if request.param == "local":
        return GentleDB.open(tmp_path / "db")
    return GentleDB.in_memory()
