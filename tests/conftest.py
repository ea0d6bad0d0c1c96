"""Pytest configuration and shared fixtures."""

import os

import pytest

from pkgwatch.common.config import PacmanConfig, PkgwatchConfig, RepositoryConfig
from tests.factories import FakeEngine


@pytest.fixture
def real_dbpath(tmp_path):
    """A fake system database path with a local index and sync databases."""
    dbpath = tmp_path / "pacman"
    (dbpath / "local").mkdir(parents=True)
    sync = dbpath / "sync"
    sync.mkdir()
    for name in ("core.db", "core.db.sig", "extra.db"):
        (sync / name).write_bytes(f"contents of {name}".encode())
        os.utime(sync / name, (1_600_000_000, 1_600_000_000))
    return str(dbpath)


@pytest.fixture
def engine():
    """Empty in-memory query engine."""
    return FakeEngine()


@pytest.fixture
def sample_config(real_dbpath):
    """Configuration pointing at the fake database path."""
    return PkgwatchConfig(
        pacman=PacmanConfig(
            db_path=real_dbpath + "/",
            architecture="x86_64",
            repositories=[
                RepositoryConfig(name="core", servers=["http://mirror.example/$repo/os/$arch"]),
                RepositoryConfig(name="extra", servers=["http://mirror.example/$repo/os/$arch"]),
            ],
        ),
    )
