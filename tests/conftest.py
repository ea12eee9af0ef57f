"""
Pytest configuration and shared fixtures.

Provides file-backed databases, loaders, and environment isolation so no
test reads the developer's own shrub configuration.
"""

from pathlib import Path

import pytest

from shrub.core.config import clear_cache
from shrub.core.erdb import ERDB, DuplicatePolicy
from shrub.core.loader import DBLoader
from shrub.core.stats import Stats

SHRUB_ENV_VARS = ("SHRUB_DB", "SHRUB_EXCLUSIVE", "SHRUB_MAX_ATTEMPTS", "SHRUB_LOG_LEVEL")


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point XDG config at an empty directory and drop SHRUB_* variables."""
    for name in SHRUB_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Path for a fresh database file."""
    return tmp_path / "shrub.db"


@pytest.fixture
def db(db_path):
    """An ERDB connection to a fresh database file."""
    erdb = ERDB(db_path)
    yield erdb
    erdb.close()


@pytest.fixture
def stats() -> Stats:
    return Stats()


@pytest.fixture
def loader(db, stats) -> DBLoader:
    """Loader over the `db` fixture."""
    return DBLoader(db, stats)


@pytest.fixture
def other_loader(db_path):
    """
    A second, independent loader on the same database file.

    Stands in for a competing loader process.
    """
    competitor = DBLoader(ERDB(db_path))
    yield competitor
    competitor.close()


# ==============================================================================
# Competing Writer Fixtures
# ==============================================================================


class CompetingERDB(ERDB):
    """
    ERDB that gives a competitor the chance to write before each insert.

    `compete(entity_name, fields)` runs just before every insert this
    connection makes, which is exactly the window in which another loader
    process can take an ID. Every attempted row is recorded in `attempts`.
    """

    def __init__(self, db_path, compete):
        super().__init__(db_path)
        self.compete = compete
        self.attempts: list[tuple[str, dict]] = []

    def insert(self, entity_name, fields, dup=DuplicatePolicy.IGNORE):
        self.attempts.append((entity_name, dict(fields)))
        self.compete(entity_name, dict(fields))
        return super().insert(entity_name, fields, dup)


@pytest.fixture
def rival(db_path):
    """An independent connection acting as the competing loader."""
    erdb = ERDB(db_path)
    yield erdb
    erdb.close()


@pytest.fixture
def competing_loader(db_path):
    """
    Factory for loaders whose inserts race a competitor.

    Usage:
        loader = competing_loader(lambda entity, fields: ...)
    """
    opened: list[DBLoader] = []

    def make(compete) -> DBLoader:
        loader = DBLoader(CompetingERDB(db_path, compete))
        opened.append(loader)
        return loader

    yield make
    for loader in opened:
        loader.close()
