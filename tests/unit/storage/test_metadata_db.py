"""Unit tests for MetadataDB."""

import sqlite3
from pathlib import Path

import pytest

from gitlet.constants import DB_SCHEMA_VERSION
from gitlet.errors import DatabaseError
from gitlet.storage.commit_graph import Commit
from gitlet.storage.metadata_db import MetadataDB


@pytest.fixture
def gitlet_dir(tmp_path: Path) -> Path:
    """Create a temporary .gitlet directory."""
    gitlet = tmp_path / ".gitlet"
    gitlet.mkdir()
    return gitlet


@pytest.fixture
def db(gitlet_dir: Path) -> MetadataDB:
    """Create and initialize a MetadataDB instance."""
    metadata_db = MetadataDB(gitlet_dir)
    metadata_db.open()
    metadata_db.init_schema()
    yield metadata_db
    metadata_db.close()


def _commit(message: str, timestamp: str, tracked=None) -> Commit:
    return Commit(message=message, timestamp=timestamp, parent="a" * 64, tracked=tracked or {})


class TestMetadataDBInit:
    """Test database initialization."""

    def test_init_sets_db_path(self, gitlet_dir: Path) -> None:
        db = MetadataDB(gitlet_dir)
        assert db.db_path == gitlet_dir / "metadata.db"
        assert db.conn is None

    def test_open_creates_connection(self, gitlet_dir: Path) -> None:
        db = MetadataDB(gitlet_dir)
        db.open()
        assert isinstance(db.conn, sqlite3.Connection)
        db.close()
        assert db.conn is None

    def test_open_idempotent(self, gitlet_dir: Path) -> None:
        db = MetadataDB(gitlet_dir)
        db.open()
        conn = db.conn
        db.open()
        assert db.conn is conn
        db.close()

    def test_schema_version(self, db: MetadataDB) -> None:
        assert db.get_schema_version() == DB_SCHEMA_VERSION

    def test_init_schema_twice(self, db: MetadataDB) -> None:
        db.init_schema()
        assert db.get_schema_version() == DB_SCHEMA_VERSION

    def test_unsupported_schema_version(self, db: MetadataDB, gitlet_dir: Path) -> None:
        db.conn.execute(
            "UPDATE metadata SET value = ? WHERE key = 'schema_version'",
            (str(DB_SCHEMA_VERSION + 1),),
        )
        db.conn.commit()
        db.close()

        reopened = MetadataDB(gitlet_dir)
        reopened.open()
        try:
            with pytest.raises(DatabaseError, match="Unsupported metadata schema version"):
                reopened.init_schema()
        finally:
            reopened.close()

    def test_operations_require_open(self, gitlet_dir: Path) -> None:
        db = MetadataDB(gitlet_dir)
        with pytest.raises(DatabaseError, match="not open"):
            db.count_commits()


class TestIndexing:
    """Test commit indexing and queries."""

    def test_index_commit(self, db: MetadataDB) -> None:
        commit = _commit("hello", "2024-01-01T00:00:00+00:00", {"a.txt": "b" * 64})
        row_id = db.index_commit("c" * 64, commit)

        row = db.get_commit_by_hash("c" * 64)
        assert row["id"] == row_id
        assert row["parent_hash"] == "a" * 64
        assert row["second_parent_hash"] is None
        assert not row["is_merge"]
        assert row["message"] == "hello"

    def test_index_commit_twice_is_noop(self, db: MetadataDB) -> None:
        commit = _commit("hello", "2024-01-01T00:00:00+00:00")
        first = db.index_commit("c" * 64, commit)
        second = db.index_commit("c" * 64, commit)

        assert first == second
        assert db.count_commits() == 1

    def test_get_missing_commit(self, db: MetadataDB) -> None:
        assert db.get_commit_by_hash("d" * 64) is None

    def test_find_by_message(self, db: MetadataDB) -> None:
        db.index_commit("1" * 64, _commit("fix", "2024-01-01T00:00:00+00:00"))
        db.index_commit("2" * 64, _commit("feature", "2024-01-02T00:00:00+00:00"))
        db.index_commit("3" * 64, _commit("fix", "2024-01-03T00:00:00+00:00"))

        assert db.find_by_message("fix") == ["1" * 64, "3" * 64]
        assert db.find_by_message("missing") == []

    def test_history_newest_first(self, db: MetadataDB) -> None:
        db.index_commit("1" * 64, _commit("old", "2024-01-01T00:00:00+00:00"))
        db.index_commit("2" * 64, _commit("new", "2024-03-01T00:00:00+00:00"))
        db.index_commit("3" * 64, _commit("mid", "2024-02-01T00:00:00+00:00"))

        history = db.get_commit_history()
        assert [row["message"] for row in history] == ["new", "mid", "old"]
        assert len(db.get_commit_history(limit=2)) == 2

    def test_clear(self, db: MetadataDB) -> None:
        db.index_commit("1" * 64, _commit("x", "2024-01-01T00:00:00+00:00", {"f": "e" * 64}))
        db.clear()

        assert db.count_commits() == 0
        assert db.get_commit_by_hash("1" * 64) is None
