"""SQLite metadata database for Gitlet.

This module indexes commits in a SQLite database. The database is a
rebuildable index - the true source of truth is the commits/ directory -
and serves whole-history queries (global log, find by message) without
reading every commit file. A repository whose index is missing or empty
is reindexed when it is opened.
"""

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from gitlet.constants import DB_SCHEMA_VERSION, METADATA_DB
from gitlet.errors import DatabaseError

if TYPE_CHECKING:
    from gitlet.storage.commit_graph import Commit


class MetadataDB:
    """SQLite database manager for Gitlet metadata.

    Schema Tables:
        - commits: Commit records with hash, parents, timestamp, message
        - metadata: Schema version

    Attributes:
        db_path: Path to the SQLite database file
        conn: Active database connection (if open)

    Example:
        >>> db = MetadataDB(Path(".gitlet"))
        >>> db.open()
        >>> db.init_schema()
    """

    def __init__(self, gitlet_dir: Path) -> None:
        self.gitlet_dir = Path(gitlet_dir)
        self.db_path = self.gitlet_dir / METADATA_DB
        self.conn: Optional[sqlite3.Connection] = None

    def open(self) -> None:
        """Connect to the database file, creating it if needed.

        Raises:
            DatabaseError: If the file cannot be opened
        """
        if self.conn is not None:
            return

        try:
            self.conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to open database: {e}") from e
        self.conn.row_factory = sqlite3.Row

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "MetadataDB":
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise DatabaseError("Database not open")
        return self.conn

    def init_schema(self) -> None:
        """Create the tables if they are missing.

        Raises:
            DatabaseError: If schema creation fails, or the database was
                written by a different schema version
        """
        conn = self._require_conn()

        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS commits (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    commit_hash TEXT UNIQUE NOT NULL,
                    parent_hash TEXT,
                    second_parent_hash TEXT,
                    is_merge BOOLEAN NOT NULL DEFAULT 0,
                    timestamp TEXT NOT NULL,
                    message TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_commits_message
                ON commits(message)
            """)
            conn.commit()

        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to initialize schema: {e}") from e

        version = self.get_schema_version()
        if version == 0:
            self._set_schema_version(DB_SCHEMA_VERSION)
        elif version != DB_SCHEMA_VERSION:
            raise DatabaseError(
                f"Unsupported metadata schema version {version} "
                f"(expected {DB_SCHEMA_VERSION}); delete {self.db_path.name} to rebuild it"
            )

    def index_commit(self, commit_hash: str, commit: "Commit") -> int:
        """Insert a commit. Re-indexing a commit already present is a no-op.

        Returns:
            Database row ID of the commit
        """
        conn = self._require_conn()

        existing = self.get_commit_by_hash(commit_hash)
        if existing is not None:
            return existing["id"]

        try:
            cursor = conn.execute(
                """
                INSERT INTO commits
                    (commit_hash, parent_hash, second_parent_hash, is_merge, timestamp, message)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    commit_hash,
                    commit.parent,
                    commit.second_parent,
                    commit.is_merge,
                    commit.timestamp,
                    commit.message,
                ),
            )
            conn.commit()
            return cursor.lastrowid  # type: ignore

        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to index commit {commit_hash}: {e}") from e

    def get_commit_by_hash(self, commit_hash: str) -> Optional[Dict[str, Any]]:
        """Retrieve an indexed commit by its full hash, or None."""
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                "SELECT * FROM commits WHERE commit_hash = ?",
                (commit_hash,),
            )
            row = cursor.fetchone()
            return dict(row) if row is not None else None

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to query commit: {e}") from e

    def find_by_message(self, message: str) -> List[str]:
        """Return hashes of all commits whose message equals message."""
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                "SELECT commit_hash FROM commits WHERE message = ? ORDER BY id",
                (message,),
            )
            return [row["commit_hash"] for row in cursor.fetchall()]

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to search commits: {e}") from e

    def get_commit_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """All indexed commits, newest first."""
        conn = self._require_conn()

        query = "SELECT * FROM commits ORDER BY timestamp DESC, id DESC"
        params: tuple = ()
        if limit:
            query += " LIMIT ?"
            params = (limit,)

        try:
            cursor = conn.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to get history: {e}") from e

    def count_commits(self) -> int:
        conn = self._require_conn()
        try:
            return conn.execute("SELECT COUNT(*) FROM commits").fetchone()[0]
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to count commits: {e}") from e

    def clear(self) -> None:
        """Drop every indexed commit (used before a rebuild)."""
        conn = self._require_conn()
        try:
            conn.execute("DELETE FROM commits")
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to clear index: {e}") from e

    def get_schema_version(self) -> int:
        """Get the database schema version (0 if unset)."""
        conn = self._require_conn()

        try:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = 'schema_version'"
            ).fetchone()
            return int(row[0]) if row is not None else 0

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to get schema version: {e}") from e

    def _set_schema_version(self, version: int) -> None:
        conn = self._require_conn()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                ("schema_version", str(version)),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Failed to set schema version: {e}") from e
