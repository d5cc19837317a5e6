"""Commit objects and the commit graph.

A commit is an immutable snapshot of every tracked path plus a link to one
parent (two for merges). Commits are addressed by the SHA-256 of their
canonical JSON form and stored in `.gitlet/commits/<hash[:2]>/<hash[2:]>`.
The graph is only ever traversed by id, so ancestor walks are plain
worklist loops over a table of commits.
"""

import json
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from loguru import logger

from gitlet.constants import COMMITS_DIR, EPOCH_TIMESTAMP, INITIAL_COMMIT_MESSAGE
from gitlet.errors import AmbiguousOrMissing, ObjectCorrupted, ObjectNotFound
from gitlet.storage.metadata_db import MetadataDB
from gitlet.storage.object_store import atomic_write, compute_hash, is_valid_hash


@dataclass(frozen=True)
class Commit:
    """An immutable commit record.

    Attributes:
        message: Commit message
        timestamp: ISO 8601 UTC timestamp (epoch for the root commit)
        parent: Id of the first parent, None only for the root commit
        second_parent: Id of the merged-in branch tip, set iff is_merge
        is_merge: Whether the commit was produced by a merge
        tracked: Full snapshot mapping path -> blob hash, sorted by path
    """

    message: str
    timestamp: str
    parent: Optional[str] = None
    second_parent: Optional[str] = None
    is_merge: bool = False
    tracked: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.is_merge != (self.second_parent is not None):
            raise ValueError("second_parent must be set if and only if is_merge is true")
        if self.second_parent is not None and self.parent is None:
            raise ValueError("A merge commit must have a first parent")
        object.__setattr__(self, "tracked", dict(sorted(self.tracked.items())))

    @classmethod
    def root(cls) -> "Commit":
        """The parentless commit every repository starts from."""
        return cls(message=INITIAL_COMMIT_MESSAGE, timestamp=EPOCH_TIMESTAMP)

    @classmethod
    def create(
        cls,
        message: str,
        parent: str,
        tracked: Dict[str, str],
        second_parent: Optional[str] = None,
    ) -> "Commit":
        """Build a new commit stamped with the current time."""
        return cls(
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat(),
            parent=parent,
            second_parent=second_parent,
            is_merge=second_parent is not None,
            tracked=tracked,
        )

    @property
    def parents(self) -> Tuple[str, ...]:
        return tuple(p for p in (self.parent, self.second_parent) if p is not None)

    @property
    def commit_id(self) -> str:
        """SHA-256 of the canonical serialization."""
        return compute_hash(self.canonical_bytes())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "timestamp": self.timestamp,
            "parent": self.parent,
            "second_parent": self.second_parent,
            "is_merge": self.is_merge,
            "tracked": dict(self.tracked),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Commit":
        return cls(
            message=data["message"],
            timestamp=data["timestamp"],
            parent=data.get("parent"),
            second_parent=data.get("second_parent"),
            is_merge=bool(data.get("is_merge", False)),
            tracked=dict(data.get("tracked", {})),
        )

    def canonical_bytes(self) -> bytes:
        """Canonical JSON: sorted keys, no whitespace, UTF-8."""
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def parsed_timestamp(self) -> datetime:
        return datetime.fromisoformat(self.timestamp)


class CommitGraph:
    """Persistent table of commits keyed by id.

    Commits are immutable, so every commit read is cached for the lifetime
    of the graph object.

    Attributes:
        gitlet_dir: Path to .gitlet directory
        commits_dir: Directory holding commit files
        metadata_db: Optional index updated whenever a new commit is written
    """

    def __init__(self, gitlet_dir: Path, metadata_db: Optional[MetadataDB] = None):
        self.gitlet_dir = Path(gitlet_dir)
        self.commits_dir = self.gitlet_dir / COMMITS_DIR
        self.metadata_db = metadata_db
        self._cache: Dict[str, Commit] = {}

        self.commits_dir.mkdir(parents=True, exist_ok=True)

    def write_commit(self, commit: Commit) -> str:
        """Persist a commit and return its id.

        Writing a commit that already exists is a no-op.

        Args:
            commit: Commit to persist

        Returns:
            Commit id (SHA-256 hex string)
        """
        commit_id = commit.commit_id
        if self.commit_exists(commit_id):
            return commit_id

        commit_obj = commit.to_dict()
        commit_obj["hash"] = commit_id
        json_str = json.dumps(commit_obj, indent=2, ensure_ascii=False)
        atomic_write(self._get_commit_path(commit_id), json_str.encode("utf-8"))
        self._cache[commit_id] = commit

        if self.metadata_db is not None:
            self.metadata_db.index_commit(commit_id, commit)

        logger.debug(f"Wrote commit {commit_id[:8]} ({len(commit.tracked)} tracked)")
        return commit_id

    def read_commit(self, commit_id: str) -> Commit:
        """Read a commit by its full id.

        Raises:
            ObjectNotFound: If no commit has this id
            ObjectCorrupted: If the stored commit does not hash to its id
        """
        cached = self._cache.get(commit_id)
        if cached is not None:
            return cached

        if not self.commit_exists(commit_id):
            raise ObjectNotFound(f"No commit with id {commit_id} exists.")

        with open(self._get_commit_path(commit_id), "r", encoding="utf-8") as f:
            commit_obj = json.load(f)

        commit = Commit.from_dict(commit_obj)
        if commit.commit_id != commit_id or commit_obj.get("hash") != commit_id:
            raise ObjectCorrupted(f"Commit hash mismatch for {commit_id}")

        self._cache[commit_id] = commit
        return commit

    def commit_exists(self, commit_id: str) -> bool:
        if not is_valid_hash(commit_id):
            return False
        return self._get_commit_path(commit_id).exists()

    def iter_commit_ids(self) -> Iterator[str]:
        """Yield every stored commit id in sorted order."""
        if not self.commits_dir.exists():
            return
        for shard in sorted(self.commits_dir.iterdir()):
            if not shard.is_dir():
                continue
            for entry in sorted(shard.iterdir()):
                commit_id = shard.name + entry.name
                if is_valid_hash(commit_id):
                    yield commit_id

    def find_by_prefix(self, prefix: str) -> str:
        """Resolve an abbreviated commit id.

        Args:
            prefix: Leading characters of a commit id

        Returns:
            The unique full commit id starting with prefix

        Raises:
            AmbiguousOrMissing: If zero or more than one commit matches
        """
        prefix = prefix.strip().lower()
        if not prefix:
            raise AmbiguousOrMissing(prefix, 0)

        if len(prefix) >= 2:
            shard = self.commits_dir / prefix[:2]
            rest = prefix[2:]
            if shard.is_dir():
                matches = [
                    prefix[:2] + entry.name
                    for entry in shard.iterdir()
                    if entry.name.startswith(rest) and is_valid_hash(prefix[:2] + entry.name)
                ]
            else:
                matches = []
        else:
            matches = [cid for cid in self.iter_commit_ids() if cid.startswith(prefix)]

        if len(matches) != 1:
            raise AmbiguousOrMissing(prefix, len(matches))
        return matches[0]

    def parents_of(self, commit_id: str) -> Tuple[str, ...]:
        return self.read_commit(commit_id).parents

    def distances_from(self, commit_id: str) -> Dict[str, int]:
        """Breadth-first edge distance from commit_id to each of its ancestors.

        The commit itself is included at distance 0.
        """
        distances = {commit_id: 0}
        queue = deque([commit_id])
        while queue:
            current = queue.popleft()
            for parent in self.parents_of(current):
                if parent not in distances:
                    distances[parent] = distances[current] + 1
                    queue.append(parent)
        return distances

    def ancestors_of(self, commit_id: str) -> Set[str]:
        """All commits reachable through parent edges, excluding commit_id."""
        ancestors: Set[str] = set()
        worklist = list(self.parents_of(commit_id))
        while worklist:
            current = worklist.pop()
            if current in ancestors:
                continue
            ancestors.add(current)
            worklist.extend(self.parents_of(current))
        return ancestors

    def lowest_common_ancestor(self, first: str, second: str) -> str:
        """Find the split point of two commits.

        Each commit counts as its own ancestor. A common ancestor is a
        candidate when it is not a parent of another common ancestor. When
        several candidates remain (criss-cross history), the one with the
        smallest combined distance from both commits wins, then the most
        recent timestamp, then the smallest id.

        Raises:
            ObjectNotFound: If the commits share no ancestor
        """
        dist_first = self.distances_from(first)
        dist_second = self.distances_from(second)
        common = dist_first.keys() & dist_second.keys()
        if not common:
            raise ObjectNotFound(
                f"Commits {first[:8]} and {second[:8]} have no common ancestor"
            )

        dominated = {p for c in common for p in self.parents_of(c) if p in common}
        candidates = common - dominated

        def rank(commit_id: str) -> Tuple[int, float, str]:
            when = self.read_commit(commit_id).parsed_timestamp().timestamp()
            return (dist_first[commit_id] + dist_second[commit_id], -when, commit_id)

        split = min(candidates, key=rank)
        if len(candidates) > 1:
            logger.debug(
                f"Split point tie between {len(candidates)} candidates, chose {split[:8]}"
            )
        return split

    def first_parent_history(self, commit_id: str) -> Iterator[Tuple[str, Commit]]:
        """Yield (id, commit) from commit_id back to the root along first parents."""
        current: Optional[str] = commit_id
        while current is not None:
            commit = self.read_commit(current)
            yield current, commit
            current = commit.parent

    def all_commits(self) -> List[Tuple[str, Commit]]:
        return [(cid, self.read_commit(cid)) for cid in self.iter_commit_ids()]

    def _get_commit_path(self, commit_id: str) -> Path:
        return self.commits_dir / commit_id[:2] / commit_id[2:]
