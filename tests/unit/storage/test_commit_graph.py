"""Unit tests for Commit and CommitGraph."""

import json
from collections import Counter
from pathlib import Path
from typing import Optional

import pytest

from gitlet.errors import AmbiguousOrMissing, ObjectCorrupted, ObjectNotFound
from gitlet.storage.commit_graph import Commit, CommitGraph
from gitlet.storage.metadata_db import MetadataDB


@pytest.fixture
def gitlet_dir(tmp_path: Path) -> Path:
    """Create a temporary .gitlet directory."""
    gitlet = tmp_path / ".gitlet"
    gitlet.mkdir()
    return gitlet


@pytest.fixture
def graph(gitlet_dir: Path) -> CommitGraph:
    """Create a CommitGraph without an index."""
    return CommitGraph(gitlet_dir)


def make_commit(
    graph: CommitGraph,
    message: str,
    parent: Optional[str],
    second_parent: Optional[str] = None,
    tracked: Optional[dict] = None,
    timestamp: str = "2024-01-01T00:00:00+00:00",
) -> str:
    """Write a commit with a fixed timestamp and return its id."""
    commit = Commit(
        message=message,
        timestamp=timestamp,
        parent=parent,
        second_parent=second_parent,
        is_merge=second_parent is not None,
        tracked=tracked or {},
    )
    return graph.write_commit(commit)


class TestCommit:
    """Test the Commit record."""

    def test_root_commit(self) -> None:
        root = Commit.root()
        assert root.parent is None
        assert root.message == "initial commit"
        assert root.timestamp == "1970-01-01T00:00:00+00:00"
        assert root.parents == ()

    def test_tracked_is_sorted(self) -> None:
        commit = Commit("m", "2024-01-01T00:00:00+00:00", tracked={"b": "2", "a": "1"})
        assert list(commit.tracked) == ["a", "b"]

    def test_merge_requires_second_parent(self) -> None:
        with pytest.raises(ValueError):
            Commit("m", "2024-01-01T00:00:00+00:00", parent="a" * 64, is_merge=True)

    def test_second_parent_requires_merge_flag(self) -> None:
        with pytest.raises(ValueError):
            Commit(
                "m",
                "2024-01-01T00:00:00+00:00",
                parent="a" * 64,
                second_parent="b" * 64,
            )

    def test_serialization_round_trip(self) -> None:
        commit = Commit.create("work", "a" * 64, {"f.txt": "c" * 64}, second_parent="b" * 64)
        restored = Commit.from_dict(commit.to_dict())

        assert restored == commit
        assert restored.commit_id == commit.commit_id

    def test_id_depends_on_content(self) -> None:
        base = Commit("m", "2024-01-01T00:00:00+00:00", parent="a" * 64)
        other = Commit("m", "2024-01-01T00:00:00+00:00", parent="b" * 64)
        assert base.commit_id != other.commit_id

    def test_canonical_bytes_are_compact_sorted_json(self) -> None:
        commit = Commit.root()
        data = json.loads(commit.canonical_bytes())
        assert list(data) == sorted(data)
        assert b" " not in commit.canonical_bytes().replace(b"initial commit", b"")


class TestWriteRead:
    """Test commit persistence."""

    def test_write_then_read(self, graph: CommitGraph) -> None:
        commit = Commit.create("first", "a" * 64, {"f": "b" * 64})
        commit_id = graph.write_commit(commit)

        fresh = CommitGraph(graph.gitlet_dir)
        assert fresh.read_commit(commit_id) == commit
        assert fresh.commit_exists(commit_id)

    def test_write_is_idempotent(self, graph: CommitGraph) -> None:
        commit = Commit.root()
        assert graph.write_commit(commit) == graph.write_commit(commit)
        assert len(list(graph.iter_commit_ids())) == 1

    def test_read_missing(self, graph: CommitGraph) -> None:
        with pytest.raises(ObjectNotFound):
            graph.read_commit("f" * 64)

    def test_read_tampered_commit(self, graph: CommitGraph) -> None:
        commit_id = graph.write_commit(Commit.root())
        path = graph.commits_dir / commit_id[:2] / commit_id[2:]
        data = json.loads(path.read_text())
        data["message"] = "rewritten"
        path.write_text(json.dumps(data))

        with pytest.raises(ObjectCorrupted):
            CommitGraph(graph.gitlet_dir).read_commit(commit_id)

    def test_write_indexes_in_metadata_db(self, gitlet_dir: Path) -> None:
        with MetadataDB(gitlet_dir) as db:
            db.init_schema()
            graph = CommitGraph(gitlet_dir, db)
            commit_id = graph.write_commit(Commit.create("indexed", "a" * 64, {"x": "b" * 64}))

            row = db.get_commit_by_hash(commit_id)
            assert row is not None
            assert row["message"] == "indexed"
            assert row["parent_hash"] == "a" * 64


class TestFindByPrefix:
    """Test abbreviated id resolution."""

    def test_unique_prefix(self, graph: CommitGraph) -> None:
        commit_id = graph.write_commit(Commit.root())
        assert graph.find_by_prefix(commit_id[:8]) == commit_id
        assert graph.find_by_prefix(commit_id) == commit_id
        assert graph.find_by_prefix(commit_id[:8].upper()) == commit_id

    def test_missing_prefix(self, graph: CommitGraph) -> None:
        graph.write_commit(Commit.root())
        with pytest.raises(AmbiguousOrMissing) as exc_info:
            graph.find_by_prefix("zzzz")
        assert exc_info.value.matches == 0

    def test_empty_prefix(self, graph: CommitGraph) -> None:
        graph.write_commit(Commit.root())
        with pytest.raises(AmbiguousOrMissing):
            graph.find_by_prefix("")

    def test_ambiguous_prefix(self, graph: CommitGraph) -> None:
        # 17 ids over 16 hex digits: at least two share a first character.
        ids = [make_commit(graph, f"commit {i}", None) for i in range(17)]
        first_char, count = Counter(cid[0] for cid in ids).most_common(1)[0]
        assert count >= 2

        with pytest.raises(AmbiguousOrMissing) as exc_info:
            graph.find_by_prefix(first_char)
        assert exc_info.value.matches == count


class TestTraversal:
    """Test ancestor walks and split-point discovery."""

    def test_linear_ancestors(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root)
        b = make_commit(graph, "b", a)

        assert graph.ancestors_of(b) == {a, root}
        assert graph.ancestors_of(root) == set()

    def test_merge_ancestors_follow_both_parents(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root)
        b = make_commit(graph, "b", root)
        m = make_commit(graph, "m", a, second_parent=b)

        assert graph.ancestors_of(m) == {a, b, root}

    def test_lca_of_diverged_branches(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        split = make_commit(graph, "split", root)
        master = make_commit(graph, "master", make_commit(graph, "master-1", split))
        feature = make_commit(graph, "feature", split)

        assert graph.lowest_common_ancestor(master, feature) == split
        assert graph.lowest_common_ancestor(feature, master) == split

    def test_lca_when_one_is_ancestor(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root)
        b = make_commit(graph, "b", a)

        assert graph.lowest_common_ancestor(b, a) == a
        assert graph.lowest_common_ancestor(a, a) == a

    def test_lca_after_previous_merge(self, graph: CommitGraph) -> None:
        """After merging feature into master, the next split point is feature's old tip."""
        root = make_commit(graph, "root", None)
        f1 = make_commit(graph, "f1", root)
        m1 = make_commit(graph, "m1", root)
        merged = make_commit(graph, "merge", m1, second_parent=f1)
        f2 = make_commit(graph, "f2", f1)

        assert graph.lowest_common_ancestor(merged, f2) == f1

    def test_lca_criss_cross_prefers_latest(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root, timestamp="2024-01-01T00:00:00+00:00")
        b = make_commit(graph, "b", root, timestamp="2024-01-02T00:00:00+00:00")
        m1 = make_commit(graph, "m1", a, second_parent=b)
        m2 = make_commit(graph, "m2", b, second_parent=a)

        assert graph.lowest_common_ancestor(m1, m2) == b
        assert graph.lowest_common_ancestor(m2, m1) == b

    def test_lca_criss_cross_equal_timestamps_uses_smallest_id(
        self, graph: CommitGraph
    ) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root)
        b = make_commit(graph, "b", root)
        m1 = make_commit(graph, "m1", a, second_parent=b)
        m2 = make_commit(graph, "m2", b, second_parent=a)

        assert graph.lowest_common_ancestor(m1, m2) == min(a, b)

    def test_lca_prefers_closer_candidate(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root, timestamp="2024-01-09T00:00:00+00:00")
        b = make_commit(graph, "b", root, timestamp="2024-01-01T00:00:00+00:00")
        a2 = make_commit(graph, "a2", a)
        m1 = make_commit(graph, "m1", a, second_parent=b)
        m2 = make_commit(graph, "m2", b, second_parent=a2)

        # Candidates a (1 + 2 edges away) and b (1 + 1); distance wins over recency.
        assert graph.lowest_common_ancestor(m1, m2) == b

    def test_first_parent_history(self, graph: CommitGraph) -> None:
        root = make_commit(graph, "root", None)
        a = make_commit(graph, "a", root)
        side = make_commit(graph, "side", root)
        m = make_commit(graph, "m", a, second_parent=side)

        assert [cid for cid, _ in graph.first_parent_history(m)] == [m, a, root]
