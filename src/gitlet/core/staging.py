"""Staging area management for Gitlet.

The staging area holds the changes that the next commit will apply on top
of the current commit: an add-set of path -> blob hash and a remove-set of
paths. A path is in at most one of the two sets.

Index format (JSON, .gitlet/index):
{
    "version": 1,
    "add": {"relative/path": "sha256..."},
    "remove": ["other/path"]
}
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Set

from loguru import logger

from gitlet.constants import INDEX_FILE, INDEX_VERSION
from gitlet.core.worktree import WorkingTree
from gitlet.errors import NothingToRemove, StagingError
from gitlet.storage.object_store import ObjectStore, atomic_write


class StagingArea:
    """Manager for the add-set and remove-set.

    Staging never touches the commit graph. Operations that depend on the
    current commit take its tracked mapping as an argument.

    Attributes:
        index_path: Path to the index file (.gitlet/index)
        object_store: ObjectStore receiving staged file contents
        worktree: WorkingTree the staged files are read from
    """

    def __init__(self, gitlet_dir: Path, object_store: ObjectStore, worktree: WorkingTree):
        self.gitlet_dir = Path(gitlet_dir)
        self.index_path = self.gitlet_dir / INDEX_FILE
        self.object_store = object_store
        self.worktree = worktree

    def stage_add(self, path: str, head_tracked: Dict[str, str]) -> Optional[str]:
        """Stage the working-tree version of path for addition.

        Staging a file identical to the current commit's version unstages
        it instead. Any pending removal of the path is cancelled.

        Args:
            path: File to stage (absolute or workspace-relative)
            head_tracked: Tracked mapping of the current commit

        Returns:
            The staged blob hash, or None if the file matched the current commit

        Raises:
            FileMissing: If the file does not exist in the working tree
        """
        rel_path = self.worktree.relative(path)
        content = self.worktree.read(rel_path)
        blob_hash = self.object_store.write_blob(content)

        index = self._load_index()
        index["remove"].discard(rel_path)

        if head_tracked.get(rel_path) == blob_hash:
            index["add"].pop(rel_path, None)
            staged: Optional[str] = None
            logger.debug(f"{rel_path} matches current commit, not staged")
        else:
            index["add"][rel_path] = blob_hash
            staged = blob_hash
            logger.debug(f"Staged {rel_path} -> {blob_hash[:8]}")

        self._save_index(index)
        return staged

    def stage_remove(self, path: str, head_tracked: Dict[str, str]) -> None:
        """Unstage path and, if the current commit tracks it, stage its removal.

        A tracked file staged for removal is also deleted from the working tree.

        Raises:
            NothingToRemove: If path is neither staged nor tracked
        """
        rel_path = self.worktree.relative(path)
        index = self._load_index()

        in_stage = rel_path in index["add"]
        in_tracked = rel_path in head_tracked
        if not in_stage and not in_tracked:
            raise NothingToRemove("No reason to remove the file.")

        index["add"].pop(rel_path, None)
        if in_tracked:
            index["remove"].add(rel_path)

        self._save_index(index)

        if in_tracked:
            self.worktree.delete(rel_path)
        logger.debug(f"Staged removal of {rel_path}" if in_tracked else f"Unstaged {rel_path}")

    def staged_additions(self) -> Dict[str, str]:
        return dict(sorted(self._load_index()["add"].items()))

    def staged_removals(self) -> Set[str]:
        return set(self._load_index()["remove"])

    def clear(self) -> None:
        """Empty both sets."""
        self._save_index({"add": {}, "remove": set()})

    def is_empty(self) -> bool:
        index = self._load_index()
        return not index["add"] and not index["remove"]

    def _load_index(self) -> Dict[str, Any]:
        if not self.index_path.exists():
            return {"add": {}, "remove": set()}

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StagingError(f"Corrupted index file: {e}") from e

        if data.get("version") != INDEX_VERSION:
            raise StagingError(f"Unsupported index version: {data.get('version')}")

        return {"add": dict(data.get("add", {})), "remove": set(data.get("remove", []))}

    def _save_index(self, index: Dict[str, Any]) -> None:
        data = {
            "version": INDEX_VERSION,
            "add": dict(sorted(index["add"].items())),
            "remove": sorted(index["remove"]),
        }
        atomic_write(
            self.index_path,
            json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8"),
        )
